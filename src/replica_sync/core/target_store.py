"""Pooled access to the MongoDB read store.

Documents are keyed by the source record ``id`` (a unique index), never by
Mongo's generated ``_id``, which is projected out of every read.
"""

from __future__ import annotations

import logging

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ..config import mask_url
from ..exceptions import StoreUnavailableError
from ..sync.models import Record

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "querydb"

_NO_OBJECT_ID = {"_id": False}


class TargetStore:
    """Client for the persons collection.

    Args:
        collection: The pymongo collection to write to.
        client: Owning ``MongoClient``; closed by ``close()`` when given.
    """

    def __init__(
        self,
        collection: Collection,
        client: MongoClient | None = None,
    ) -> None:
        self._collection = collection
        self._client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        collection_name: str = "persons",
        pool_size: int = 10,
        server_selection_timeout_ms: int = 5000,
    ) -> TargetStore:
        """Connect lazily with a bounded pool; the database comes from *url*.

        Raises:
            ValueError: If pymongo rejects the connection string.
        """
        logger.info("Target URL: %s", mask_url(url))
        try:
            client: MongoClient = MongoClient(
                url,
                maxPoolSize=pool_size,
                serverSelectionTimeoutMS=server_selection_timeout_ms,
            )
            database = client.get_default_database(default=DEFAULT_DATABASE)
        except PyMongoError as exc:
            raise ValueError(
                f"Invalid target URL '{mask_url(url)}': {exc}"
            ) from exc
        return cls(database[collection_name], client)

    def ensure_indexes(self) -> None:
        """Create the unique index on ``id`` backing idempotent upserts.

        Uses the server default name ``id_1``, the name an existing read
        store already carries; a different name for the same key is
        rejected with IndexOptionsConflict.
        """
        try:
            self._collection.create_index([("id", ASCENDING)], unique=True)
        except PyMongoError as exc:
            raise StoreUnavailableError("target", str(exc)) from exc

    def ping(self) -> None:
        if self._client is None:
            return
        try:
            self._client.admin.command("ping")
        except PyMongoError as exc:
            raise StoreUnavailableError("target", str(exc)) from exc

    def upsert_record(self, record: Record) -> None:
        """Insert or overwrite the document keyed by ``record.id``.

        Applying the same record twice leaves exactly one document holding
        the latest values.
        """
        try:
            self._collection.update_one(
                {"id": record.id},
                {"$set": record.to_document()},
                upsert=True,
            )
        except PyMongoError as exc:
            raise StoreUnavailableError("target", str(exc)) from exc
        logger.debug("Upserted person %s (%s)", record.id, record.name)

    def find_record(self, record_id: str) -> Record | None:
        """Return the record with *record_id*, or ``None`` if absent."""
        try:
            doc = self._collection.find_one({"id": record_id}, _NO_OBJECT_ID)
        except PyMongoError as exc:
            raise StoreUnavailableError("target", str(exc)) from exc
        return Record.from_document(doc) if doc is not None else None

    def find_all(self) -> list[Record]:
        """Return every document, ordered by ``id``."""
        try:
            docs = list(
                self._collection.find({}, _NO_OBJECT_ID).sort(
                    "id", ASCENDING
                )
            )
        except PyMongoError as exc:
            raise StoreUnavailableError("target", str(exc)) from exc
        return [Record.from_document(doc) for doc in docs]

    def count(self) -> int:
        try:
            return int(self._collection.count_documents({}))
        except PyMongoError as exc:
            raise StoreUnavailableError("target", str(exc)) from exc

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
