"""Pooled read access to the relational source-of-record.

Uses SQLAlchemy Core against a single ``persons`` table. Every call checks
a connection out of the engine's bounded ``QueuePool`` inside a ``with``
block, so it is returned on success and on failure alike.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..config import mask_url
from ..exceptions import StoreUnavailableError
from ..sync.models import Record

logger = logging.getLogger(__name__)


def persons_table(metadata: MetaData, name: str = "persons") -> Table:
    """Describe the replicated table; column names match the source schema."""
    return Table(
        name,
        metadata,
        Column("id", String(36), primary_key=True),
        Column("name", String(255), nullable=False),
        Column("email", String(255), nullable=False),
        Column("createdAt", DateTime),
        Column("updatedAt", DateTime, index=True),
    )


class SourceStore:
    """Read-only client for the source table.

    Args:
        engine: SQLAlchemy engine owning the connection pool.
        table_name: Name of the replicated table.
    """

    def __init__(self, engine: Engine, table_name: str = "persons") -> None:
        self._engine = engine
        self.metadata = MetaData()
        self.table = persons_table(self.metadata, table_name)

    @classmethod
    def from_url(
        cls,
        url: str,
        table_name: str = "persons",
        pool_size: int = 10,
        pool_timeout: float = 30.0,
    ) -> SourceStore:
        """Create a store with a bounded pool (no overflow connections).

        Raises:
            ValueError: Unknown dialect, missing driver, or pool arguments
                the dialect does not accept.
        """
        logger.info("Source URL: %s", mask_url(url))
        try:
            engine = create_engine(
                url,
                pool_size=pool_size,
                max_overflow=0,
                pool_timeout=pool_timeout,
                pool_pre_ping=True,
            )
        except (SQLAlchemyError, ImportError, TypeError) as exc:
            raise ValueError(
                f"Invalid source URL '{mask_url(url)}': {exc}"
            ) from exc
        return cls(engine, table_name)

    def _columns(self):
        t = self.table
        return select(
            t.c.id, t.c.name, t.c.email, t.c.createdAt, t.c.updatedAt
        )

    def ping(self) -> None:
        """Check out a connection and run a trivial query.

        Raises:
            StoreUnavailableError: If no connection can be established.
        """
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("source", str(exc)) from exc

    def fetch_all(self) -> list[Record]:
        """Return every row of the table."""
        return self._fetch(self._columns())

    def fetch_modified_since(self, watermark: datetime) -> list[Record]:
        """Return rows whose ``updatedAt`` is strictly after *watermark*."""
        stmt = self._columns().where(self.table.c.updatedAt > watermark)
        return self._fetch(stmt)

    def count(self) -> int:
        """Return the number of rows in the table."""
        stmt = select(func.count()).select_from(self.table)
        try:
            with self._engine.connect() as conn:
                return int(conn.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("source", str(exc)) from exc

    def close(self) -> None:
        """Dispose of the pool and its idle connections."""
        self._engine.dispose()

    def _fetch(self, stmt) -> list[Record]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("source", str(exc)) from exc
        return [Record.from_row(row) for row in rows]
