"""Read-only lookups against the target store for external consumers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from replica_sync.exceptions import RecordNotFoundError
from replica_sync.sync.models import Record

if TYPE_CHECKING:
    from replica_sync.core.target_store import TargetStore


class QueryFacade:
    """Serve persons from the read store. Every call hits the store."""

    def __init__(self, target: TargetStore) -> None:
        self.target = target

    def list_records(self) -> list[Record]:
        """Return all replicated records (possibly an empty list)."""
        return self.target.find_all()

    def get_record(self, record_id: str) -> Record:
        """Return one record by id.

        Raises:
            RecordNotFoundError: If no document has *record_id*.
        """
        record = self.target.find_record(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record
