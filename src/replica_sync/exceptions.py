"""Exception hierarchy for replica_sync."""


class ReplicaSyncError(Exception):
    """Base class for all replication errors."""


class StoreUnavailableError(ReplicaSyncError):
    """Raised when the source or target store cannot be reached or queried.

    Args:
        store: ``"source"`` or ``"target"``.
        message: Description of the underlying failure.
    """

    def __init__(self, store: str, message: str) -> None:
        super().__init__(f"{store} store unavailable: {message}")
        self.store = store


class BootstrapError(ReplicaSyncError):
    """Raised when the source never became reachable during startup."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Source store unreachable after {attempts} attempts"
        )
        self.attempts = attempts


class SyncPassError(ReplicaSyncError):
    """Raised when a full, delta or forced sync pass fails.

    Attributes:
        kind: Pass kind (``full``, ``delta`` or ``force``).
        synced_before_failure: Records upserted before the failure.
            Callers must not report this as a result count.
    """

    def __init__(
        self, kind: str, synced_before_failure: int, cause: Exception
    ) -> None:
        super().__init__(
            f"{kind} sync failed after {synced_before_failure} records: {cause}"
        )
        self.kind = kind
        self.synced_before_failure = synced_before_failure


class RecordNotFoundError(ReplicaSyncError):
    """Raised when a record id has no document in the target store."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Person with id {record_id} not found")
        self.record_id = record_id
