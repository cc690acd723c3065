"""In-memory store doubles and record helpers shared by the test modules."""

from datetime import datetime, timedelta

from replica_sync.exceptions import StoreUnavailableError
from replica_sync.sync.models import Record

T0 = datetime(2026, 3, 1, 12, 0, 0)


def make_record(record_id, updated_at=T0, name=None, email=None):
    """Create a Record with sensible defaults."""
    return Record(
        id=record_id,
        name=name or f"Person {record_id}",
        email=email or f"{record_id}@example.com",
        created_at=T0 - timedelta(days=1),
        updated_at=updated_at,
    )


class FakeSourceStore:
    """In-memory stand-in for SourceStore.

    Args:
        records: Initial rows.
        unreachable_pings: Number of leading ping() calls that fail.
    """

    def __init__(self, records=None, unreachable_pings=0):
        self.rows = {r.id: r for r in records or []}
        self.unreachable_pings = unreachable_pings
        self.ping_calls = 0
        self.fetch_all_calls = 0
        self.fetch_since_calls = []
        self.read_error = None
        self.closed = False

    def put(self, record):
        self.rows[record.id] = record

    def ping(self):
        self.ping_calls += 1
        if self.ping_calls <= self.unreachable_pings:
            raise StoreUnavailableError("source", "connection refused")

    def fetch_all(self):
        self.fetch_all_calls += 1
        if self.read_error is not None:
            raise self.read_error
        return sorted(self.rows.values(), key=lambda r: r.id)

    def fetch_modified_since(self, watermark):
        self.fetch_since_calls.append(watermark)
        if self.read_error is not None:
            raise self.read_error
        return sorted(
            (
                r
                for r in self.rows.values()
                if r.updated_at is not None and r.updated_at > watermark
            ),
            key=lambda r: r.id,
        )

    def count(self):
        return len(self.rows)

    def close(self):
        self.closed = True


class FakeTargetStore:
    """In-memory stand-in for TargetStore keyed by record id.

    Ids listed in ``failing_ids`` raise StoreUnavailableError on upsert.
    """

    def __init__(self):
        self.docs = {}
        self.failing_ids = set()
        self.upserted = []
        self.indexes_ensured = False
        self.closed = False

    def ensure_indexes(self):
        self.indexes_ensured = True

    def ping(self):
        pass

    def upsert_record(self, record):
        if record.id in self.failing_ids:
            raise StoreUnavailableError("target", "write concern timeout")
        self.upserted.append(record.id)
        self.docs[record.id] = record.to_document()

    def find_record(self, record_id):
        doc = self.docs.get(record_id)
        return Record.from_document(doc) if doc is not None else None

    def find_all(self):
        return [Record.from_document(self.docs[k]) for k in sorted(self.docs)]

    def count(self):
        return len(self.docs)

    def close(self):
        self.closed = True


class FakeClock:
    """Manually advanced naive-UTC clock."""

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def make_services(source, target, clock=None, **engine_kwargs):
    """Wire real engine, reporter and facade around in-memory stores."""
    from replica_sync.config import Config
    from replica_sync.services import ReplicaServices
    from replica_sync.sync.engine import ReplicationEngine
    from replica_sync.sync.query import QueryFacade
    from replica_sync.sync.reporter import StatsReporter

    engine_kwargs.setdefault("watermark_lag_ms", 0)
    engine = ReplicationEngine(
        source,
        target,
        clock=clock or FakeClock(),
        sleep=lambda s: None,
        **engine_kwargs,
    )
    return ReplicaServices(
        config=Config(),
        engine=engine,
        reporter=StatsReporter(source, target, engine),
        facade=QueryFacade(target),
    )
