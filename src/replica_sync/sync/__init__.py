"""Poll-based replication from a relational table into MongoDB.

Architecture
------------
A single ``ReplicationEngine`` owns a watermark timestamp. It performs a
full sync at startup, then a delta sync (``updatedAt > watermark``) on a
fixed period. Upserts are keyed by the source ``id`` and are idempotent,
so replaying rows is always safe.

Modules:

- ``engine``    -- ``ReplicationEngine``: bootstrap, full/delta/forced sync.
- ``models``    -- ``Record``, ``SyncOutcome``, ``SyncStats`` and enums.
- ``query``     -- ``QueryFacade``: read-only record lookups.
- ``reporter``  -- ``StatsReporter`` and text/JSON formatting.
- ``state``     -- ``WatermarkState``: optional watermark persistence.

Usage example
-------------
::

    from replica_sync.core import SourceStore, TargetStore
    from replica_sync.sync import ReplicationEngine, StatsReporter

    source = SourceStore.from_url("mysql+pymysql://app:pw@db/appdb")
    target = TargetStore.from_url("mongodb://mongo:27017/querydb")
    engine = ReplicationEngine(source, target, poll_interval_ms=5000)

    engine.start()            # blocks until the source is up, full sync
    print(StatsReporter(source, target, engine).get_stats())
    engine.force_sync()
    engine.stop()
"""

from .engine import EPOCH, ReplicationEngine
from .models import (
    EngineState,
    Record,
    SyncKind,
    SyncOutcome,
    SyncStats,
)
from .query import QueryFacade
from .reporter import (
    StatsReporter,
    format_outcome,
    format_stats,
    outcome_to_json,
    stats_to_json,
)
from .state import WatermarkState

__all__ = [
    "EPOCH",
    "EngineState",
    "QueryFacade",
    "Record",
    "ReplicationEngine",
    "StatsReporter",
    "SyncKind",
    "SyncOutcome",
    "SyncStats",
    "WatermarkState",
    "format_outcome",
    "format_stats",
    "outcome_to_json",
    "stats_to_json",
]
