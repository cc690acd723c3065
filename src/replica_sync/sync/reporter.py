"""Sync statistics and report formatting.

- ``StatsReporter`` -- counts both stores and reads the engine watermark.
- ``format_stats`` / ``stats_to_json`` -- human text and wire dict.
- ``format_outcome`` / ``outcome_to_json`` -- same for a sync pass.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .models import SyncStats

if TYPE_CHECKING:
    from ..core.source_store import SourceStore
    from ..core.target_store import TargetStore
    from .engine import ReplicationEngine
    from .models import SyncOutcome


class StatsReporter:
    """Compute count-based divergence between source and target.

    Never writes. Store errors propagate to the caller.
    """

    def __init__(
        self,
        source: SourceStore,
        target: TargetStore,
        engine: ReplicationEngine,
    ) -> None:
        self.source = source
        self.target = target
        self.engine = engine

    def get_stats(self) -> SyncStats:
        return SyncStats(
            source_count=self.source.count(),
            target_count=self.target.count(),
            last_sync=self.engine.watermark,
            poll_interval_ms=self.engine.poll_interval_ms,
        )


# ------------------------------------------------------------------
# Human-readable output
# ------------------------------------------------------------------


def format_stats(stats: SyncStats) -> str:
    """Format *stats* as a short multi-line summary."""
    verdict = "in sync" if stats.in_sync else "DIVERGED"
    lines = [
        f"Replication status: {verdict}",
        f"  Source records: {stats.source_count}",
        f"  Target records: {stats.target_count}",
        f"  Last sync:      {stats.last_sync.isoformat()}",
        f"  Poll interval:  {stats.poll_interval_ms}ms",
    ]
    if not stats.in_sync:
        diff = stats.source_count - stats.target_count
        lines.append(f"  Difference:     {diff:+d}")
    return "\n".join(lines)


def format_outcome(outcome: SyncOutcome) -> str:
    """Format a completed sync pass."""
    elapsed = (outcome.completed_at - outcome.started_at).total_seconds()
    return (
        f"{outcome.kind.value.capitalize()} sync completed: "
        f"{outcome.synced} persons synced in {elapsed:.2f}s\n"
        f"Watermark: {outcome.watermark.isoformat()}"
    )


# ------------------------------------------------------------------
# Structured output
# ------------------------------------------------------------------


def stats_to_json(stats: SyncStats) -> dict[str, Any]:
    """Return ``{sourceCount, targetCount, lastSync, pollIntervalMs, inSync}``."""
    return stats.model_dump(by_alias=True, mode="json")


def outcome_to_json(outcome: SyncOutcome) -> dict[str, Any]:
    """Return ``{"synced": n}`` plus pass metadata."""
    return {
        "synced": outcome.synced,
        "kind": outcome.kind.value,
        "startedAt": outcome.started_at.isoformat(),
        "completedAt": outcome.completed_at.isoformat(),
        "watermark": outcome.watermark.isoformat(),
    }
