"""Replication engine: keeps the read store converged with the source.

The ``ReplicationEngine`` owns the watermark and runs every sync pass:

1. ``start()`` waits for the source (bounded retries), performs the
   initial full sync, then starts the poller thread.
2. The poller runs ``run_tick()`` every ``poll_interval_ms``; each tick is
   a delta sync of rows with ``updatedAt`` strictly after the watermark.
3. ``force_sync()`` performs an immediate full re-sync on demand.

All passes share one lock, so at most one pass reads and advances the
watermark at a time. The poller waits for the interval *after* a tick
completes, so ticks never overlap; a forced sync issued during a tick
blocks until the tick is done.

Failure semantics:

* Startup failures (``BootstrapError``, initial ``SyncPassError``) are
  raised to the caller and are fatal.
* A full or forced pass raises ``SyncPassError``; no partial count is
  reported.
* A delta pass is all-or-nothing: the first failing row aborts the pass
  and the watermark stays where it was, so the whole batch is retried on
  the next tick. ``run_tick()`` logs the failure and never raises.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from replica_sync.exceptions import (
    BootstrapError,
    ReplicaSyncError,
    SyncPassError,
)
from replica_sync.sync.models import (
    EngineState,
    Record,
    SyncKind,
    SyncOutcome,
)

if TYPE_CHECKING:
    from replica_sync.core.source_store import SourceStore
    from replica_sync.core.target_store import TargetStore
    from replica_sync.sync.state import WatermarkState

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)


def utcnow() -> datetime:
    """Current time as naive UTC, matching the source DATETIME columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ReplicationEngine:
    """Replicate the source table into the target collection.

    Args:
        source: Relational source client.
        target: Document store client.
        poll_interval_ms: Delay between the end of one delta tick and the
            start of the next.
        connect_retries: Startup connection attempts before giving up.
        connect_backoff_ms: Wait between failed startup attempts.
        watermark_lag_ms: Subtracted from the pass start time before it
            becomes the watermark. Must cover the precision of the source
            ``updatedAt`` column (whole seconds for MySQL ``DATETIME``).
        state: Optional watermark persistence.
        resume: When True and *state* holds a watermark, startup runs a
            delta sync from it instead of a full sync.
        clock: Returns the current naive-UTC time.
        sleep: Blocking sleep used between startup attempts (seconds).
            Defaults to waiting on the stop event, so ``cancel()`` cuts the
            wait short.
    """

    def __init__(
        self,
        source: SourceStore,
        target: TargetStore,
        poll_interval_ms: int = 5000,
        connect_retries: int = 30,
        connect_backoff_ms: int = 2000,
        watermark_lag_ms: int = 1000,
        state: WatermarkState | None = None,
        resume: bool = False,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        self.source = source
        self.target = target
        self.poll_interval_ms = poll_interval_ms
        self.connect_retries = connect_retries
        self.connect_backoff_ms = connect_backoff_ms
        self.watermark_lag_ms = watermark_lag_ms
        self.state_store = state
        self.resume = resume
        self._clock = clock

        self._watermark = EPOCH
        self._status = EngineState.CREATED
        # Single-slot lane for every pass touching the watermark
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sleep = sleep or self._stop_event.wait
        self._poller: threading.Thread | None = None
        self._closed = False

        self.last_outcome: SyncOutcome | None = None
        self.last_error: str | None = None
        self.consecutive_failures = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def watermark(self) -> datetime:
        """Exclusive lower bound of ``updatedAt`` for the next delta."""
        return self._watermark

    @property
    def status(self) -> EngineState:
        return self._status

    @property
    def is_polling(self) -> bool:
        return self._poller is not None and self._poller.is_alive()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> SyncOutcome:
        """Bootstrap, run the initial sync, and start the poller.

        Returns:
            Outcome of the initial pass.

        Raises:
            BootstrapError: The source never became reachable.
            SyncPassError: The initial sync failed.
            StoreUnavailableError: The target index could not be created.
        """
        if self._status is not EngineState.CREATED:
            raise RuntimeError(f"Engine cannot start from state {self._status.value}")

        logger.info(
            "Replication engine starting (poll interval: %dms)",
            self.poll_interval_ms,
        )
        self._status = EngineState.BOOTSTRAPPING
        try:
            self.wait_for_source()
            self.target.ensure_indexes()
            outcome = self._initial_sync()
        except Exception:
            self._status = EngineState.STOPPED
            raise

        self._start_poller()
        return outcome

    def cancel(self) -> None:
        """Interrupt a pending startup wait and keep the poller from running.

        Only sets an event, so it is safe to call from a signal handler.
        Call ``stop()`` afterwards to release the stores.
        """
        self._stop_event.set()

    def stop(self, timeout: float | None = None) -> None:
        """Cancel the poller, wait for any in-flight pass, close the stores.

        Safe to call more than once, including after a failed ``start()``.
        """
        if self._closed:
            return

        self._stop_event.set()
        if self._poller is not None:
            self._poller.join(timeout)
            self._poller = None

        with self._lock:
            self._status = EngineState.STOPPED
            self._closed = True

        self.source.close()
        self.target.close()
        logger.info("Replication engine stopped")

    def wait_for_source(self) -> int:
        """Block until the source answers a ping.

        Returns:
            The attempt number that succeeded.

        Raises:
            BootstrapError: After ``connect_retries`` failed attempts, or
                earlier when ``cancel()`` is called between attempts.
        """
        for attempt in range(1, self.connect_retries + 1):
            try:
                self.source.ping()
            except ReplicaSyncError as exc:
                logger.warning(
                    "Waiting for source store (attempt %d/%d): %s",
                    attempt,
                    self.connect_retries,
                    exc,
                )
                if attempt < self.connect_retries:
                    self._sleep(self.connect_backoff_ms / 1000)
                    if self._stop_event.is_set():
                        logger.info("Startup cancelled while waiting for source")
                        raise BootstrapError(attempt) from exc
                continue
            logger.info(
                "Connected to source store (attempt %d/%d)",
                attempt,
                self.connect_retries,
            )
            return attempt

        raise BootstrapError(self.connect_retries)

    def _initial_sync(self) -> SyncOutcome:
        if self.resume and self.state_store is not None:
            persisted = self.state_store.load()
            if persisted is not None:
                logger.info(
                    "Resuming from persisted watermark %s",
                    persisted.isoformat(),
                )
                self._advance_watermark(persisted)
                return self.delta_sync()
            logger.info("No persisted watermark, running full sync")
        return self.full_sync()

    # ------------------------------------------------------------------
    # Sync passes
    # ------------------------------------------------------------------

    def full_sync(self) -> SyncOutcome:
        """Copy every source record to the target."""
        return self._run_pass(SyncKind.FULL)

    def delta_sync(self) -> SyncOutcome:
        """Copy records modified strictly after the watermark."""
        return self._run_pass(SyncKind.DELTA)

    def force_sync(self) -> SyncOutcome:
        """Immediate full re-sync, serialized with the poller."""
        logger.info("Manual sync triggered")
        return self._run_pass(SyncKind.FORCE)

    def run_tick(self) -> SyncOutcome | None:
        """Run one periodic delta pass, logging instead of raising."""
        try:
            outcome = self.delta_sync()
        except ReplicaSyncError as exc:
            self._record_failure(exc)
            logger.error(
                "Error during sync loop (%d consecutive failures): %s",
                self.consecutive_failures,
                exc,
            )
            return None
        except Exception as exc:
            self._record_failure(exc)
            logger.exception("Unexpected error during sync loop")
            return None

        self.consecutive_failures = 0
        self.last_error = None
        return outcome

    def _record_failure(self, exc: Exception) -> None:
        self.consecutive_failures += 1
        self.last_error = str(exc)

    def _run_pass(self, kind: SyncKind) -> SyncOutcome:
        with self._lock:
            if self._status is EngineState.STOPPED:
                raise RuntimeError("Engine is stopped")
            self._status = (
                EngineState.FORCE_SYNCING
                if kind is SyncKind.FORCE
                else EngineState.SYNCING
            )
            try:
                outcome = self._sync_locked(kind)
            finally:
                self._status = EngineState.IDLE
            self.last_outcome = outcome
            return outcome

    def _sync_locked(self, kind: SyncKind) -> SyncOutcome:
        # Captured before the read so rows written during the pass are
        # still newer than the next watermark. A row committed just after
        # the read can be stored truncated or rounded to the column
        # precision, hence the lag.
        started_at = self._clock()

        try:
            records = self._read_source(kind)
        except (ReplicaSyncError, ValueError) as exc:
            logger.error("Failed to read source for %s sync: %s", kind.value, exc)
            raise SyncPassError(kind.value, 0, exc) from exc

        synced = 0
        for record in records:
            try:
                self.target.upsert_record(record)
            except (ReplicaSyncError, ValueError) as exc:
                logger.error(
                    "Failed to upsert person %s to target: %s", record.id, exc
                )
                raise SyncPassError(kind.value, synced, exc) from exc
            synced += 1

        self._advance_watermark(
            started_at - timedelta(milliseconds=self.watermark_lag_ms)
        )
        self._persist_watermark(kind)

        outcome = SyncOutcome(
            kind=kind,
            synced=synced,
            started_at=started_at,
            completed_at=self._clock(),
            watermark=self._watermark,
        )

        if kind is SyncKind.DELTA and synced == 0:
            logger.debug("No changes detected in source")
        else:
            logger.info(
                "%s sync completed: %d persons synced",
                kind.value.capitalize(),
                synced,
            )
        return outcome

    def _read_source(self, kind: SyncKind) -> list[Record]:
        if kind is SyncKind.DELTA:
            return self.source.fetch_modified_since(self._watermark)
        return self.source.fetch_all()

    def _advance_watermark(self, candidate: datetime) -> None:
        if candidate > self._watermark:
            self._watermark = candidate

    def _persist_watermark(self, kind: SyncKind) -> None:
        if self.state_store is None:
            return
        try:
            self.state_store.save(self._watermark, kind.value)
        except OSError as exc:
            logger.warning(
                "Could not persist watermark to %s: %s",
                self.state_store.path,
                exc,
            )

    # ------------------------------------------------------------------
    # Poller
    # ------------------------------------------------------------------

    def _start_poller(self) -> None:
        self._poller = threading.Thread(
            target=self._poll_loop,
            name="replica-sync-poller",
            daemon=True,
        )
        self._poller.start()
        logger.info(
            "Starting sync loop with interval: %dms", self.poll_interval_ms
        )

    def _poll_loop(self) -> None:
        interval = self.poll_interval_ms / 1000
        while not self._stop_event.wait(interval):
            self.run_tick()
