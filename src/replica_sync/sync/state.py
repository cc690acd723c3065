"""Optional watermark persistence.

The engine keeps its watermark in memory. When a state file is configured
the watermark is also written to disk after every successful pass so a
restart can resume with a delta sync instead of re-copying the table.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Never rolls back** -- ``save()`` refuses a watermark older than the
  one already on disk.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class WatermarkState:
    """Load and save the watermark for one source/target pair.

    Args:
        path: JSON file holding the state.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> datetime | None:
        """Return the persisted watermark, or ``None`` if there is none.

        An unreadable or malformed file is logged and treated as absent,
        which makes the caller fall back to a full sync.
        """
        if not self._path.exists():
            return None
        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
            return datetime.fromisoformat(data["watermark"])
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning(
                "Ignoring unreadable watermark state %s: %s", self._path, exc
            )
            return None

    def save(self, watermark: datetime, kind: str) -> None:
        """Persist *watermark* atomically.

        Args:
            watermark: New watermark (naive UTC).
            kind: Kind of the pass that produced it, for diagnostics.
        """
        current = self.load()
        if current is not None and watermark < current:
            logger.warning(
                "Refusing to persist watermark %s older than %s",
                watermark.isoformat(),
                current.isoformat(),
            )
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        state = {
            "version": STATE_VERSION,
            "watermark": watermark.isoformat(),
            "last_pass": kind,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
