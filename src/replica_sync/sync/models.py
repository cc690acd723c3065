"""Pydantic models for the replication engine.

Defines the data contracts shared by the store clients, the engine, and
the transport layer:

- ``Record``: One replicated person, keyed by its source ``id``.
- ``SyncKind``: Enum of sync pass kinds.
- ``EngineState``: Lifecycle states of the engine.
- ``SyncOutcome``: Result of one successful sync pass.
- ``SyncStats``: Count-based convergence snapshot of both stores.

All models are frozen (immutable). Field aliases match the document
layout (``createdAt``, ``sourceCount``...) so ``model_dump(by_alias=True)``
yields the wire shape.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field

_MODEL_CONFIG = {"frozen": True, "populate_by_name": True}


class Record(BaseModel):
    """A person row as read from the source and written to the target.

    Attributes:
        id: Opaque identifier, unique in the source and used as the natural
            key in the target (never the target's own ``_id``).
        name: Display name.
        email: Contact address.
        created_at: Creation time in the source (naive UTC).
        updated_at: Last modification time in the source (naive UTC).
    """

    id: str
    name: str
    email: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    model_config = _MODEL_CONFIG

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Record:
        """Build a record from a source row mapping (camelCase columns)."""
        return cls(
            id=str(row["id"]),
            name=row["name"],
            email=row["email"],
            created_at=row.get("createdAt"),
            updated_at=row.get("updatedAt"),
        )

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> Record:
        """Build a record from a target document, ignoring ``_id``."""
        return cls.model_validate(
            {k: v for k, v in doc.items() if k != "_id"}
        )

    def to_document(self) -> dict[str, Any]:
        """Return the field set written by an upsert."""
        return self.model_dump(by_alias=True)


class SyncKind(str, Enum):
    """Kinds of sync pass."""

    FULL = "full"
    DELTA = "delta"
    FORCE = "force"


class EngineState(str, Enum):
    """Engine lifecycle states.

    ``bootstrapping -> idle -> syncing -> idle -> ...`` with
    ``force_syncing`` reachable from ``idle`` at any time.
    """

    CREATED = "created"
    BOOTSTRAPPING = "bootstrapping"
    IDLE = "idle"
    SYNCING = "syncing"
    FORCE_SYNCING = "force_syncing"
    STOPPED = "stopped"


class SyncOutcome(BaseModel):
    """Result of one successful sync pass.

    Attributes:
        kind: Which pass ran.
        synced: Number of records upserted.
        started_at: When the pass began (also the new watermark candidate).
        completed_at: When the pass finished.
        watermark: Engine watermark after the pass.
    """

    kind: SyncKind
    synced: int
    started_at: datetime
    completed_at: datetime
    watermark: datetime

    model_config = {"frozen": True}


class SyncStats(BaseModel):
    """Count-based convergence signal for the two stores.

    ``in_sync`` is False on any count mismatch, which proves divergence.
    True only means the counts match, not that contents are equal.
    """

    source_count: int = Field(alias="sourceCount")
    target_count: int = Field(alias="targetCount")
    last_sync: datetime = Field(alias="lastSync")
    poll_interval_ms: int = Field(alias="pollIntervalMs")

    model_config = _MODEL_CONFIG

    @computed_field(alias="inSync")  # type: ignore[prop-decorator]
    @property
    def in_sync(self) -> bool:
        return self.source_count == self.target_count
