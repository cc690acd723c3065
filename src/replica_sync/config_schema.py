"""Unified configuration schema for replica_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the source store, the target store, the sync engine, and
logging. ``to_fallbacks()`` flattens a validated config into the dict
consumed by ``config.load_config()``.

Usage:
    from replica_sync.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SourceConfig(BaseModel):
    """Relational source-of-record settings.

    ``url`` is optional so env vars and CLI args can supply it instead.
    """

    url: str | None = Field(
        default=None, description="SQLAlchemy URL of the source database"
    )
    table: str = Field(
        default="persons", description="Table holding the replicated records"
    )

    model_config = {"frozen": True}


class TargetConfig(BaseModel):
    """Document store settings."""

    url: str | None = Field(
        default=None, description="MongoDB connection string"
    )
    collection: str = Field(
        default="persons", description="Collection receiving the records"
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Replication engine tuning."""

    poll_interval_ms: int = Field(
        default=5000,
        ge=100,
        le=3_600_000,
        description="Delta sync period in milliseconds",
    )
    connect_retries: int = Field(
        default=30,
        ge=1,
        le=1000,
        description="Startup attempts before giving up on the source",
    )
    connect_backoff_ms: int = Field(
        default=2000,
        ge=0,
        le=600_000,
        description="Wait between startup attempts in milliseconds",
    )
    watermark_lag_ms: int = Field(
        default=1000,
        ge=0,
        le=3_600_000,
        description="Subtracted from the pass start time to form the watermark",
    )
    pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum pooled connections per store (1-100)",
    )
    state_file: str | None = Field(
        default=None,
        description="Persist the watermark to this JSON file after each pass",
    )
    resume: bool = Field(
        default=False,
        description="Start with a delta sync from the persisted watermark",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` is always valid.
    """

    source: SourceConfig = Field(default_factory=SourceConfig)
    target: TargetConfig = Field(default_factory=TargetConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the merged YAML dict.

    Missing sections get defaults.

    Raises:
        pydantic.ValidationError: If a section holds invalid values.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten *unified* into ``load_config()`` fallback keys.

    ``None`` values are dropped so they never shadow built-in defaults.
    """
    flat = {
        "source_url": unified.source.url,
        "source_table": unified.source.table,
        "target_url": unified.target.url,
        "target_collection": unified.target.collection,
        **unified.sync.model_dump(),
    }
    return {k: v for k, v in flat.items() if v is not None}
