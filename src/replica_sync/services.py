"""Wiring shared by the MCP server and the headless daemon."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .config import Config, load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import LoggingConfig, build_config, to_fallbacks
from .core.source_store import SourceStore
from .core.target_store import TargetStore
from .sync.engine import ReplicationEngine
from .sync.query import QueryFacade
from .sync.reporter import StatsReporter
from .sync.state import WatermarkState

logger = logging.getLogger(__name__)


@dataclass
class ReplicaServices:
    """Everything a transport needs: the engine and the read-side helpers."""

    config: Config
    engine: ReplicationEngine
    reporter: StatsReporter
    facade: QueryFacade


def load_runtime_config(overrides: dict[str, Any] | None = None) -> Config:
    """Resolve configuration: CLI > env vars (.env loaded first) > YAML > defaults.

    Raises:
        ValueError: If the merged configuration is invalid.
    """
    # .env first so ${VAR} interpolation in YAML can see its values
    load_dotenv()

    yaml_fallbacks: dict[str, Any] | None = None
    config_files = discover_config_files()
    if config_files:
        unified = build_config(load_hierarchical_config())
        yaml_fallbacks = to_fallbacks(unified)
        logger.info("Configuration file: %s", config_files[0])

    opts = overrides or {}
    return load_config(
        source_url=opts.get("source_url"),
        target_url=opts.get("target_url"),
        poll_interval_ms=opts.get("poll_interval_ms"),
        debug=opts.get("debug", False),
        yaml_fallbacks=yaml_fallbacks,
    )


def load_logging_settings() -> LoggingConfig:
    """Return the YAML ``logging`` section, or its defaults without a file.

    Runs before logging is configured. A broken file yields the defaults
    here and is reported by ``load_runtime_config()`` instead.
    """
    load_dotenv()
    if not discover_config_files():
        return LoggingConfig()
    try:
        return build_config(load_hierarchical_config()).logging
    except (ValueError, yaml.YAMLError):
        return LoggingConfig()


def build_services(config: Config) -> ReplicaServices:
    """Create the store clients, the engine, and the read-side helpers.

    Nothing connects yet: pools are lazy until ``engine.start()``.

    Raises:
        ValueError: If either store rejects its connection URL.
    """
    source = SourceStore.from_url(
        config.source_url,
        table_name=config.source_table,
        pool_size=config.pool_size,
    )
    try:
        target = TargetStore.from_url(
            config.target_url,
            collection_name=config.target_collection,
            pool_size=config.pool_size,
        )
    except ValueError:
        source.close()
        raise
    state = WatermarkState(Path(config.state_file)) if config.state_file else None

    engine = ReplicationEngine(
        source,
        target,
        poll_interval_ms=config.poll_interval_ms,
        connect_retries=config.connect_retries,
        connect_backoff_ms=config.connect_backoff_ms,
        watermark_lag_ms=config.watermark_lag_ms,
        state=state,
        resume=config.resume,
    )
    return ReplicaServices(
        config=config,
        engine=engine,
        reporter=StatsReporter(source, target, engine),
        facade=QueryFacade(target),
    )
