"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from ..config import mask_url
from ..core.async_utils import init_semaphore, run_sync
from ..exceptions import ReplicaSyncError
from ..services import ReplicaServices, build_services, load_runtime_config

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[ReplicaServices]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Resolve configuration (CLI > env vars > .env > YAML > defaults)
    - Build store clients and the replication engine
    - Block until the source is reachable, run the initial sync, start polling
    - Fail fast if any of that fails

    On shutdown:
    - Stop the poller (waiting for an in-flight pass) and close both pools

    Args:
        config_overrides: Optional dict with values from CLI
            (source_url, target_url, poll_interval_ms, debug).

    Yields:
        The running ``ReplicaServices``.

    Raises:
        RuntimeError: If configuration is invalid or startup sync fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("Replica Sync MCP Server starting...")

    try:
        config = load_runtime_config(config_overrides)
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    _stderr_print(f"  Source: {mask_url(config.source_url)}")
    _stderr_print(f"  Target: {mask_url(config.target_url)}")
    _stderr_print(f"  Poll interval: {config.poll_interval_ms}ms")

    try:
        services = build_services(config)
    except ValueError as e:
        logger.error("Store setup failed: %s", e)
        _stderr_print(f"ERROR: Store setup failed: {e}")
        raise RuntimeError(f"Store setup failed: {e}") from e
    engine = services.engine

    _stderr_print("  Waiting for source store and running initial sync...")
    try:
        outcome = await run_sync(engine.start)
    except ReplicaSyncError as e:
        logger.error("Startup failed: %s", e)
        _stderr_print("ERROR: Startup sync failed.")
        _stderr_print(f"  {e}")
        _stderr_print("  Check SOURCE_URL and TARGET_URL.")
        await run_sync(engine.stop)
        raise RuntimeError(f"Startup failed: {e}") from e

    init_semaphore(config.pool_size)
    _stderr_print(
        f"  Initial {outcome.kind.value} sync: {outcome.synced} persons"
    )
    _stderr_print("Server ready. Waiting for MCP client connection...")

    try:
        yield services
    finally:
        logger.info("MCP server shutting down")
        await run_sync(engine.stop)
        _stderr_print("Replica Sync MCP Server shutting down.")
