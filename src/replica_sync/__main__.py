"""Headless replication daemon.

Runs the engine without an MCP client: bootstrap, initial sync, then
delta polling until SIGINT or SIGTERM.

    python -m replica_sync --source-url ... --target-url ...
"""

import argparse
import logging
import signal
import sys
import threading

from . import __version__
from .config import mask_url
from .exceptions import ReplicaSyncError
from .logger import setup_logging
from .services import (
    build_services,
    load_logging_settings,
    load_runtime_config,
)

logger = logging.getLogger("replica_sync")


def serve(config_overrides: dict | None = None) -> int:
    """Run until a termination signal arrives.

    Returns:
        Process exit code: 0 on clean shutdown, 1 on startup failure.
    """
    try:
        config = load_runtime_config(config_overrides)
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        return 1

    logger.info(
        "Replicating %s -> %s every %dms",
        mask_url(config.source_url),
        mask_url(config.target_url),
        config.poll_interval_ms,
    )

    try:
        services = build_services(config)
    except ValueError as e:
        logger.error("Store setup failed: %s", e)
        return 1

    engine = services.engine
    stop_requested = threading.Event()

    def _on_signal(signum, frame):
        logger.info("Received signal %s, shutting down...", signum)
        stop_requested.set()
        # Also cuts short a bootstrap backoff still in progress
        engine.cancel()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    try:
        engine.start()
    except ReplicaSyncError as e:
        engine.stop()
        if stop_requested.is_set():
            logger.info("Startup interrupted by signal")
            return 0
        logger.error("Startup failed: %s", e)
        return 1

    try:
        stop_requested.wait()
    finally:
        engine.stop()
    return 0


def run() -> None:
    parser = argparse.ArgumentParser(
        description="Replicate a persons table into MongoDB by polling"
    )
    parser.add_argument("--source-url", help="SQLAlchemy URL of the source database")
    parser.add_argument("--target-url", help="MongoDB connection string of the read store")
    parser.add_argument("--poll-interval-ms", type=int, help="Delta sync period in milliseconds")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--json-logs", action="store_true", help="Emit one JSON object per log line")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--version", action="version", version=f"replica-sync version {__version__}"
    )
    args = parser.parse_args()

    log_settings = load_logging_settings()
    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=args.log_file,
        debug_format="json" if args.json_logs else "text",
        level_fallback=log_settings.level,
        file_fallback=log_settings.file,
    )

    overrides: dict = {"debug": args.debug}
    if args.source_url:
        overrides["source_url"] = args.source_url
    if args.target_url:
        overrides["target_url"] = args.target_url
    if args.poll_interval_ms is not None:
        overrides["poll_interval_ms"] = args.poll_interval_ms

    sys.exit(serve(overrides))


if __name__ == "__main__":
    run()
