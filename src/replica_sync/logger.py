import json
import logging
import os
import sys

DEFAULT_MCP_LOG_FILE = "/tmp/replica-sync-server.log"

_TEXT_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per line (ts, level, logger, msg, optional exc)."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(debug_format: str) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATE_FORMAT)
    return logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level_fallback: str | None = None,
    file_fallback: str | None = None,
) -> None:
    """Install root handlers for the daemon or the MCP server.

    Args:
        mode: "mcp" writes to a file only, since stdout is the transport.
            "cli" writes to stderr.
        debug: Force DEBUG regardless of LOG_LEVEL.
        log_file: Custom log file path (overrides LOG_FILE env var in MCP mode,
            adds a file handler in CLI mode).
        debug_format: "text" or "json".
        level_fallback: Level from the YAML ``logging`` section, used when
            LOG_LEVEL is unset.
        file_fallback: Log file from the YAML ``logging`` section, used when
            neither *log_file* nor LOG_FILE is given.

    Environment variables:
        LOG_LEVEL: Root level name.
                   Default: INFO. Sync pass results are logged at INFO.
        LOG_FILE: Log path in MCP mode when log_file is not given.
                  Default: /tmp/replica-sync-server.log
    """
    env_level = (os.getenv("LOG_LEVEL") or level_fallback or "INFO").upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.INFO)

    handlers: list[logging.Handler] = []

    if mode == "mcp":
        # stdout carries JSON-RPC frames, so only a file handler is allowed
        final_log_file = (
            log_file
            or os.getenv("LOG_FILE")
            or file_fallback
            or DEFAULT_MCP_LOG_FILE
        )
        file_handler = logging.FileHandler(final_log_file, mode="a")
        file_handler.setFormatter(_make_formatter(debug_format))
        handlers.append(file_handler)
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(_make_formatter(debug_format))
        handlers.append(stderr_handler)

        cli_log_file = log_file or file_fallback
        if cli_log_file:
            file_handler = logging.FileHandler(cli_log_file, mode="a")
            file_handler.setFormatter(_make_formatter(debug_format))
            handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers)

    # Driver chatter (heartbeats, pool checkouts) only at DEBUG
    if log_level != logging.DEBUG:
        logging.getLogger("pymongo").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
