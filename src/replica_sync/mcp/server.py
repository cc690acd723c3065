"""MCP server exposing the replication service over stdio.

Transport: stdio (JSON-RPC 2.0 over MCP)

The lifespan starts the replication engine before the transport opens,
so a client never talks to a server whose read store has not completed
its initial sync.
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..core.async_utils import run_sync
from ..logger import DEFAULT_MCP_LOG_FILE, setup_logging
from ..services import ReplicaServices, load_logging_settings
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

server = Server("replica-sync-server")

# Initialized in main() once the lifespan has started the engine
_services: ReplicaServices | None = None

_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------


async def _handle_ping(
    services: ReplicaServices, args: dict
) -> types.CallToolResult:
    """Check that both stores answer."""
    engine = services.engine
    try:
        await run_sync(engine.source.ping)
        await run_sync(engine.target.ping)
    except Exception as e:
        return build_error_response(
            "store_error",
            f"Connectivity check failed: {e}",
            "Check SOURCE_URL and TARGET_URL, then retry.",
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=(
                    "Replica sync server connected to both stores. "
                    f"Engine state: {engine.status.value}"
                ),
            )
        ]
    )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Check connectivity to the source database and the read store",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    writes=False,
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_services() -> ReplicaServices:
    """Return the running services.

    Raises:
        RuntimeError: If the lifespan has not started them.
    """
    if _services is None:
        raise RuntimeError(
            "Replica services not initialized. Server lifespan not started."
        )
    return _services


def set_services(services: ReplicaServices | None) -> None:
    global _services
    _services = services


def get_registry() -> ToolRegistry:
    """Return the registry built by main()."""
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized. Call main() first.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Dispatch *name* through the registry; unknown names become errors."""
    services = get_services()
    try:
        return await get_registry().call_tool(name, arguments, services)
    except ValueError as e:
        return build_error_response(
            "unknown_tool",
            str(e),
            "Call list_tools for the tools this server exposes.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Start the engine, then serve MCP over stdio until EOF.

    Args:
        config_overrides: Optional dict of CLI values (source_url,
            target_url, poll_interval_ms, debug, log_file, read_only).
    """
    overrides = config_overrides or {}

    # Must run before stdio_server opens: nothing may reach stdout
    log_settings = load_logging_settings()
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=overrides.get("log_file"),
        level_fallback=log_settings.level,
        file_fallback=log_settings.file,
    )

    read_only = overrides.get("read_only", False)
    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, read_only=read_only)
    logger.info(
        "Registered %d tools (of %d total)%s",
        registry.tool_count(),
        len(all_specs),
        " in read-only mode" if read_only else "",
    )
    set_registry(registry)

    async with server_lifespan(config_overrides=overrides) as services:
        # Set here, not in the lifespan: under `python -m` this module is
        # __main__ and a re-import would hold a separate _services global.
        set_services(services)
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="replica-sync-server",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_services(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replica Sync MCP Server - replicate a persons table into MongoDB and query it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with settings from .env or .replica_sync/config.yml
  replica-sync-server

  # Override both stores
  replica-sync-server --source-url mysql+pymysql://app:pw@localhost/appdb \\
      --target-url mongodb://localhost:27017/querydb

  # Poll every second, expose only read tools
  replica-sync-server --poll-interval-ms 1000 --read-only

stdout carries MCP frames only; status lines and startup errors go to stderr.
        """,
    )
    parser.add_argument(
        "--source-url",
        help="SQLAlchemy URL of the source database (overrides SOURCE_URL and config files)",
    )
    parser.add_argument(
        "--target-url",
        help="MongoDB connection string of the read store (overrides TARGET_URL and config files)",
    )
    parser.add_argument(
        "--poll-interval-ms",
        type=int,
        help="Delta sync period in milliseconds (default: 5000)",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_MCP_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_MCP_LOG_FILE})",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Hide tools that write to the read store (sync_force)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"replica-sync-server version {__version__}",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Keep only the CLI values the user actually set."""
    config_overrides: dict = {}
    if args.source_url:
        config_overrides["source_url"] = args.source_url
    if args.target_url:
        config_overrides["target_url"] = args.target_url
    if args.poll_interval_ms is not None:
        config_overrides["poll_interval_ms"] = args.poll_interval_ms
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.read_only:
        config_overrides["read_only"] = True
    if args.debug:
        config_overrides["debug"] = True
    return config_overrides


def run() -> None:
    """Console entry point: parse flags, serve until the client disconnects."""
    args = build_parser().parse_args()
    config_overrides = overrides_from_args(args)

    if config_overrides:
        print(
            f"Config overrides from CLI: {', '.join(config_overrides)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # server_lifespan has reported the cause on stderr
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
