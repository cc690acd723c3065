"""MCP tool handlers for replication control.

Defines two tools:

- ``sync_stats`` -- source/target counts, watermark, and the in-sync flag.
- ``sync_force`` -- run an immediate full re-sync and report the count.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...sync.reporter import (
    format_outcome,
    format_stats,
    outcome_to_json,
    stats_to_json,
)
from .registry import ToolSpec

if TYPE_CHECKING:
    from ...services import ReplicaServices

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="sync_stats",
        description=(
            "Compare record counts in the source database and the read "
            "store. Returns sourceCount, targetCount, lastSync (watermark), "
            "pollIntervalMs and inSync. inSync=false proves divergence; "
            "inSync=true only means the counts match."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    types.Tool(
        name="sync_force",
        description=(
            "Copy every source record into the read store now, without "
            "waiting for the next poll. Waits for an in-flight delta sync "
            "to finish first. Returns the number of records synced."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_sync_stats(
    services: ReplicaServices, args: dict[str, Any]
) -> types.CallToolResult:
    stats = await run_sync(services.reporter.get_stats)
    engine = services.engine

    structured = stats_to_json(stats)
    structured["engine"] = {
        "state": engine.status.value,
        "consecutiveFailures": engine.consecutive_failures,
        "lastError": engine.last_error,
    }

    text = format_stats(stats)
    if engine.consecutive_failures:
        text += (
            f"\n  Poll failures:  {engine.consecutive_failures} "
            f"(last: {engine.last_error})"
        )

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


async def _handle_sync_force(
    services: ReplicaServices, args: dict[str, Any]
) -> types.CallToolResult:
    outcome = await run_sync(services.engine.force_sync)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=format_outcome(outcome))],
        structuredContent=outcome_to_json(outcome),
    )


_HANDLERS = {
    "sync_stats": (_handle_sync_stats, False),
    "sync_force": (_handle_sync_force, True),
}

SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=tool,
        writes=_HANDLERS[tool.name][1],
        handler=_HANDLERS[tool.name][0],
    )
    for tool in SYNC_TOOLS
]
