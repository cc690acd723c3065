"""MCP tool handlers for reading replicated persons.

The read store is the only data source here; nothing is fetched from the
relational source and nothing is cached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...core.async_utils import run_sync_limited
from ...sync.models import Record
from .registry import ToolSpec

if TYPE_CHECKING:
    from ...services import ReplicaServices

RECORD_TOOLS: list[types.Tool] = [
    types.Tool(
        name="record_list",
        description="List every person in the read store, ordered by id.",
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
        name="record_get",
        description=(
            "Fetch one person from the read store by its source id. "
            "Returns a not_found error if the id has not been replicated."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "id": {
                    "type": "string",
                    "description": "Person id as stored in the source table",
                },
            },
            "required": ["id"],
        },
    ),
]


def _format_record(record: Record) -> str:
    updated = record.updated_at.isoformat() if record.updated_at else "-"
    return f"{record.id}  {record.name} <{record.email}>  updated {updated}"


async def _handle_record_list(
    services: ReplicaServices, args: dict[str, Any]
) -> types.CallToolResult:
    records = await run_sync_limited(services.facade.list_records)

    if records:
        lines = [f"{len(records)} persons:"]
        lines.extend(f"  {_format_record(r)}" for r in records)
        text = "\n".join(lines)
    else:
        text = "No persons in the read store."

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent={
            "records": [
                r.model_dump(by_alias=True, mode="json") for r in records
            ]
        },
    )


async def _handle_record_get(
    services: ReplicaServices, args: dict[str, Any]
) -> types.CallToolResult:
    record_id = args.get("id")
    if not isinstance(record_id, str) or not record_id.strip():
        raise ValueError("id is required and must be a non-empty string")

    record = await run_sync_limited(services.facade.get_record, record_id)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=_format_record(record))],
        structuredContent=record.model_dump(by_alias=True, mode="json"),
    )


RECORD_SPECS: list[ToolSpec] = [
    ToolSpec(tool=RECORD_TOOLS[0], writes=False, handler=_handle_record_list),
    ToolSpec(tool=RECORD_TOOLS[1], writes=False, handler=_handle_record_get),
]
