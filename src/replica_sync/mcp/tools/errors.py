"""Error response builders for MCP tool handlers.

Errors come back as structured ``CallToolResult`` objects with a
corrective action, so an agent can recover without human help.
"""

import mcp.types as types

from ...exceptions import (
    RecordNotFoundError,
    ReplicaSyncError,
    StoreUnavailableError,
    SyncPassError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, validation_error, sync_failed,
            store_error, server_error, unknown_tool)
        message: Human-readable error description
        corrective_action: Specific action the agent can take

    Returns:
        CallToolResult with isError=True
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_replica_error(error: ReplicaSyncError) -> types.CallToolResult:
    """Map a replication exception to its error category and action."""
    match error:
        case RecordNotFoundError():
            return build_error_response(
                "not_found",
                str(error),
                "Use record_list to see replicated ids, or sync_force if the "
                "record was created in the source moments ago.",
            )
        case SyncPassError():
            return build_error_response(
                "sync_failed",
                str(error),
                "No result count is reported for a failed pass. Check "
                "sync_stats and retry sync_force once the stores are healthy.",
            )
        case StoreUnavailableError():
            return build_error_response(
                "store_error",
                str(error),
                f"The {error.store} store is unreachable. Retry later.",
            )
        case _:
            return build_error_response(
                "server_error", str(error), "Retry later."
            )
