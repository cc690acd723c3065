"""ToolSpec and ToolRegistry for MCP tool dispatch.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, whether the tool
  writes to the target store, and an async handler with the standardized
  signature (services, args) -> CallToolResult.
- ToolRegistry: Drops write tools in read-only mode at construction time,
  then dispatches calls and turns exceptions into error results.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import mcp.types as types

from ...exceptions import ReplicaSyncError

if TYPE_CHECKING:
    from ...services import ReplicaServices

logger = logging.getLogger(__name__)

ToolHandler = Callable[["ReplicaServices", dict], Awaitable[types.CallToolResult]]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """One tool: its definition, whether it writes, and its handler.

    Attributes:
        tool: Definition advertised by list_tools.
        writes: True if the tool writes to the target store.
        handler: Async handler with signature (services, args) -> CallToolResult.
    """

    tool: types.Tool
    writes: bool
    handler: ToolHandler


class ToolRegistry:
    """Registry of ToolSpecs, optionally restricted to read-only tools."""

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec
            for spec in specs
            if not (read_only and spec.writes)
        }

    def list_tools(self) -> list[types.Tool]:
        """Return the tool definitions of all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        services: ReplicaServices,
    ) -> types.CallToolResult:
        """Dispatch a tool call to its handler.

        Replication errors, validation errors, and unexpected exceptions
        are translated into structured CallToolResult responses.

        Raises:
            ValueError: *name* is unknown or was dropped by read-only mode.
        """
        from .errors import build_error_response, translate_replica_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(services, args)
        except ReplicaSyncError as e:
            logger.warning("Tool %s failed: %s", name, e)
            return translate_replica_error(e)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Fix the arguments and call the tool again.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and retry later.",
            )
