"""MCP tool handlers for replication control and record lookups.

Each module exposes a ``*_SPECS`` list of ``ToolSpec`` objects that the
server feeds into a ``ToolRegistry``.
"""

from .errors import build_error_response, translate_replica_error
from .records import RECORD_SPECS, RECORD_TOOLS
from .registry import ToolRegistry, ToolSpec
from .sync import SYNC_SPECS, SYNC_TOOLS

ALL_SPECS: list[ToolSpec] = SYNC_SPECS + RECORD_SPECS

__all__ = [
    "build_error_response",
    "translate_replica_error",
    "ToolSpec",
    "ToolRegistry",
    "ALL_SPECS",
    "SYNC_SPECS",
    "SYNC_TOOLS",
    "RECORD_SPECS",
    "RECORD_TOOLS",
]
