"""Store clients shared by the engine, the daemon, and the MCP server."""

from .async_utils import run_sync
from .source_store import SourceStore
from .target_store import TargetStore

__all__ = ["SourceStore", "TargetStore", "run_sync"]
