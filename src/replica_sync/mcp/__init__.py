"""MCP stdio transport for the replication service."""
