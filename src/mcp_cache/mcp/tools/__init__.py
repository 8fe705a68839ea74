"""MCP tool handlers."""

from mcp_cache.mcp.tools import responses

__all__ = ["responses"]
