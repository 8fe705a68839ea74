"""MCP-facing layer: proxy orchestration, management tools and server wiring."""

from mcp_cache.mcp.context import AppContext
from mcp_cache.mcp.proxy import CacheProxy
from mcp_cache.mcp.registry import ToolRegistry, ToolSpec, registry

__all__ = ["AppContext", "CacheProxy", "ToolRegistry", "ToolSpec", "registry"]
