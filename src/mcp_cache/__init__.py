"""mcp-cache - response management wrapper for any stdio MCP server."""

__version__ = "0.1.0"
