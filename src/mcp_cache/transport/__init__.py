"""Transport to the wrapped MCP server."""

from mcp_cache.transport.framing import LineBuffer, encode_message
from mcp_cache.transport.target import NotificationHandler, PendingRequest, TargetTransport

__all__ = [
    "LineBuffer",
    "NotificationHandler",
    "PendingRequest",
    "TargetTransport",
    "encode_message",
]
