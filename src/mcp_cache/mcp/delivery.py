"""Delivery decisions for forwarded tool responses.

Provides:
- inline_limit_bytes: size gate threshold for a client token budget
- measure: payload size used by the gate
- cached_summary: text returned in place of a parked payload
- is_size_violation / SIZE_VIOLATION_TEXT: remote size-limit failures
- text_result: CallToolResult-shaped text responses
"""

from __future__ import annotations

from typing import Any

from mcp_cache.config.constants import BYTES_PER_TOKEN, MCP_SDK_LIMIT_BYTES
from mcp_cache.query.render import JsonValue, compact_size
from mcp_cache.store.models import ResponseMetadata, format_timestamp

SIZE_VIOLATION_MARKERS = ("maximum length", "exceeds")

SIZE_VIOLATION_TEXT = (
    "Response exceeded MCP protocol size limit (1MB). This is a known issue.\n\n"
    "The response was too large to cache. Please try:\n"
    "1. Using more specific queries (e.g., CSS selectors)\n"
    "2. Breaking the operation into smaller parts\n"
    "3. Using simpler tools that return less data"
)


def inline_limit_bytes(max_tokens: int) -> int:
    """Largest payload returned inline: ``min(900_000, max_tokens * 4)``."""
    return min(MCP_SDK_LIMIT_BYTES, max_tokens * BYTES_PER_TOKEN)


def measure(response: JsonValue) -> int:
    """UTF-8 byte length of the compact serialization."""
    return compact_size(response)


def cached_summary(metadata: ResponseMetadata) -> str:
    """Summary text that replaces a payload parked in the store."""
    response_id = metadata.id
    size_kb = metadata.size_bytes / 1024
    return (
        f"Response too large ({size_kb:.2f}KB, {metadata.chunks} chunks). "
        f"Saved as {response_id}.\n\n"
        f"Use query_response('{response_id}', '<query>') to search.\n"
        f"Use get_chunk('{response_id}', 0) to read first chunk.\n\n"
        f"Expires: {format_timestamp(metadata.expires_at)}"
    )


def is_size_violation(message: str) -> bool:
    """Heuristic for transport-level message size failures."""
    return any(marker in message for marker in SIZE_VIOLATION_MARKERS)


def text_result(text: str, *, is_error: bool = False) -> dict[str, Any]:
    """Single text content item in CallToolResult shape."""
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result
