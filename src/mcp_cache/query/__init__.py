"""Query engine over cached responses."""

from mcp_cache.query.engine import compile_regex, detect_mode, extract_chunk, query
from mcp_cache.query.models import ChunkResult, QueryMode, QueryOptions, QueryResult
from mcp_cache.query.render import (
    JsonValue,
    compact_size,
    count_chunks,
    render_canonical,
    serialize_compact,
)

__all__ = [
    "ChunkResult",
    "JsonValue",
    "QueryMode",
    "QueryOptions",
    "QueryResult",
    "compact_size",
    "compile_regex",
    "count_chunks",
    "detect_mode",
    "extract_chunk",
    "query",
    "render_canonical",
    "serialize_compact",
]
