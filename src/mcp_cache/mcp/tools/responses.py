"""Management tools over cached responses.

Six tools, handled locally and never forwarded:
- query_response: text / regex / JSONPath search with pagination
- get_chunk: fixed-size slice of the canonical rendering
- list_responses, get_response_info: metadata views
- refresh_response, delete_response: lifecycle
"""

import asyncio
import json
from typing import TYPE_CHECKING

from mcp_cache.config.constants import QUERY_LIMIT_DEFAULT, QUERY_RESULT_MAX_CHARS
from mcp_cache.core.errors import NotFoundError
from mcp_cache.mcp.registry import registry
from mcp_cache.mcp.tools.base import RESPONSE_ID_PROPERTY, BaseParams, ResponseIdParams
from mcp_cache.query import QueryMode, QueryOptions, extract_chunk, query
from mcp_cache.store.models import format_timestamp

if TYPE_CHECKING:
    from mcp_cache.mcp.context import AppContext


# =============================================================================
# Parameter Models
# =============================================================================


class QueryResponseParams(BaseParams):
    response_id: str
    query: str
    mode: QueryMode | None = None
    limit: int | None = None


class GetChunkParams(BaseParams):
    response_id: str
    chunk_number: int


class ListResponsesParams(BaseParams):
    pass


def _response_id_schema() -> dict:
    return {
        "type": "object",
        "properties": {"response_id": dict(RESPONSE_ID_PROPERTY)},
        "required": ["response_id"],
    }


# =============================================================================
# Tool Handlers
# =============================================================================


@registry.register(
    "query_response",
    "Query a cached large response using text search, JSONPath, or regex. "
    "IMPORTANT: Use limit parameter to control result size - start with limit=10 "
    "for large datasets.",
    QueryResponseParams,
    {
        "type": "object",
        "properties": {
            "response_id": dict(RESPONSE_ID_PROPERTY),
            "query": {
                "type": "string",
                "description": (
                    "Query string (JSONPath starts with $, regex in /pattern/, text otherwise)"
                ),
            },
            "mode": {
                "type": "string",
                "enum": ["text", "jsonpath", "regex"],
                "description": "Query mode (auto-detected if not specified)",
            },
            "limit": {
                "type": "number",
                "description": (
                    "Maximum number of results to return "
                    "(default: 100, recommended: 10-20 for large responses)"
                ),
            },
        },
        "required": ["response_id", "query"],
    },
)
async def query_response(ctx: "AppContext", params: QueryResponseParams) -> str:
    """Search a cached response and return one page of matches as JSON."""
    value = await ctx.store.get(params.response_id)
    if value is None:
        raise NotFoundError.response(params.response_id)

    options = QueryOptions(mode=params.mode, limit=params.limit or QUERY_LIMIT_DEFAULT)
    result = await asyncio.to_thread(query, value, params.query, options)

    text = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    if len(text) <= QUERY_RESULT_MAX_CHARS:
        return text

    return (
        f"Query results are too large ({len(text) / 1024:.2f}KB). Showing first 800KB:\n\n"
        f"{text[:QUERY_RESULT_MAX_CHARS]}\n\n"
        f"[... {len(text) - QUERY_RESULT_MAX_CHARS} bytes truncated]\n\n"
        f"Total results: {result.total or 'unknown'}\n"
        "Tip: Use a more specific query or increase the 'limit' parameter to get fewer results."
    )


@registry.register(
    "get_chunk",
    "Get a specific chunk of a cached response",
    GetChunkParams,
    {
        "type": "object",
        "properties": {
            "response_id": dict(RESPONSE_ID_PROPERTY),
            "chunk_number": {
                "type": "number",
                "description": "Chunk number to retrieve (0-indexed)",
            },
        },
        "required": ["response_id", "chunk_number"],
    },
)
async def get_chunk(ctx: "AppContext", params: GetChunkParams) -> str:
    value = await ctx.store.get(params.response_id)
    if value is None:
        raise NotFoundError.response(params.response_id)

    result = await asyncio.to_thread(
        extract_chunk, value, params.chunk_number, ctx.config.chunk_size
    )
    return (
        f"Chunk {params.chunk_number + 1}/{result.total_chunks} of {params.response_id}:"
        f"\n\n{result.chunk}"
    )


@registry.register(
    "list_responses",
    "List all cached responses",
    ListResponsesParams,
    {"type": "object", "properties": {}},
)
async def list_responses(ctx: "AppContext", params: ListResponsesParams) -> str:  # noqa: ARG001
    records = await ctx.store.list()
    return json.dumps([m.to_dict() for m in records], indent=2, ensure_ascii=False)


@registry.register(
    "get_response_info",
    "Get metadata about a cached response",
    ResponseIdParams,
    _response_id_schema(),
)
async def get_response_info(ctx: "AppContext", params: ResponseIdParams) -> str:
    metadata = await ctx.store.get_metadata(params.response_id)
    if metadata is None:
        raise NotFoundError.response(params.response_id, or_expired=False)
    return json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False)


@registry.register(
    "refresh_response",
    "Refresh the TTL of a cached response",
    ResponseIdParams,
    _response_id_schema(),
)
async def refresh_response(ctx: "AppContext", params: ResponseIdParams) -> str:
    if not await ctx.store.refresh(params.response_id):
        raise NotFoundError.refresh_failed(params.response_id)

    metadata = await ctx.store.get_metadata(params.response_id)
    expiry = format_timestamp(metadata.expires_at) if metadata is not None else "unknown"
    return f"Refreshed {params.response_id}. New expiry: {expiry}"


@registry.register(
    "delete_response",
    "Delete a cached response",
    ResponseIdParams,
    _response_id_schema(),
)
async def delete_response(ctx: "AppContext", params: ResponseIdParams) -> str:
    if await ctx.store.delete(params.response_id):
        return f"Deleted {params.response_id}"
    return f"Failed to delete {params.response_id}"
