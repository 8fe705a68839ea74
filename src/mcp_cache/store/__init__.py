"""Disk store for oversized responses."""

from mcp_cache.store.cache import ResponseStore, is_valid_response_id, new_response_id
from mcp_cache.store.models import (
    CachedPayload,
    ResponseMetadata,
    format_timestamp,
    parse_timestamp,
    utcnow,
)
from mcp_cache.store.sweeper import CleanupSweeper

__all__ = [
    "CachedPayload",
    "CleanupSweeper",
    "ResponseMetadata",
    "ResponseStore",
    "format_timestamp",
    "is_valid_response_id",
    "new_response_id",
    "parse_timestamp",
    "utcnow",
]
