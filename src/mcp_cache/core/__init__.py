"""Core module exports."""

from mcp_cache.core.errors import (
    CacheProxyError,
    ChunkRangeError,
    ConfigError,
    ConnectionClosedError,
    ErrorCode,
    InternalError,
    NotFoundError,
    QueryError,
    RemoteError,
    RequestTimeoutError,
    SpawnError,
)
from mcp_cache.core.logging import (
    clear_request_id,
    configure_logging,
    get_log_file_path,
    get_request_id,
    set_request_id,
)

__all__ = [
    "CacheProxyError",
    "ChunkRangeError",
    "ConfigError",
    "ConnectionClosedError",
    "ErrorCode",
    "InternalError",
    "NotFoundError",
    "QueryError",
    "RemoteError",
    "RequestTimeoutError",
    "SpawnError",
    "clear_request_id",
    "configure_logging",
    "get_log_file_path",
    "get_request_id",
    "set_request_id",
]
