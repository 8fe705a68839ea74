"""mcp-cache error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Transport (wrapped server connection)
- 4xxx: Store
- 5xxx: Query
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Transport (3xxx)
    SPAWN_FAILED = 3001
    REMOTE_ERROR = 3002
    REQUEST_TIMEOUT = 3003
    CONNECTION_CLOSED = 3004

    # Store (4xxx)
    RESPONSE_NOT_FOUND = 4001

    # Query (5xxx)
    QUERY_INVALID = 5001
    CHUNK_OUT_OF_RANGE = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class CacheProxyError(Exception):
    """Base error with structured context for MCP responses."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON/MCP responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CacheProxyError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class SpawnError(CacheProxyError):
    """The wrapped server process could not be launched."""

    @classmethod
    def launch_failed(cls, command: str, reason: str) -> "SpawnError":
        return cls(
            code=ErrorCode.SPAWN_FAILED,
            message=f"Failed to start '{command}': {reason}",
            details={"command": command, "reason": reason},
        )


class RemoteError(CacheProxyError):
    """The wrapped server answered a request with a JSON-RPC error."""

    @property
    def remote_code(self) -> int | None:
        code = self.details.get("remote_code")
        return code if isinstance(code, int) else None

    @classmethod
    def from_response(cls, method: str, error: Any) -> "RemoteError":
        if isinstance(error, dict):
            message = error.get("message") or "Unknown error"
            remote_code = error.get("code")
            data = error.get("data")
        else:
            message, remote_code, data = "Unknown error", None, None
        return cls(
            code=ErrorCode.REMOTE_ERROR,
            message=str(message),
            details={"method": method, "remote_code": remote_code, "data": data},
        )


class RequestTimeoutError(CacheProxyError):
    """No correlated response arrived before the request deadline."""

    @classmethod
    def after(cls, method: str, request_id: int, timeout: float) -> "RequestTimeoutError":
        return cls(
            code=ErrorCode.REQUEST_TIMEOUT,
            message=f"Request timeout: {method}",
            retryable=True,
            details={"method": method, "request_id": request_id, "timeout_sec": timeout},
        )


class ConnectionClosedError(CacheProxyError):
    """The wrapped server exited or the transport was stopped."""

    @classmethod
    def closed(cls, reason: str, exit_code: int | None = None) -> "ConnectionClosedError":
        return cls(
            code=ErrorCode.CONNECTION_CLOSED,
            message=f"Connection closed: {reason}",
            details={"reason": reason, "exit_code": exit_code},
        )


class NotFoundError(CacheProxyError):
    """Unknown or expired cached response."""

    @classmethod
    def response(cls, response_id: str, *, or_expired: bool = True) -> "NotFoundError":
        suffix = " or expired" if or_expired else ""
        return cls(
            code=ErrorCode.RESPONSE_NOT_FOUND,
            message=f"Response {response_id} not found{suffix}",
            details={"response_id": response_id},
        )

    @classmethod
    def refresh_failed(cls, response_id: str) -> "NotFoundError":
        return cls(
            code=ErrorCode.RESPONSE_NOT_FOUND,
            message=f"Failed to refresh {response_id}",
            details={"response_id": response_id},
        )


class QueryError(CacheProxyError):
    """Malformed JSONPath, regex or query options."""

    @classmethod
    def invalid(cls, reason: str, **details: Any) -> "QueryError":
        return cls(
            code=ErrorCode.QUERY_INVALID,
            message=reason,
            details=details,
        )


class ChunkRangeError(CacheProxyError):
    """Chunk index outside the payload's chunk range."""

    @classmethod
    def out_of_range(cls, chunk_number: int, total_chunks: int) -> "ChunkRangeError":
        return cls(
            code=ErrorCode.CHUNK_OUT_OF_RANGE,
            message=f"Invalid chunk number. Valid range: 0-{total_chunks - 1}",
            details={"chunk_number": chunk_number, "total_chunks": total_chunks},
        )


class InternalError(CacheProxyError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
