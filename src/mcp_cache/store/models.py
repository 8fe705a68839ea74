"""Cached response records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from mcp_cache.query.render import JsonValue


def utcnow() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class ResponseMetadata:
    """Everything known about a cached response except the payload itself.

    Persisted next to the payload, and the only view of a cached response that
    list_responses / get_response_info ever expose.
    """

    id: str
    tool: str
    size_bytes: int
    created_at: datetime
    expires_at: datetime
    client: str
    chunks: int
    indexed: bool = False

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tool": self.tool,
            "sizeBytes": self.size_bytes,
            "createdAt": format_timestamp(self.created_at),
            "expiresAt": format_timestamp(self.expires_at),
            "client": self.client,
            "chunks": self.chunks,
            "indexed": self.indexed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResponseMetadata:
        """Parse a persisted metadata record.

        Raises:
            KeyError, TypeError, ValueError: The record is malformed.
        """
        return cls(
            id=str(data["id"]),
            tool=str(data["tool"]),
            size_bytes=int(data["sizeBytes"]),
            created_at=parse_timestamp(data["createdAt"]),
            expires_at=parse_timestamp(data["expiresAt"]),
            client=str(data.get("client", "unknown")),
            chunks=int(data["chunks"]),
            indexed=bool(data.get("indexed", False)),
        )


@dataclass(frozen=True)
class CachedPayload:
    """A cached response together with its metadata."""

    metadata: ResponseMetadata
    value: JsonValue
