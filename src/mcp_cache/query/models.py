"""Query options and result shapes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from mcp_cache.config.constants import QUERY_CONTEXT_LINES_DEFAULT, QUERY_LIMIT_DEFAULT


class QueryMode(StrEnum):
    TEXT = "text"
    JSONPATH = "jsonpath"
    REGEX = "regex"


@dataclass(frozen=True)
class QueryOptions:
    """Per-call query settings. ``mode=None`` means auto-detect."""

    mode: QueryMode | None = None
    limit: int = QUERY_LIMIT_DEFAULT
    offset: int = 0
    context_lines: int = QUERY_CONTEXT_LINES_DEFAULT
    case_sensitive: bool = False
    chunk_size: int | None = None


@dataclass(frozen=True)
class QueryResult:
    """One page of matches."""

    results: list[Any]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": self.results,
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "hasMore": self.has_more,
        }


@dataclass(frozen=True)
class ChunkResult:
    """A fixed-size slice of the canonical rendering."""

    chunk: str
    chunk_number: int
    total_chunks: int

    @property
    def has_more(self) -> bool:
        return self.chunk_number < self.total_chunks - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk": self.chunk,
            "chunkNumber": self.chunk_number,
            "totalChunks": self.total_chunks,
            "chunkSize": len(self.chunk),
            "hasMore": self.has_more,
        }
