"""Tests for mcp/delivery.py module."""

from datetime import UTC, datetime, timedelta

import pytest

from mcp_cache.mcp.delivery import (
    cached_summary,
    inline_limit_bytes,
    is_size_violation,
    measure,
    text_result,
)
from mcp_cache.store.models import ResponseMetadata


class TestInlineLimit:
    """Tests for inline_limit_bytes."""

    @pytest.mark.parametrize(
        ("max_tokens", "expected"),
        [
            (20000, 80000),
            (25000, 100000),
            (225000, 900000),
            (300000, 900000),
            (10**9, 900000),
        ],
    )
    def test_limit_is_tokens_times_four_capped(self, max_tokens: int, expected: int) -> None:
        assert inline_limit_bytes(max_tokens) == expected


class TestMeasure:
    """Tests for measure."""

    def test_counts_compact_utf8_bytes(self) -> None:
        """Whitespace is not counted and non-ASCII counts per byte."""
        assert measure({"a": [1, 2]}) == len('{"a":[1,2]}')
        assert measure("é") == 4  # quotes + two bytes

    def test_string_at_limit_measures_exactly_the_limit(self) -> None:
        at_limit = "x" * (80000 - 2)
        assert measure(at_limit) == inline_limit_bytes(20000)


class TestCachedSummary:
    """Tests for cached_summary."""

    def test_summary_text(self) -> None:
        created = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
        metadata = ResponseMetadata(
            id="resp_a1b2c3d4e5f6",
            tool="browser_snapshot",
            size_bytes=1_048_576,
            created_at=created,
            expires_at=created + timedelta(hours=1),
            client="claude-code",
            chunks=105,
        )

        assert cached_summary(metadata) == (
            "Response too large (1024.00KB, 105 chunks). Saved as resp_a1b2c3d4e5f6.\n\n"
            "Use query_response('resp_a1b2c3d4e5f6', '<query>') to search.\n"
            "Use get_chunk('resp_a1b2c3d4e5f6', 0) to read first chunk.\n\n"
            "Expires: 2025-06-01T13:00:00.000Z"
        )


class TestSizeViolation:
    """Tests for is_size_violation."""

    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("String exceeds maximum length", True),
            ("maximum length reached", True),
            ("payload exceeds limit", True),
            ("Request timeout: tools/call", False),
            ("Connection closed: target process exited", False),
        ],
    )
    def test_markers(self, message: str, expected: bool) -> None:
        assert is_size_violation(message) is expected


class TestTextResult:
    """Tests for text_result."""

    def test_plain(self) -> None:
        assert text_result("hi") == {"content": [{"type": "text", "text": "hi"}]}

    def test_error_flag(self) -> None:
        assert text_result("bad", is_error=True)["isError"] is True
