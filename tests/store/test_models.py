"""Tests for store/models.py module."""

from datetime import UTC, datetime, timedelta

from mcp_cache.store.models import ResponseMetadata, format_timestamp, parse_timestamp

CREATED = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=UTC)


def make_metadata(**overrides: object) -> ResponseMetadata:
    fields: dict = {
        "id": "resp_0123456789ab",
        "tool": "fetch",
        "size_bytes": 2048,
        "created_at": CREATED,
        "expires_at": CREATED + timedelta(hours=1),
        "client": "cursor",
        "chunks": 3,
    }
    fields.update(overrides)
    return ResponseMetadata(**fields)


class TestTimestamps:
    """Tests for timestamp helpers."""

    def test_format_uses_z_suffix_and_milliseconds(self) -> None:
        assert format_timestamp(CREATED) == "2025-01-02T03:04:05.678Z"

    def test_parse_z_suffix(self) -> None:
        assert parse_timestamp("2025-01-02T03:04:05.678Z") == CREATED

    def test_parse_naive_is_utc(self) -> None:
        assert parse_timestamp("2025-01-02T03:04:05.678") == CREATED


class TestResponseMetadata:
    """Tests for ResponseMetadata."""

    def test_to_dict_uses_wire_names(self) -> None:
        assert make_metadata().to_dict() == {
            "id": "resp_0123456789ab",
            "tool": "fetch",
            "sizeBytes": 2048,
            "createdAt": "2025-01-02T03:04:05.678Z",
            "expiresAt": "2025-01-02T04:04:05.678Z",
            "client": "cursor",
            "chunks": 3,
            "indexed": False,
        }

    def test_from_dict_reverses_to_dict(self) -> None:
        metadata = make_metadata(indexed=True)
        assert ResponseMetadata.from_dict(metadata.to_dict()) == metadata

    def test_is_expired_only_after_expiry(self) -> None:
        metadata = make_metadata()
        assert not metadata.is_expired(metadata.expires_at)
        assert metadata.is_expired(metadata.expires_at + timedelta(milliseconds=1))
