"""TTL-bounded disk store for oversized responses.

Layout (one pair of files per cached response):

    <cache_dir>/<id>.json        payload, compact JSON
    <cache_dir>/<id>.meta.json   metadata, indented JSON

Both files are written through a temporary file and ``os.replace`` so readers
never see a partial record. The payload is written first and the metadata last:
a metadata file is the commit marker, a payload without one is an orphan that
no operation reports and that ``cleanup`` removes once it is older than the TTL.

All filesystem work runs in worker threads so the event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import secrets
import tempfile
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path

import structlog

from mcp_cache.config.constants import (
    METADATA_SUFFIX,
    PAYLOAD_SUFFIX,
    RESPONSE_ID_PREFIX,
    RESPONSE_ID_RANDOM_BYTES,
)
from mcp_cache.query.render import (
    JsonValue,
    count_chunks,
    render_canonical,
    serialize_compact,
)
from mcp_cache.store.models import CachedPayload, ResponseMetadata, utcnow

log = structlog.get_logger(__name__)

RESPONSE_ID_RE = re.compile(
    rf"{re.escape(RESPONSE_ID_PREFIX)}[0-9a-f]{{{RESPONSE_ID_RANDOM_BYTES * 2}}}"
)

_TEMP_PREFIX = ".tmp-"


def new_response_id() -> str:
    return RESPONSE_ID_PREFIX + secrets.token_hex(RESPONSE_ID_RANDOM_BYTES)


def is_valid_response_id(response_id: str) -> bool:
    return bool(RESPONSE_ID_RE.fullmatch(response_id))


class ResponseStore:
    """Persistent cache of responses keyed by random ids."""

    def __init__(
        self,
        cache_dir: Path,
        ttl_seconds: int,
        chunk_size: int,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.cache_dir = Path(cache_dir)
        self.ttl = timedelta(seconds=ttl_seconds)
        self.chunk_size = chunk_size
        self._clock = clock

    # =========================================================================
    # Public API
    # =========================================================================

    async def save(self, tool: str, value: JsonValue, client: str) -> str:
        """Persist a response and return its fresh id."""
        return await asyncio.to_thread(self._save, tool, value, client)

    async def get(self, response_id: str) -> JsonValue | None:
        """Return the cached value, or None when unknown or expired.

        Expired records are deleted on the way out.
        """
        payload = await self.load(response_id)
        return payload.value if payload is not None else None

    async def load(self, response_id: str) -> CachedPayload | None:
        """Like get, but returns the value together with its metadata."""
        return await asyncio.to_thread(self._load, response_id)

    async def get_metadata(self, response_id: str) -> ResponseMetadata | None:
        """Return metadata without any expiry side effect."""
        return await asyncio.to_thread(self._read_metadata, response_id)

    async def delete(self, response_id: str) -> bool:
        """Remove both records. False if either one was already missing."""
        return await asyncio.to_thread(self._delete, response_id)

    async def list(self) -> list[ResponseMetadata]:
        """All metadata records ordered by creation time, expired ones included."""
        return await asyncio.to_thread(self._list)

    async def refresh(self, response_id: str) -> bool:
        """Push expiry out to now + ttl. Never shortens the lifetime."""
        return await asyncio.to_thread(self._refresh, response_id)

    async def cleanup(self) -> int:
        """Delete expired records and stale orphans. Returns expired records removed."""
        return await asyncio.to_thread(self._cleanup)

    async def get_cache_size(self) -> int:
        """Total bytes used by the cache directory."""
        return await asyncio.to_thread(self._cache_size)

    # =========================================================================
    # Paths
    # =========================================================================

    def _payload_path(self, response_id: str) -> Path:
        return self.cache_dir / f"{response_id}{PAYLOAD_SUFFIX}"

    def _metadata_path(self, response_id: str) -> Path:
        return self.cache_dir / f"{response_id}{METADATA_SUFFIX}"

    def _write_atomic(self, path: Path, text: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=_TEMP_PREFIX, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # =========================================================================
    # Sync implementations (run in worker threads)
    # =========================================================================

    def _save(self, tool: str, value: JsonValue, client: str) -> str:
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        compact = serialize_compact(value)
        while True:
            response_id = new_response_id()
            if not (
                self._payload_path(response_id).exists()
                or self._metadata_path(response_id).exists()
            ):
                break

        now = self._clock()
        metadata = ResponseMetadata(
            id=response_id,
            tool=tool,
            size_bytes=len(compact.encode("utf-8")),
            created_at=now,
            expires_at=now + self.ttl,
            client=client,
            chunks=count_chunks(len(render_canonical(value)), self.chunk_size),
        )

        self._write_atomic(self._payload_path(response_id), compact)
        self._write_atomic(
            self._metadata_path(response_id), json.dumps(metadata.to_dict(), indent=2)
        )

        log.info(
            "response_cached",
            response_id=response_id,
            tool=tool,
            size_bytes=metadata.size_bytes,
            chunks=metadata.chunks,
        )
        return response_id

    def _read_metadata(self, response_id: str) -> ResponseMetadata | None:
        if not is_valid_response_id(response_id):
            return None
        try:
            raw = self._metadata_path(response_id).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return ResponseMetadata.from_dict(json.loads(raw))
        except (KeyError, TypeError, ValueError) as e:
            log.warning("metadata_unreadable", response_id=response_id, error=str(e))
            return None

    def _load(self, response_id: str) -> CachedPayload | None:
        metadata = self._read_metadata(response_id)
        if metadata is None:
            return None

        if metadata.is_expired(self._clock()):
            self._delete(response_id)
            log.debug("response_expired", response_id=response_id)
            return None

        try:
            raw = self._payload_path(response_id).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            value = json.loads(raw)
        except ValueError as e:
            log.warning("payload_unreadable", response_id=response_id, error=str(e))
            return None
        return CachedPayload(metadata=metadata, value=value)

    def _delete(self, response_id: str) -> bool:
        if not is_valid_response_id(response_id):
            return False

        removed = True
        # Metadata first: without it the payload is an unreachable orphan.
        for path in (self._metadata_path(response_id), self._payload_path(response_id)):
            try:
                path.unlink()
            except FileNotFoundError:
                removed = False
        if removed:
            log.debug("response_deleted", response_id=response_id)
        return removed

    def _metadata_ids(self) -> list[str]:
        if not self.cache_dir.is_dir():
            return []
        ids = (p.name[: -len(METADATA_SUFFIX)] for p in self.cache_dir.glob(f"*{METADATA_SUFFIX}"))
        return [response_id for response_id in ids if is_valid_response_id(response_id)]

    def _list(self) -> list[ResponseMetadata]:
        records = [
            metadata
            for metadata in map(self._read_metadata, self._metadata_ids())
            if metadata is not None
        ]
        records.sort(key=lambda m: m.created_at)
        return records

    def _refresh(self, response_id: str) -> bool:
        metadata = self._read_metadata(response_id)
        if metadata is None:
            return False

        now = self._clock()
        if metadata.is_expired(now):
            self._delete(response_id)
            log.debug("response_expired", response_id=response_id)
            return False

        refreshed = replace(metadata, expires_at=max(metadata.expires_at, now + self.ttl))
        self._write_atomic(
            self._metadata_path(response_id), json.dumps(refreshed.to_dict(), indent=2)
        )
        log.debug("response_refreshed", response_id=response_id)
        return True

    def _cleanup(self) -> int:
        if not self.cache_dir.is_dir():
            return 0

        now = self._clock()
        removed = 0
        for response_id in self._metadata_ids():
            metadata = self._read_metadata(response_id)
            if metadata is not None and metadata.expires_at < now:
                self._delete(response_id)
                removed += 1

        orphans = self._remove_orphans(now)
        if removed or orphans:
            log.info("sweep_completed", removed=removed, orphans=orphans)
        return removed

    def _remove_orphans(self, now: datetime) -> int:
        cutoff = (now - self.ttl).timestamp()
        orphans = 0
        for path in self.cache_dir.iterdir():
            if not self._is_orphan(path.name):
                continue
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    orphans += 1
            except FileNotFoundError:
                continue
        return orphans

    def _is_orphan(self, name: str) -> bool:
        """Leftover temp file, or a payload whose metadata was never written."""
        if name.startswith(_TEMP_PREFIX):
            return True
        if not name.endswith(PAYLOAD_SUFFIX) or name.endswith(METADATA_SUFFIX):
            return False
        response_id = name[: -len(PAYLOAD_SUFFIX)]
        return is_valid_response_id(response_id) and not self._metadata_path(response_id).exists()

    def _cache_size(self) -> int:
        if not self.cache_dir.is_dir():
            return 0
        total = 0
        for path in self.cache_dir.iterdir():
            try:
                if path.is_file():
                    total += path.stat().st_size
            except FileNotFoundError:
                continue
        return total
