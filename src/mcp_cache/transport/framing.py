"""Newline-delimited JSON-RPC framing."""

from __future__ import annotations

import json
from typing import Any


class LineBuffer:
    """Accumulates raw bytes and yields complete newline-terminated lines.

    The fragment after the last newline is retained until the next feed.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        """Append data and return every complete, non-blank line."""
        self._buffer.extend(data)
        if b"\n" not in data:
            return []

        *complete, rest = self._buffer.split(b"\n")
        self._buffer = bytearray(rest)
        return [bytes(line) for line in (raw.strip() for raw in complete) if line]

    @property
    def pending(self) -> int:
        """Bytes held back waiting for a terminating newline."""
        return len(self._buffer)


def encode_message(message: dict[str, Any]) -> bytes:
    """Serialize one JSON-RPC message as a single framed line."""
    return json.dumps(message, ensure_ascii=False, separators=(",", ":")).encode("utf-8") + b"\n"
