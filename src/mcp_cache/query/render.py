"""Canonical renderings of cached JSON values.

Two serializations exist and every component agrees on which one it uses:

- compact (no whitespace) is what gets persisted and what the size gate and
  ``sizeBytes`` measure, in UTF-8 bytes
- canonical (indent=2) is the text that search and chunking operate on,
  measured in characters
"""

from __future__ import annotations

import json
import math
from typing import Union

JsonValue = Union[None, bool, int, float, str, list["JsonValue"], dict[str, "JsonValue"]]


def render_canonical(value: JsonValue) -> str:
    """Indented rendering used for line search and chunking."""
    return json.dumps(value, indent=2, ensure_ascii=False)


def serialize_compact(value: JsonValue) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def compact_size(value: JsonValue) -> int:
    """UTF-8 byte length of the compact serialization."""
    return len(serialize_compact(value).encode("utf-8"))


def count_chunks(text_length: int, chunk_size: int) -> int:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return math.ceil(text_length / chunk_size)
