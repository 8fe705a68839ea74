"""Application context for management tool handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp_cache.config.models import CacheConfig
    from mcp_cache.store.cache import ResponseStore


@dataclass
class AppContext:
    """Context object passed to all management tool handlers.

    ``config`` is replaced (never mutated) once the client identity is known.
    """

    store: ResponseStore
    config: CacheConfig
