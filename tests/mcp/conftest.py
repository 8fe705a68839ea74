"""Shared fixtures for MCP layer tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from mcp_cache.config.models import CacheConfig
from mcp_cache.mcp.proxy import CacheProxy
from mcp_cache.store.cache import ResponseStore

Responder = Callable[[dict[str, Any] | None], Any]


class FakeTransport:
    """In-memory stand-in for TargetTransport.

    Each method is answered by a scripted value, a callable taking the params,
    or an exception instance which is raised.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Any] = {
            "initialize": {
                "protocolVersion": "2024-11-05",
                "capabilities": {"tools": {}},
                "serverInfo": {"name": "fake-target", "version": "1.0.0"},
            },
            "tools/list": {"tools": []},
        }
        self.requests: list[tuple[str, dict[str, Any] | None]] = []
        self.notifications: list[str] = []
        self.events: list[str] = []
        self.listeners: list[Any] = []
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True
        self.events.append("start")

    async def stop(self) -> None:
        self.stopped = True
        self.events.append("stop")

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        self.requests.append((method, params))
        self.events.append(method)
        answer = self.responses.get(method)
        if isinstance(answer, BaseException):
            raise answer
        if callable(answer):
            return answer(params)
        return answer

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        self.notifications.append(method)
        self.events.append(method)

    def on_notification(self, handler: Any) -> None:
        self.listeners.append(handler)
        self.events.append("listen")

    def calls(self, method: str) -> list[dict[str, Any] | None]:
        return [params for name, params in self.requests if name == method]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config(tmp_path: Path) -> CacheConfig:
    return CacheConfig(cache_dir=tmp_path / "cache", max_tokens=1000, chunk_size=100)


@pytest.fixture
def store(config: CacheConfig) -> ResponseStore:
    return ResponseStore(config.cache_dir, config.ttl, config.chunk_size)


@pytest.fixture
def proxy(transport: FakeTransport, store: ResponseStore, config: CacheConfig) -> CacheProxy:
    return CacheProxy(transport, store, config)  # type: ignore[arg-type]


def tool_text(result: dict[str, Any]) -> str:
    """Text of a single-item CallToolResult-shaped dict."""
    (item,) = result["content"]
    assert item["type"] == "text"
    return item["text"]


@pytest.fixture
def text_of() -> Callable[[dict[str, Any]], str]:
    return tool_text
