"""Orchestration between the MCP client, the wrapped server and the cache.

CacheProxy owns the session with the wrapped server and decides, per call,
whether a call is a management call (answered locally from the store) or a
pass-through call (forwarded, then measured by the size gate).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog
from pydantic import ValidationError

from mcp_cache import __version__
from mcp_cache.config.constants import PROTOCOL_VERSION, PROXY_NAME
from mcp_cache.core.errors import CacheProxyError, InternalError
from mcp_cache.mcp import tools as _tools  # noqa: F401  (registers management tools)
from mcp_cache.mcp.context import AppContext
from mcp_cache.mcp.delivery import (
    SIZE_VIOLATION_TEXT,
    cached_summary,
    inline_limit_bytes,
    is_size_violation,
    measure,
    text_result,
)
from mcp_cache.mcp.registry import ToolSpec, registry
from mcp_cache.store.sweeper import CleanupSweeper

if TYPE_CHECKING:
    from mcp_cache.config.models import CacheConfig
    from mcp_cache.config.presets import ClientInfo
    from mcp_cache.store.cache import ResponseStore
    from mcp_cache.transport.target import NotificationHandler

log = structlog.get_logger(__name__)


class Transport(Protocol):
    """What the proxy needs from a connection to the wrapped server."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> Any: ...

    async def send_notification(
        self, method: str, params: dict[str, Any] | None = None
    ) -> None: ...

    def on_notification(self, handler: NotificationHandler) -> None: ...


def _error_message(error: Exception) -> str:
    if isinstance(error, CacheProxyError):
        return error.message
    if isinstance(error, ValidationError):
        first = error.errors()[0]
        field = ".".join(str(loc) for loc in first["loc"]) or "arguments"
        return f"Invalid arguments: {field}: {first['msg']}"
    return str(error)


class CacheProxy:
    """Session with the wrapped server plus the size gate and management tools."""

    def __init__(
        self,
        transport: Transport,
        store: ResponseStore,
        config: CacheConfig,
        *,
        sweeper: CleanupSweeper | None = None,
    ) -> None:
        self.transport = transport
        self.store = store
        self.config = config
        self.sweeper = sweeper or CleanupSweeper(store, interval=config.cleanup_interval_sec)
        self.context = AppContext(store=store, config=config)

        self.client_label = "unknown"
        self.client_detected = False
        self.target_info: dict[str, Any] | None = None
        self._remote_tools: list[dict[str, Any]] | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Spawn and initialize the wrapped server, then start the sweeper.

        Raises:
            SpawnError: The wrapped server could not be launched.
            CacheProxyError: The initialize handshake failed.
        """
        self.transport.on_notification(self._on_target_notification)
        await self.transport.start()

        result = await self.transport.send_request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": PROXY_NAME, "version": __version__},
            },
        )
        server_info = result.get("serverInfo") if isinstance(result, dict) else None
        self.target_info = server_info if isinstance(server_info, dict) else None

        await self.transport.send_notification("notifications/initialized")
        self.sweeper.start()

        log.info(
            "proxy_started",
            target=(self.target_info or {}).get("name"),
            target_version=(self.target_info or {}).get("version"),
            max_tokens=self.config.max_tokens,
        )

    async def stop(self) -> None:
        await self.sweeper.stop()
        await self.transport.stop()
        log.info("proxy_stopped")

    def set_client(self, client_info: ClientInfo, config: CacheConfig) -> None:
        """Record the client identity and the configuration resolved for it."""
        self.client_label = client_info.name
        self.client_detected = True
        self.config = config
        self.context.config = config
        log.info(
            "client_detected",
            client=client_info.name,
            client_version=client_info.version,
            max_tokens=config.max_tokens,
        )

    # =========================================================================
    # Tool catalog
    # =========================================================================

    async def list_tools(self) -> list[dict[str, Any]]:
        """Remote tools (fetched once) followed by the management tools."""
        remote = await self._fetch_remote_tools()
        return [*remote, *(spec.to_descriptor() for spec in registry.get_all())]

    async def _fetch_remote_tools(self) -> list[dict[str, Any]]:
        if self._remote_tools is not None:
            return self._remote_tools

        try:
            result = await self.transport.send_request("tools/list")
        except CacheProxyError as e:
            log.warning("remote_tools_unavailable", error=e.message)
            return []

        tools = result.get("tools") if isinstance(result, dict) else None
        self._remote_tools = [t for t in tools or [] if isinstance(t, dict)]
        log.info("remote_tools_cached", count=len(self._remote_tools))
        return self._remote_tools

    # =========================================================================
    # Calls
    # =========================================================================

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> Any:
        """Route a call: management tools locally, everything else to the target."""
        spec = registry.get(name)
        if spec is not None:
            return await self._call_management(spec, arguments or {})
        return await self._forward(name, arguments or {})

    async def _call_management(self, spec: ToolSpec, arguments: dict[str, Any]) -> dict[str, Any]:
        try:
            params = spec.params_model.model_validate(arguments)
            text = await spec.handler(self.context, params)
        except Exception as e:
            log.warning("management_tool_error", tool=spec.name, error=_error_message(e))
            return text_result(f"Error: {_error_message(e)}")

        log.debug("management_tool_complete", tool=spec.name, chars=len(text))
        return text_result(text)

    async def _forward(self, name: str, arguments: dict[str, Any]) -> Any:
        try:
            response = await self.transport.send_request(
                "tools/call", {"name": name, "arguments": arguments}
            )

            size = measure(response)
            limit = inline_limit_bytes(self.config.max_tokens)
            if size <= limit:
                log.debug("response_inline", tool=name, size_bytes=size, limit_bytes=limit)
                return response

            response_id = await self.store.save(name, response, self.client_label)
            metadata = await self.store.get_metadata(response_id)
            if metadata is None:
                raise InternalError.unexpected(
                    "cached response vanished before it was summarized", response_id=response_id
                )
            log.info("response_parked", tool=name, response_id=response_id, size_bytes=size)
            return text_result(cached_summary(metadata))
        except Exception as e:
            message = _error_message(e)
            if is_size_violation(message):
                log.warning("response_size_violation", tool=name, error=message)
                return text_result(SIZE_VIOLATION_TEXT)
            log.warning("forward_failed", tool=name, error=message)
            return text_result(f"Error calling {name}: {message}", is_error=True)

    async def _on_target_notification(self, message: dict[str, Any]) -> None:
        log.debug("target_notification", method=message.get("method"))
