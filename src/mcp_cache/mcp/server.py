"""MCP server creation and wiring.

The client-facing side is the MCP SDK's low-level Server on stdio. Tool
listing and calls are delegated to CacheProxy; this module only adapts
between SDK types and the plain JSON the proxy works with, and detects the
client identity on the first request that carries it.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from mcp_cache import __version__
from mcp_cache.config.constants import PROXY_NAME
from mcp_cache.config.presets import ClientInfo
from mcp_cache.core.errors import ConfigError
from mcp_cache.core.logging import clear_request_id, set_request_id

if TYPE_CHECKING:
    from mcp_cache.config.models import CacheConfig
    from mcp_cache.mcp.proxy import CacheProxy

log = structlog.get_logger(__name__)

# Recomputes the configuration once the client identity is known
ConfigFactory = Callable[[ClientInfo], "CacheConfig"]


def to_call_tool_result(result: Any) -> types.CallToolResult:
    """Adapt a proxy result to the SDK type.

    Remote results are passed through as-is when they validate; anything else
    is delivered as its JSON text.
    """
    if isinstance(result, dict):
        try:
            return types.CallToolResult.model_validate(result)
        except ValidationError:
            log.warning("remote_result_malformed", keys=sorted(result))
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(result, ensure_ascii=False))]
    )


def to_tools(descriptors: list[dict[str, Any]]) -> list[types.Tool]:
    tools: list[types.Tool] = []
    for descriptor in descriptors:
        try:
            tools.append(types.Tool.model_validate(descriptor))
        except ValidationError as e:
            log.warning(
                "tool_descriptor_invalid",
                name=descriptor.get("name"),
                error=e.errors()[0]["msg"] if e.errors() else str(e),
            )
    return tools


def _detect_client(
    server: Server[Any, Any],
    proxy: CacheProxy,
    config_factory: ConfigFactory | None,
) -> None:
    if proxy.client_detected:
        return
    try:
        session = server.request_context.session
    except LookupError:
        return

    params = session.client_params
    if params is None:
        return
    client_info = ClientInfo.from_mapping(params.clientInfo.model_dump())
    if client_info is None:
        return

    config = proxy.config
    if config_factory is not None:
        try:
            config = config_factory(client_info)
        except ConfigError as e:
            log.warning("client_config_failed", client=client_info.name, error=e.message)
    proxy.set_client(client_info, config)


def create_mcp_server(
    proxy: CacheProxy,
    config_factory: ConfigFactory | None = None,
) -> Server[Any, Any]:
    """Create the low-level MCP server with handlers wired to the proxy.

    Args:
        proxy: Started CacheProxy
        config_factory: Builds the client-specific configuration on detection.
                        When None the current configuration is kept.

    Returns:
        Configured server ready to run
    """
    server: Server[Any, Any] = Server(PROXY_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        _detect_client(server, proxy, config_factory)
        return to_tools(await proxy.list_tools())

    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        _detect_client(server, proxy, config_factory)
        set_request_id()
        start_time = time.perf_counter()
        log.info("tool_start", tool=name)
        try:
            result = to_call_tool_result(await proxy.call_tool(name, arguments))
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            log.info("tool_complete", tool=name, elapsed_ms=elapsed_ms, is_error=result.isError)
            return result
        finally:
            clear_request_id()

    log.info("mcp_server_created", name=PROXY_NAME, version=__version__)
    return server


async def serve_stdio(proxy: CacheProxy, config_factory: ConfigFactory | None = None) -> None:
    """Serve the MCP client on stdin/stdout until it disconnects."""
    server = create_mcp_server(proxy, config_factory)
    async with stdio_server() as (read_stream, write_stream):
        log.info("mcp_server_running")
        await server.run(read_stream, write_stream, server.create_initialization_options())
