"""mcp-cache CLI.

    mcp-cache [OPTIONS] COMMAND [ARGS]...

Launches COMMAND as the wrapped MCP server and proxies it on stdio. Everything
after COMMAND is passed to the wrapped server untouched.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import click
import structlog

from mcp_cache import __version__
from mcp_cache.config.loader import load_config
from mcp_cache.config.models import CacheConfig, LoggingConfig
from mcp_cache.config.presets import ClientInfo
from mcp_cache.core.errors import CacheProxyError
from mcp_cache.core.logging import configure_logging, get_log_file_path

log = structlog.get_logger(__name__)


def _logging_config(config: CacheConfig) -> LoggingConfig:
    if config.debug:
        return config.logging.model_copy(update={"level": "DEBUG"})
    return config.logging


def _startup_error_text(error: CacheProxyError) -> str:
    log_file = get_log_file_path()
    if log_file is None:
        return f"mcp-cache: {error.message}"
    return f"mcp-cache: {error.message}. See {log_file} for details."


async def run_proxy(
    command: str,
    args: list[str],
    config: CacheConfig,
    *,
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> None:
    """Start the proxy, serve the client on stdio, then shut everything down."""
    from mcp_cache.mcp.proxy import CacheProxy
    from mcp_cache.mcp.server import serve_stdio
    from mcp_cache.store.cache import ResponseStore
    from mcp_cache.transport.target import TargetTransport

    overrides = overrides or {}
    transport = TargetTransport(
        command,
        args,
        request_timeout=config.request_timeout_sec,
        debug=config.debug,
    )
    store = ResponseStore(config.cache_dir, config.ttl, config.chunk_size)
    proxy = CacheProxy(transport, store, config)

    def config_for_client(client_info: ClientInfo) -> CacheConfig:
        return load_config(client_info, config_path, **overrides)

    try:
        await proxy.start()
        await serve_stdio(proxy, config_for_client)
    finally:
        await proxy.stop()


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    }
)
@click.version_option(version=__version__, prog_name="mcp-cache")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable debug logging and show the wrapped server's stderr",
)
@click.option(
    "--max-tokens", type=int, default=None, help="Client token budget (overrides presets)"
)
@click.option("--chunk-size", type=int, default=None, help="Characters per chunk for get_chunk")
@click.option("--ttl", type=int, default=None, help="Seconds a cached response lives")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for cached responses",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (default: ~/.config/mcp-cache/config.yaml)",
)
@click.argument("command")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def cli(
    verbose: bool,
    max_tokens: int | None,
    chunk_size: int | None,
    ttl: int | None,
    cache_dir: Path | None,
    config_path: Path | None,
    command: str,
    args: tuple[str, ...],
) -> None:
    """mcp-cache - cache oversized MCP responses and serve them in pieces.

    COMMAND is the MCP server to wrap; ARGS are passed to it unchanged.
    """
    overrides: dict[str, Any] = {
        "max_tokens": max_tokens,
        "chunk_size": chunk_size,
        "ttl": ttl,
        "cache_dir": cache_dir,
        "debug": True if verbose else None,
    }

    try:
        config = load_config(config_path=config_path, **overrides)
    except CacheProxyError as e:
        click.echo(f"mcp-cache: {e.message}", err=True)
        raise SystemExit(1) from e

    configure_logging(config=_logging_config(config))
    log.debug("config_loaded", max_tokens=config.max_tokens, cache_dir=str(config.cache_dir))

    try:
        asyncio.run(
            run_proxy(
                command,
                list(args),
                config,
                config_path=config_path,
                overrides=overrides,
            )
        )
    except CacheProxyError as e:
        log.error("startup_failed", error=e.message, code=e.code.value)
        click.echo(_startup_error_text(e), err=True)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        log.info("interrupted")


if __name__ == "__main__":
    cli()
