"""Logging for the proxy.

structlog renders through stdlib handlers. stdout carries the MCP protocol,
so outputs are stderr or files only.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from mcp_cache.config.models import LoggingConfig, LogOutputConfig

# Per-request SDK chatter, held at WARNING.
QUIET_LOGGERS = ("mcp.server.lowlevel.server", "mcp.server.stdio")

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_log_file: Path | None = None


def get_request_id() -> str | None:
    return _request_id.get()


def set_request_id(request_id: str | None = None) -> str:
    """Bind the id of the client request being served, generating one if omitted."""
    rid = request_id or uuid4().hex[:12]
    _request_id.set(rid)
    return rid


def clear_request_id() -> None:
    _request_id.set(None)


def get_log_file_path() -> Path | None:
    """First file output of the active configuration, or None when logging only to stderr."""
    return _log_file


def _inject_request_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    rid = _request_id.get()
    if rid is not None:
        event_dict.setdefault("request_id", rid)
    return event_dict


def _resolve_level(name: str | None, fallback: int) -> int:
    if not name:
        return fallback
    name = name.upper()
    if name == "WARN":
        name = "WARNING"
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else fallback


def _build_handler(destination: str) -> logging.Handler:
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(destination).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _build_formatter(
    output: LogOutputConfig,
    shared: list[structlog.types.Processor],
) -> structlog.stdlib.ProcessorFormatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=output.destination == "stderr" and sys.stderr.isatty(),
            pad_event_to=0,
            pad_level=False,
        )
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Install structlog on top of stdlib logging.

    With ``config`` every configured output gets its own handler and level.
    Without it, ``level`` and ``json_format`` describe a single stderr output.
    Calling it again replaces the previous setup.
    """
    global _log_file
    from mcp_cache.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    root_level = _resolve_level(config.level, logging.INFO)
    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _inject_request_id,  # type: ignore[list-item]
    ]

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Loggers are module globals; caching would pin them to the first setup.
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(root_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _log_file = None
    for output in config.outputs:
        handler = _build_handler(output.destination)
        handler.setLevel(_resolve_level(output.level, root_level))
        handler.setFormatter(_build_formatter(output, shared))
        root.addHandler(handler)
        if output.destination != "stderr" and _log_file is None:
            _log_file = Path(output.destination).expanduser()
