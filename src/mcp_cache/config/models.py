"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config() (CLI flags)
2. Environment variables (MCP_CACHE_<KEY>, MCP_CACHE_LOGGING__<KEY>)
3. Client preset (max_tokens only, once the client identity is known)
4. YAML config (~/.config/mcp-cache/config.yaml or --config)
5. Built-in defaults (this file)

Examples:
    MCP_CACHE_MAX_TOKENS=30000
    MCP_CACHE_CHUNK_SIZE=20000
    MCP_CACHE_TTL=7200
    MCP_CACHE_CACHE_DIR=/tmp/mcp-cache
    MCP_CACHE_DEBUG=true
    MCP_CACHE_LOGGING__LEVEL=DEBUG
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mcp_cache.config.constants import CLEANUP_INTERVAL_SEC, REQUEST_TIMEOUT_SEC

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    stdout is reserved for the MCP protocol, so only stderr or a file path
    are accepted as destinations.
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v == "stderr":
            return v
        if v == "stdout":
            raise ValueError("stdout carries the MCP protocol and cannot receive logs")
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        MCP_CACHE_LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG is verbose and may impact performance.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class CacheConfig(BaseModel):
    """Root configuration for mcp-cache.

    Immutable: a new instance is produced whenever the client identity is
    detected (see load_config), never mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    max_tokens: int = Field(
        default=25000,
        gt=0,
        description="Client token budget. Responses above max_tokens * 4 bytes are cached.",
    )
    chunk_size: int = Field(
        default=10000,
        gt=0,
        description="Characters per chunk served by get_chunk.",
    )
    ttl: int = Field(
        default=3600,
        gt=0,
        description="Seconds a cached response lives before it expires.",
    )
    cache_dir: Path = Field(
        default=Path("~/.mcp-cache/cache"),
        validate_default=True,
        description="Directory holding cached payloads and their metadata.",
    )
    enable_indexing: bool = Field(
        default=True,
        description="Reserved. Accepted for compatibility, payloads are never indexed.",
    )
    compression: bool = Field(
        default=True,
        description="Reserved. Accepted for compatibility, payloads are stored as plain JSON.",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging and surface the wrapped server's stderr.",
    )
    request_timeout_sec: float = Field(
        default=REQUEST_TIMEOUT_SEC,
        gt=0,
        description="Deadline for a response from the wrapped server.",
    )
    cleanup_interval_sec: float = Field(
        default=CLEANUP_INTERVAL_SEC,
        gt=0,
        description="Interval of the background expiry sweep.",
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("cache_dir")
    @classmethod
    def expand_cache_dir(cls, v: Path) -> Path:
        return Path(v).expanduser()
