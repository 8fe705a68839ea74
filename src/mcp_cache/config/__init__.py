"""Config module exports."""

from mcp_cache.config.loader import load_config
from mcp_cache.config.models import CacheConfig, LoggingConfig, LogOutputConfig
from mcp_cache.config.presets import ClientInfo, ClientProfile, resolve_profile

__all__ = [
    "load_config",
    "CacheConfig",
    "ClientInfo",
    "ClientProfile",
    "LoggingConfig",
    "LogOutputConfig",
    "resolve_profile",
]
