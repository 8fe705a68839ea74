"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority, used for CLI flags)
2. Environment variables (MCP_CACHE_<KEY>, MCP_CACHE_LOGGING__<KEY>)
3. Client preset (max_tokens for the detected client)
4. YAML config (~/.config/mcp-cache/config.yaml, or an explicit path)
5. Built-in defaults (lowest priority)
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from mcp_cache.config.models import CacheConfig, LoggingConfig
from mcp_cache.config.presets import ClientInfo, resolve_profile
from mcp_cache.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/mcp-cache/config.yaml").expanduser()

_DEFAULTS = CacheConfig()


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source."""

    class CacheSettings(BaseSettings):
        """Root settings. Env vars: MCP_CACHE_MAX_TOKENS, MCP_CACHE_TTL, etc."""

        model_config = SettingsConfigDict(
            env_prefix="MCP_CACHE_",
            env_nested_delimiter="__",
            case_sensitive=False,
            extra="ignore",
        )

        max_tokens: int = _DEFAULTS.max_tokens
        chunk_size: int = _DEFAULTS.chunk_size
        ttl: int = _DEFAULTS.ttl
        cache_dir: Path = _DEFAULTS.cache_dir
        enable_indexing: bool = _DEFAULTS.enable_indexing
        compression: bool = _DEFAULTS.compression
        debug: bool = _DEFAULTS.debug
        request_timeout_sec: float = _DEFAULTS.request_timeout_sec
        cleanup_interval_sec: float = _DEFAULTS.cleanup_interval_sec
        logging: LoggingConfig = LoggingConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > preset/yaml
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return CacheSettings


def load_config(
    client_info: ClientInfo | None = None,
    config_path: Path | None = None,
    **kwargs: Any,
) -> CacheConfig:
    """Load config: defaults < yaml < client preset < env vars < kwargs.

    Args:
        client_info: Detected client identity. Selects the max_tokens preset.
        config_path: Explicit YAML file. Defaults to the global config path,
                     which may be absent.
        **kwargs: Override values (highest precedence). None values are ignored
                  so unset CLI flags fall through to lower layers.

    Returns:
        Fully resolved, immutable configuration.

    Raises:
        ConfigError: On missing explicit file, invalid YAML or invalid values.
    """
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError.file_not_found(str(config_path))
        yaml_config = _load_yaml(config_path)
    else:
        yaml_config = _load_yaml(GLOBAL_CONFIG_PATH)

    if client_info is not None:
        profile = resolve_profile(client_info)
        yaml_config = _deep_merge(yaml_config, {"max_tokens": profile.max_tokens})

    overrides = {k: v for k, v in kwargs.items() if v is not None}

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**overrides)
        return CacheConfig.model_validate(settings.model_dump())
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
