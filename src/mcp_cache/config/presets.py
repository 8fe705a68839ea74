"""Client identity and per-client token-limit presets."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    """Identity the MCP client announced during its handshake."""

    name: str
    version: str = "unknown"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> ClientInfo | None:
        """Build from a clientInfo object, or None when no usable name is present."""
        if not data:
            return None
        name = data.get("name")
        if not isinstance(name, str) or not name:
            return None
        version = data.get("version")
        return cls(name=name, version=str(version) if version else "unknown")


@dataclass(frozen=True)
class ClientProfile:
    """Static client capability profile."""

    name: str
    max_tokens: int


PROFILES: dict[str, ClientProfile] = {
    "claude-ai": ClientProfile(name="claude-ai", max_tokens=25000),
    "claude-code": ClientProfile(name="claude-code", max_tokens=25000),
    "cursor": ClientProfile(name="cursor", max_tokens=30000),
    "cline": ClientProfile(name="cline", max_tokens=25000),
    "default": ClientProfile(name="default", max_tokens=20000),
}


def resolve_profile(client_info: ClientInfo | None) -> ClientProfile:
    """Resolve the preset for a client.

    Priority: exact clientInfo.name match > default.
    """
    if client_info is not None and client_info.name in PROFILES:
        profile = PROFILES[client_info.name]
        log.debug("profile_resolved", source="client_name", profile=profile.name)
        return profile

    profile = PROFILES["default"]
    log.debug("profile_resolved", source="default", profile=profile.name)
    return profile
