"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
isolates every test from the user's environment and global config file.
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local mcp_cache package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))


@pytest.fixture(autouse=True)
def isolated_config(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Generator[Path, None, None]:
    """Strip MCP_CACHE_* env vars and point the global config at a missing file."""
    for key in list(os.environ):
        if key.startswith("MCP_CACHE_"):
            monkeypatch.delenv(key)

    missing = tmp_path_factory.mktemp("global-config") / "config.yaml"
    monkeypatch.setattr("mcp_cache.config.loader.GLOBAL_CONFIG_PATH", missing)
    yield missing
