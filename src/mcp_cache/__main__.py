"""Entry point for ``python -m mcp_cache``."""

from mcp_cache.cli.main import cli

if __name__ == "__main__":
    cli()
