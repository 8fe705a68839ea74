"""Tool registry for the management tools.

Provides decorator-based tool registration with Pydantic param validation.
Input schemas are declared explicitly because they are part of the external
contract and must not drift with the params models' generated schemas.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from mcp_cache.mcp.context import AppContext

# Handler signature: (ctx, validated_params) -> response text
HandlerFn = Callable[["AppContext", Any], Awaitable[str]]


@dataclass
class ToolSpec:
    """Specification for a registered tool."""

    name: str
    handler: HandlerFn
    description: str
    params_model: type[BaseModel]
    input_schema: dict[str, Any]

    def to_descriptor(self) -> dict[str, Any]:
        """Tool descriptor in MCP ``tools/list`` shape."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolRegistry:
    """Registry for MCP tools with decorator-based registration."""

    _instance: ToolRegistry | None = None
    _tools: dict[str, ToolSpec]

    def __new__(cls) -> ToolRegistry:
        """Singleton pattern for global registry."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._tools = {}
        return cls._instance

    def register(
        self,
        name: str,
        description: str,
        params_model: type[BaseModel],
        input_schema: dict[str, Any],
    ) -> Callable[[HandlerFn], HandlerFn]:
        """Decorator to register a tool handler.

        Usage:
            @registry.register("list_responses", "List all cached responses",
                               ListResponsesParams, {"type": "object", "properties": {}})
            async def list_responses(ctx: AppContext, params: ListResponsesParams) -> str:
                ...
        """

        def decorator(fn: HandlerFn) -> HandlerFn:
            self._tools[name] = ToolSpec(
                name=name,
                handler=fn,
                description=description,
                params_model=params_model,
                input_schema=input_schema,
            )
            return fn

        return decorator

    def get_all(self) -> list[ToolSpec]:
        """Get all registered tool specs."""
        return list(self._tools.values())

    def get(self, name: str) -> ToolSpec | None:
        """Get a specific tool spec by name."""
        return self._tools.get(name)

    def clear(self) -> None:
        """Clear all registrations (for testing)."""
        self._tools.clear()


# Global registry instance
registry = ToolRegistry()
