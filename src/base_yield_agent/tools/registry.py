"""Tool registry - the name -> callable table the LLM loop dispatches into."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from base_yield_agent.llm.base import ToolDefinition

logger = logging.getLogger("base_yield_agent.tools.registry")


@dataclass
class Tool:
    """A sync or async callable the model can invoke by name.

    Non-string results are JSON-encoded before they go back to the model.
    """

    name: str
    description: str
    parameters: dict[str, Any]
    func: Callable[..., Any]

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(self.name, self.description, self.parameters)

    async def run(self, arguments: dict[str, Any]) -> str:
        result = self.func(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return result if isinstance(result, str) else json.dumps(result, default=str)


class ToolRegistry:
    """Process-wide tool table, filled at import time by :func:`tool`."""

    _shared: ToolRegistry | None = None

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    @classmethod
    def get(cls) -> ToolRegistry:
        if cls._shared is None:
            cls._shared = cls()
        return cls._shared

    def register(self, t: Tool) -> None:
        if t.name in self._tools:
            logger.debug(f"Replacing tool {t.name}")
        self._tools[t.name] = t

    def list_names(self) -> list[str]:
        return list(self._tools)

    def definitions(self, names: list[str] | None = None) -> list[ToolDefinition]:
        wanted = self._tools if names is None else [n for n in names if n in self._tools]
        return [self._tools[n].definition for n in wanted]

    async def call(self, name: str, arguments: dict[str, Any]) -> str:
        """Run a tool on behalf of the model.

        Unknown tools and raised exceptions come back as text so the model
        can read and narrate them.
        """
        t = self._tools.get(name)
        if t is None:
            return f"Error: Unknown tool '{name}'"
        try:
            return await t.run(arguments)
        except Exception as e:
            logger.warning(f"Tool {name} raised: {e}")
            return f"Tool error: {e}"


def schema(properties: dict[str, dict], required: list[str] | None = None) -> dict:
    """JSON Schema ``object`` block for tool parameters."""
    return {"type": "object", "properties": properties, "required": list(required or [])}


def tool(name: str, description: str, parameters: dict[str, Any]):
    """Register the decorated function in the shared registry.

    Usage:
        @tool("get_aave_data", "Read an Aave V3 reserve", schema({...}, ["chain"]))
        async def get_aave_data_tool(chain: str, asset: str) -> dict:
            ...
    """

    def decorator(func: Callable) -> Callable:
        ToolRegistry.get().register(Tool(name, description, parameters, func))
        return func

    return decorator
