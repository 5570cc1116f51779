"""Base Yield Agent tools - functions the LLM can call by name."""

from base_yield_agent.tools import blockchain_tools, coordinator_tools  # noqa: F401
from base_yield_agent.tools.registry import ToolRegistry, tool  # noqa: F401
