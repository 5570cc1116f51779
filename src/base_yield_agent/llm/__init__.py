"""LLM provider abstraction layer for Base Yield Agent.

A common message/tool-call vocabulary shared by the Anthropic and OpenAI
backends, plus a router that builds the configured provider on demand.
"""

from base_yield_agent.llm.base import (
    BaseLLMProvider,
    LLMMessage,
    LLMResponse,
    ToolCall,
    ToolDefinition,
)
from base_yield_agent.llm.router import LLMRouter

__all__ = [
    "BaseLLMProvider",
    "LLMMessage",
    "LLMResponse",
    "LLMRouter",
    "ToolCall",
    "ToolDefinition",
]
