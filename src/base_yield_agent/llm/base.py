"""Provider-neutral LLM message and tool-call types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator


@dataclass
class ToolDefinition:
    """A tool the model may call, described by a JSON Schema."""

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMMessage:
    """One conversation turn.

    ``role`` is one of ``system``, ``user``, ``assistant`` or ``tool``.
    Assistant turns that invoke tools carry ``tool_calls`` as plain dicts
    (``id``, ``name``, ``arguments``); tool turns carry ``tool_call_id``.
    """

    role: str
    content: str = ""
    tool_calls: list[dict] | None = None
    tool_call_id: str | None = None


@dataclass
class LLMResponse:
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    usage: dict[str, int] | None = None
    stop_reason: str | None = None


class BaseLLMProvider(ABC):
    """Interface every LLM backend implements."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 4096,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
    ) -> LLMResponse:
        """Run one completion and return text and/or tool calls."""

    @abstractmethod
    def stream(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
    ) -> AsyncIterator[str]:
        """Yield text deltas for a completion without tool execution."""
