"""Anthropic Messages API backend."""

from __future__ import annotations

import logging
from typing import AsyncIterator

import anthropic

from base_yield_agent.llm.base import (
    BaseLLMProvider,
    LLMMessage,
    LLMResponse,
    ToolCall,
    ToolDefinition,
)

logger = logging.getLogger("base_yield_agent.llm.anthropic")


def _split_system(messages: list[LLMMessage]) -> tuple[str | None, list[LLMMessage]]:
    """Anthropic takes the system prompt as a top-level parameter."""
    system = [m.content for m in messages if m.role == "system"]
    rest = [m for m in messages if m.role != "system"]
    return ("\n".join(system) if system else None), rest


def _to_anthropic(msg: LLMMessage) -> dict:
    if msg.role == "tool":
        return {
            "role": "user",
            "content": [
                {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id or "",
                    "content": msg.content,
                }
            ],
        }
    if msg.role == "assistant" and msg.tool_calls:
        blocks: list[dict] = [{"type": "text", "text": msg.content}] if msg.content else []
        blocks.extend(
            {
                "type": "tool_use",
                "id": tc["id"],
                "name": tc["name"],
                "input": tc.get("arguments") or {},
            }
            for tc in msg.tool_calls
        )
        return {"role": "assistant", "content": blocks}
    return {"role": msg.role, "content": msg.content}


def _convert(messages: list[LLMMessage]) -> list[dict]:
    """Convert turns, folding consecutive tool results into one user turn."""
    out: list[dict] = []
    prev_role = None
    for msg in messages:
        converted = _to_anthropic(msg)
        if msg.role == "tool" and prev_role == "tool":
            out[-1]["content"].extend(converted["content"])
        else:
            out.append(converted)
        prev_role = msg.role
    return out


class AnthropicProvider(BaseLLMProvider):
    """Backed by :class:`anthropic.AsyncAnthropic`."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 4096,
    ):
        super().__init__(api_key=api_key, model=model, base_url=base_url, max_tokens=max_tokens)
        kwargs: dict = {"api_key": api_key}
        if base_url:
            kwargs["base_url"] = base_url
        self._client = anthropic.AsyncAnthropic(**kwargs)

    def _request(self, messages: list[LLMMessage], tools: list[ToolDefinition] | None) -> dict:
        system, rest = _split_system(messages)
        kwargs: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": _convert(rest),
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters}
                for t in tools
            ]
        return kwargs

    async def complete(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
    ) -> LLMResponse:
        try:
            response = await self._client.messages.create(**self._request(messages, tools))
        except Exception as exc:
            logger.error("Anthropic API call failed: %s", exc)
            raise

        text: list[str] = []
        calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text.append(block.text)
            elif block.type == "tool_use":
                args = block.input if isinstance(block.input, dict) else {}
                calls.append(ToolCall(id=block.id, name=block.name, arguments=args))

        usage = None
        if response.usage:
            usage = {
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            }
        return LLMResponse(
            content="\n".join(text),
            tool_calls=calls or None,
            usage=usage,
            stop_reason=response.stop_reason,
        )

    async def stream(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
    ) -> AsyncIterator[str]:
        try:
            async with self._client.messages.stream(**self._request(messages, tools)) as stream:
                async for text in stream.text_stream:
                    yield text
        except Exception as exc:
            logger.error("Anthropic streaming call failed: %s", exc)
            raise
