"""Tests for the chat agent's tool-calling loop."""

from __future__ import annotations

import pytest

from base_yield_agent.core.agent import YieldAgent
from base_yield_agent.core.session import SessionStore
from base_yield_agent.llm.base import LLMResponse, ToolCall
from base_yield_agent.storage import Database
from base_yield_agent.tools.registry import Tool, ToolRegistry, schema
from conftest import ScriptedLLM


@pytest.fixture
async def sessions(anyio_backend):
    db = Database(":memory:")
    await db.connect()
    yield SessionStore(db)
    await db.close()


@pytest.fixture
def tools() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        Tool(
            "lookup_rate",
            "Look up a rate",
            schema({"asset": {"type": "string"}}, ["asset"]),
            func=lambda asset: {"asset": asset, "supplyAPY": "4.20%"},
        )
    )
    return registry


@pytest.mark.anyio
async def test_plain_answer(sessions: SessionStore, tools: ToolRegistry) -> None:
    llm = ScriptedLLM([LLMResponse(content="Aave pays more today.")])
    agent = YieldAgent(llm, sessions, tools=tools)

    reply = await agent.chat("s1", "Aave or Moonwell?")

    assert reply == "Aave pays more today."
    history = await sessions.load("s1")
    assert [(m.role, m.content) for m in history] == [
        ("user", "Aave or Moonwell?"),
        ("assistant", "Aave pays more today."),
    ]
    sent = llm.requests[0]
    assert sent[0].role == "system"
    assert "Base Yield Agent" in sent[0].content


@pytest.mark.anyio
async def test_tool_round_trip(sessions: SessionStore, tools: ToolRegistry) -> None:
    llm = ScriptedLLM(
        [
            LLMResponse(
                content="Checking the reserve.",
                tool_calls=[ToolCall(id="t1", name="lookup_rate", arguments={"asset": "USDC"})],
            ),
            LLMResponse(content="USDC supply APY is 4.20%."),
        ]
    )
    agent = YieldAgent(llm, sessions, tools=tools)

    chunks = [chunk async for chunk in agent.chat_stream("s1", "USDC rate?")]

    assert chunks == ["Checking the reserve.\n\n", "USDC supply APY is 4.20%."]
    history = await sessions.load("s1")
    assert [m.role for m in history] == ["user", "assistant", "tool", "assistant"]
    assert history[1].tool_calls == [{"id": "t1", "name": "lookup_rate", "arguments": {"asset": "USDC"}}]
    assert history[2].tool_call_id == "t1"
    assert '"supplyAPY": "4.20%"' in history[2].content
    # second request sees the tool result
    assert [m.role for m in llm.requests[1]] == ["system", "user", "assistant", "tool"]


@pytest.mark.anyio
async def test_unknown_tool_is_reported_to_model(sessions: SessionStore, tools: ToolRegistry) -> None:
    llm = ScriptedLLM(
        [
            LLMResponse(tool_calls=[ToolCall(id="t1", name="bridge_funds", arguments={})]),
            LLMResponse(content="I cannot bridge."),
        ]
    )
    reply = await YieldAgent(llm, sessions, tools=tools).chat("s1", "bridge it")

    assert reply == "I cannot bridge."
    assert (await sessions.load("s1"))[2].content == "Error: Unknown tool 'bridge_funds'"


@pytest.mark.anyio
async def test_history_carries_across_messages(sessions: SessionStore, tools: ToolRegistry) -> None:
    llm = ScriptedLLM([LLMResponse(content="first"), LLMResponse(content="second")])
    agent = YieldAgent(llm, sessions, tools=tools)

    await agent.chat("s1", "hello")
    await agent.chat("s1", "again")

    assert [m.content for m in llm.requests[1][1:]] == ["hello", "first", "again"]


@pytest.mark.anyio
async def test_step_limit(sessions: SessionStore, tools: ToolRegistry) -> None:
    looping = LLMResponse(tool_calls=[ToolCall(id="t", name="lookup_rate", arguments={"asset": "DAI"})])
    llm = ScriptedLLM([looping, looping])
    agent = YieldAgent(llm, sessions, tools=tools, max_steps=2)

    reply = await agent.chat("s1", "loop")

    assert reply == "Stopped after 2 steps without a final answer."
    assert len(llm.requests) == 2


@pytest.mark.anyio
async def test_llm_error_is_yielded(sessions: SessionStore, tools: ToolRegistry) -> None:
    llm = ScriptedLLM([RuntimeError("rate limited")])
    reply = await YieldAgent(llm, sessions, tools=tools).chat("s1", "hi")
    assert reply == "Error: rate limited"


@pytest.mark.anyio
async def test_without_provider(sessions: SessionStore) -> None:
    reply = await YieldAgent(None, sessions).chat("s1", "hi")
    assert reply.startswith("Error: LLM provider not configured")
    assert await sessions.load("s1") == []


@pytest.mark.anyio
async def test_custom_system_prompt(sessions: SessionStore, tools: ToolRegistry) -> None:
    llm = ScriptedLLM([LLMResponse(content="ok")])
    await YieldAgent(llm, sessions, tools=tools, system_prompt="Be brief.").chat("s1", "hi")
    assert llm.requests[0][0].content == "Be brief."
