"""YieldAgent - the chat agent that answers DeFi questions with live chain data."""

from __future__ import annotations

import logging
from typing import AsyncIterator

from base_yield_agent.core.session import SessionStore
from base_yield_agent.llm.base import BaseLLMProvider, LLMMessage, ToolDefinition
from base_yield_agent.tools.registry import ToolRegistry

logger = logging.getLogger("base_yield_agent.agent")

DEFAULT_SYSTEM_PROMPT = """\
You are an elite Base Yield Agent - a DeFi yield advisor for experienced traders and yield farmers.

APPROACH:
- Assume the user has deep DeFi knowledge; skip basic explanations
- Be direct and data-driven: quote APYs, TVLs, fees, gas and contract addresses
- Compare protocols quantitatively and discuss trade-offs and risks

BASE ECOSYSTEM:
- Lending: Aave V3, Moonwell, Seamless Protocol (supply/borrow rates, utilization, liquidations)
- DEXs: Aerodrome (veAERO, gauges, bribes), Uniswap V3 and BaseSwap (concentrated liquidity, fee tiers)
- Yield agents: ARMA (Giza) and Fungi (non-custodial USDC rebalancing)

TOOLS:
- Use the blockchain tools for live data instead of guessing: contract reads, Aave reserves,
  Uniswap V3 pools, multi-chain balances, transaction simulation and transaction building
- Tool results are JSON envelopes; when "success" is false, report the error plainly
- You never sign or send transactions; build them for the user's wallet instead
- Use the agent registry tools to discover specialist agents and delegate work to them

Be concise, technical, and alpha-focused."""


class YieldAgent:
    """Runs the LLM tool-calling loop for one chat message at a time.

    Parameters
    ----------
    provider:
        LLM backend, or ``None`` when no API key is configured.
    sessions:
        Conversation history store.
    tools:
        Tool registry to expose; defaults to the global registry.
    max_steps:
        Upper bound on LLM round trips per user message.
    """

    def __init__(
        self,
        provider: BaseLLMProvider | None,
        sessions: SessionStore,
        tools: ToolRegistry | None = None,
        max_steps: int = 10,
        system_prompt: str = "",
    ):
        self.provider = provider
        self.sessions = sessions
        self.max_steps = max_steps
        self._tools = tools or ToolRegistry.get()
        self._system = LLMMessage(role="system", content=system_prompt or DEFAULT_SYSTEM_PROMPT)

    @property
    def tool_definitions(self) -> list[ToolDefinition]:
        return self._tools.definitions()

    async def chat_stream(self, session_id: str, message: str) -> AsyncIterator[str]:
        """Answer *message* within a session, yielding text as it is produced.

        Intermediate assistant text (before tool calls) is yielded as soon as
        each step completes; tool results are fed back to the model, not to
        the caller.
        """
        if self.provider is None:
            yield "Error: LLM provider not configured. Set AI_PROVIDER_API_KEY or edit config.yaml"
            return

        history = await self.sessions.load(session_id)
        await self.sessions.append(session_id, LLMMessage(role="user", content=message))

        for step in range(self.max_steps):
            try:
                response = await self.provider.complete(
                    messages=[self._system, *history],
                    tools=self.tool_definitions,
                )
            except Exception as e:
                logger.error(f"[{session_id}] LLM error: {e}")
                yield f"Error: {e}"
                return

            if response.usage:
                logger.debug(f"[{session_id}] step {step} usage: {response.usage}")

            if not response.tool_calls:
                reply = response.content or "(no response)"
                await self.sessions.append(session_id, LLMMessage(role="assistant", content=reply))
                yield reply
                return

            if response.content:
                yield response.content + "\n\n"

            turns = [
                LLMMessage(
                    role="assistant",
                    content=response.content or "",
                    tool_calls=[
                        {"id": tc.id, "name": tc.name, "arguments": tc.arguments}
                        for tc in response.tool_calls
                    ],
                )
            ]
            for tc in response.tool_calls:
                logger.info(f"[{session_id}] calling tool: {tc.name}({tc.arguments})")
                result = await self._tools.call(tc.name, tc.arguments)
                turns.append(LLMMessage(role="tool", content=result, tool_call_id=tc.id))
            await self.sessions.append(session_id, *turns)

        logger.warning(f"[{session_id}] stopped after {self.max_steps} steps")
        yield f"Stopped after {self.max_steps} steps without a final answer."

    async def chat(self, session_id: str, message: str) -> str:
        """Non-streaming variant of :meth:`chat_stream`."""
        return "".join([chunk async for chunk in self.chat_stream(session_id, message)])
