"""Shared fixtures: offline chain clients and a scripted LLM."""

from __future__ import annotations

from typing import Any, AsyncIterator

import pytest

from base_yield_agent.chain.provider import Web3Provider
from base_yield_agent.llm.base import BaseLLMProvider, LLMMessage, LLMResponse, ToolDefinition

USER = "0x" + "11" * 20
TOKEN = "0x" + "22" * 20
POOL = "0x" + "33" * 20
ATOKEN = "0x" + "44" * 20


class FakeChainClient:
    """Answers contract reads from a dict keyed by function name."""

    def __init__(self, reads: dict[str, Any] | None = None, error: Exception | None = None):
        self.reads = reads or {}
        self.error = error
        self.call_result = "0x"
        self.gas = 21000
        self.gas_price_wei = 1_500_000_000
        self.block = 123456
        self.balance_wei = 2 * 10**18
        self.calls: list[tuple[str, str, list]] = []

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    async def read_contract(self, address, abi, function_name, args=()):
        self._check()
        self.calls.append((address, function_name, list(args)))
        value = self.reads[function_name]
        if isinstance(value, Exception):
            raise value
        return value

    async def call(self, tx: dict) -> str:
        self._check()
        return self.call_result

    async def estimate_gas(self, tx: dict) -> int:
        self._check()
        return self.gas

    async def gas_price(self) -> int:
        self._check()
        return self.gas_price_wei

    async def block_number(self) -> int:
        self._check()
        return self.block

    async def get_balance(self, address: str) -> int:
        self._check()
        return self.balance_wei


class FakeWeb3Provider(Web3Provider):
    """Web3Provider whose clients never touch the network.

    Unknown chain names still fail through :meth:`resolve_chain`.
    """

    def __init__(self, clients: dict[str, FakeChainClient] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.fakes = clients or {}

    def get_client(self, chain_name: str):
        self.resolve_chain(chain_name)
        return self.fakes.setdefault(chain_name, FakeChainClient())


class ScriptedLLM(BaseLLMProvider):
    """Returns queued responses in order and records what it was sent."""

    def __init__(self, responses: list[LLMResponse | Exception] | None = None):
        super().__init__(api_key="test", model="scripted")
        self.responses = list(responses or [])
        self.requests: list[list[LLMMessage]] = []

    async def complete(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
    ) -> LLMResponse:
        self.requests.append(list(messages))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def stream(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
    ) -> AsyncIterator[str]:
        response = await self.complete(messages, tools)
        yield response.content


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def web3() -> FakeWeb3Provider:
    return FakeWeb3Provider()
