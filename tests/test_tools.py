"""Tests for the tool registry and the registered chain/registry tools."""

from __future__ import annotations

import json

import pytest

from base_yield_agent.core.coordinator import AgentCoordinator
from base_yield_agent.tools import ToolRegistry, blockchain_tools, coordinator_tools
from base_yield_agent.tools.registry import Tool, schema
from conftest import TOKEN, USER, FakeChainClient, FakeWeb3Provider

CHAIN_TOOLS = [
    "call_contract",
    "simulate_transaction",
    "build_transaction",
    "get_aave_data",
    "get_uniswap_pool",
    "get_multi_chain_balance",
    "get_network_stats",
]
REGISTRY_TOOLS = [
    "discover_agents",
    "list_agents",
    "send_agent_message",
    "receive_agent_messages",
    "delegate_task",
    "get_delegation",
    "update_delegation",
    "update_reputation",
    "compose_workflow",
]


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry.get()


@pytest.fixture
def coordinator(monkeypatch) -> AgentCoordinator:
    c = AgentCoordinator()
    monkeypatch.setattr(coordinator_tools, "_coordinator", c)
    return c


@pytest.fixture
def chain_provider(monkeypatch) -> FakeWeb3Provider:
    provider = FakeWeb3Provider({"base": FakeChainClient({"balanceOf": 7})})
    monkeypatch.setattr(blockchain_tools, "_provider", provider)
    return provider


def test_all_tools_registered(registry: ToolRegistry) -> None:
    names = registry.list_names()
    for name in CHAIN_TOOLS + REGISTRY_TOOLS:
        assert name in names


def test_definitions_carry_json_schema(registry: ToolRegistry) -> None:
    (definition,) = registry.definitions(["get_aave_data"])
    assert definition.parameters["type"] == "object"
    assert definition.parameters["required"] == ["chain", "asset"]
    assert "base" in definition.parameters["properties"]["chain"]["enum"]


def test_definitions_skip_unknown_names(registry: ToolRegistry) -> None:
    assert [d.name for d in registry.definitions(["list_agents", "nope"])] == ["list_agents"]


@pytest.mark.anyio
async def test_sync_and_async_tools() -> None:
    local = ToolRegistry()
    local.register(Tool("echo", "Echo", schema({}), func=lambda **kw: kw))
    local.register(Tool("text", "Text", schema({}), func=lambda: "plain"))

    assert json.loads(await local.call("echo", {"a": 1})) == {"a": 1}
    assert await local.call("text", {}) == "plain"


@pytest.mark.anyio
async def test_unknown_tool(registry: ToolRegistry) -> None:
    assert await registry.call("teleport", {}) == "Error: Unknown tool 'teleport'"


@pytest.mark.anyio
async def test_tool_exception_becomes_text(registry: ToolRegistry, monkeypatch) -> None:
    monkeypatch.setattr(blockchain_tools, "_provider", None)
    result = await registry.call("get_network_stats", {"chain": "base"})
    assert result == "Tool error: Web3 provider not configured."


# ------------------------------------------------------------------
# Chain tools
# ------------------------------------------------------------------


@pytest.mark.anyio
async def test_multi_chain_balance_tool(registry: ToolRegistry, chain_provider: FakeWeb3Provider) -> None:
    raw = await registry.call(
        "get_multi_chain_balance",
        {"address": USER, "tokenAddress": TOKEN, "chains": ["base"]},
    )
    assert json.loads(raw)["balances"] == {"base": "7"}


@pytest.mark.anyio
async def test_simulate_tool_accepts_from(registry: ToolRegistry, chain_provider: FakeWeb3Provider) -> None:
    raw = await registry.call("simulate_transaction", {"chain": "base", "from": USER, "to": TOKEN})
    assert json.loads(raw)["simulation"]["willSucceed"] is True


@pytest.mark.anyio
async def test_build_transaction_tool(registry: ToolRegistry) -> None:
    abi = [
        {
            "type": "function",
            "name": "balanceOf",
            "stateMutability": "view",
            "inputs": [{"type": "address", "name": "account"}],
            "outputs": [{"type": "uint256", "name": ""}],
        }
    ]
    raw = await registry.call(
        "build_transaction",
        {"chain": "optimism", "contractAddress": TOKEN, "functionName": "balanceOf", "abi": abi, "args": [USER]},
    )
    result = json.loads(raw)
    assert result["transaction"]["chainId"] == 10
    assert result["transaction"]["data"].startswith("0x70a08231")


# ------------------------------------------------------------------
# Registry tools
# ------------------------------------------------------------------


@pytest.mark.anyio
async def test_discover_and_delegate(registry: ToolRegistry, coordinator: AgentCoordinator) -> None:
    await coordinator.register_agent(
        "scout", "Scout", "http://scout", [{"id": "c", "name": "Rates", "protocols": ["aave"]}]
    )

    found = json.loads(await registry.call("discover_agents", {"capability": "aave"}))
    assert [a["id"] for a in found["agents"]] == ["scout"]

    raw = await registry.call(
        "delegate_task",
        {"fromAgent": "me", "toAgent": "scout", "taskType": "aave", "parameters": {"asset": "USDC"}},
    )
    delegation = json.loads(raw)["delegation"]
    assert delegation["status"] == "pending"

    looked_up = json.loads(await registry.call("get_delegation", {"taskId": delegation["task_id"]}))
    assert looked_up["delegation"]["task"]["parameters"] == {"asset": "USDC"}

    inbox = json.loads(await registry.call("receive_agent_messages", {"agentId": "scout"}))
    assert inbox["messages"][0]["type"] == "delegation"


@pytest.mark.anyio
async def test_registry_tool_failures(registry: ToolRegistry, coordinator: AgentCoordinator) -> None:
    missing = json.loads(await registry.call("get_delegation", {"taskId": "nope"}))
    assert missing == {"success": False, "error": "Delegation not found: nope"}

    rep = json.loads(await registry.call("update_reputation", {"agentId": "ghost", "delta": 1}))
    assert rep == {"success": False, "error": "Agent not found: ghost"}

    workflow = json.loads(
        await registry.call("compose_workflow", {"name": "w", "steps": [{"agentCapability": "bridge"}]})
    )
    assert workflow == {"success": False, "error": "No agent found with capability: bridge"}


@pytest.mark.anyio
async def test_compose_workflow_tool(registry: ToolRegistry, coordinator: AgentCoordinator) -> None:
    await coordinator.register_agent(
        "lp", "LP Bot", "http://lp", [{"id": "c", "name": "Pools", "operations": ["pool-state"]}]
    )
    raw = await registry.call(
        "compose_workflow",
        {"name": "scan", "steps": [{"agentCapability": "pool-state", "task": {"pool": "WETH/USDC"}}]},
    )
    result = json.loads(raw)
    assert result["workflow"] == "scan"
    assert result["steps"][0]["agent"] == "LP Bot"
    assert result["steps"][0]["result"]["from_agent"] == "coordinator"
