"""Agent-facing blockchain tools.

Thin registrations of :mod:`base_yield_agent.chain.reads` operations. Every
tool returns the operation's JSON envelope; failures arrive as
``{"success": false, "error": ...}`` for the model to narrate.
"""

from __future__ import annotations

import logging
from typing import Any

from base_yield_agent.chain import reads
from base_yield_agent.chain.chains import list_chain_names
from base_yield_agent.chain.provider import Web3Provider
from base_yield_agent.tools.registry import schema, tool

logger = logging.getLogger("base_yield_agent.tools.blockchain")

# Module-level state, set at runtime by the server / CLI
_provider: Web3Provider | None = None


def set_web3_provider(provider: Web3Provider) -> None:
    """Inject the Web3Provider instance (called on startup)."""
    global _provider
    _provider = provider


def _require_provider() -> Web3Provider:
    if _provider is None:
        raise RuntimeError("Web3 provider not configured.")
    return _provider


_CHAIN = {
    "type": "string",
    "enum": list_chain_names(),
    "description": "Blockchain network",
}
_ABI = {
    "type": "array",
    "items": {"type": "object"},
    "description": "Contract ABI (JSON fragments)",
}
_ARGS = {"type": "array", "items": {}, "description": "Function arguments"}
_WEI = {"type": "string", "description": "ETH value to send (in wei)"}


@tool(
    "call_contract",
    "Call a read-only smart contract function and return the decoded result.",
    schema(
        {
            "chain": _CHAIN,
            "contractAddress": {"type": "string", "description": "Smart contract address"},
            "functionName": {"type": "string", "description": "Function name to call"},
            "abi": _ABI,
            "args": _ARGS,
        },
        ["chain", "contractAddress", "functionName", "abi"],
    ),
)
async def call_contract_tool(
    chain: str,
    contractAddress: str,
    functionName: str,
    abi: list[dict],
    args: list[Any] | None = None,
) -> dict:
    return await reads.call_contract(
        _require_provider(), chain, contractAddress, functionName, abi, args
    )


@tool(
    "simulate_transaction",
    "Simulate a transaction before execution to check if it will succeed",
    schema(
        {
            "chain": _CHAIN,
            "from": {"type": "string", "description": "Sender address"},
            "to": {"type": "string", "description": "Recipient/contract address"},
            "data": {"type": "string", "description": "Transaction data (for contract calls)"},
            "value": _WEI,
        },
        ["chain", "from", "to"],
    ),
)
async def simulate_transaction_tool(chain: str, to: str, data: str | None = None,
                                    value: str | None = None, **kwargs: Any) -> dict:
    # "from" is a keyword, so it only arrives through **kwargs
    return await reads.simulate_transaction(
        _require_provider(), chain, kwargs.get("from", ""), to, data, value
    )


@tool(
    "build_transaction",
    "Build transaction data for user to sign and execute",
    schema(
        {
            "chain": _CHAIN,
            "contractAddress": {"type": "string", "description": "Smart contract address"},
            "functionName": {"type": "string", "description": "Function name to call"},
            "abi": _ABI,
            "args": _ARGS,
            "value": _WEI,
        },
        ["chain", "contractAddress", "functionName", "abi"],
    ),
)
def build_transaction_tool(
    chain: str,
    contractAddress: str,
    functionName: str,
    abi: list[dict],
    args: list[Any] | None = None,
    value: str | None = None,
) -> dict:
    return reads.build_transaction(chain, contractAddress, functionName, abi, args, value)


@tool(
    "get_aave_data",
    "Get lending/borrowing data from Aave protocol",
    schema(
        {
            "chain": _CHAIN,
            "asset": {"type": "string", "description": "Asset address (e.g., USDC, WETH)"},
        },
        ["chain", "asset"],
    ),
)
async def get_aave_data_tool(chain: str, asset: str) -> dict:
    return await reads.get_aave_data(_require_provider(), chain, asset)


@tool(
    "get_uniswap_pool",
    "Get liquidity pool data from Uniswap V3",
    schema(
        {
            "chain": _CHAIN,
            "poolAddress": {"type": "string", "description": "Uniswap V3 pool address"},
        },
        ["chain", "poolAddress"],
    ),
)
async def get_uniswap_pool_tool(chain: str, poolAddress: str) -> dict:
    return await reads.get_uniswap_pool(_require_provider(), chain, poolAddress)


@tool(
    "get_multi_chain_balance",
    "Get token balance across multiple chains",
    schema(
        {
            "address": {"type": "string", "description": "Wallet address"},
            "tokenAddress": {"type": "string", "description": "Token contract address"},
            "chains": {"type": "array", "items": _CHAIN, "description": "Chains to check"},
        },
        ["address", "tokenAddress", "chains"],
    ),
)
async def get_multi_chain_balance_tool(address: str, tokenAddress: str, chains: list[str]) -> dict:
    return await reads.get_multi_chain_balance(_require_provider(), address, tokenAddress, chains)


@tool(
    "get_network_stats",
    "Get the current gas price (gwei) and latest block number for a chain",
    schema({"chain": _CHAIN}),
)
async def get_network_stats_tool(chain: str = "base") -> dict:
    return await reads.get_network_stats(_require_provider(), chain)
