"""Stateless chain read/build operations.

Every operation returns an envelope dict: ``{"success": True, "chain": ...,
...}`` on success, or ``{"success": False, "error": <message>, ...}`` with
whatever input context is useful to echo back. Nothing here raises past the
function boundary, retries, or times out; callers that need a deadline must
impose it around the call.

Amounts cross the boundary as strings to avoid precision loss.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Sequence

from web3 import Web3

from base_yield_agent.chain import abis
from base_yield_agent.chain.chains import get_chain
from base_yield_agent.chain.provider import Web3Provider, encode_function_data, to_checksum

logger = logging.getLogger("base_yield_agent.chain.reads")

RAY = Decimal(10) ** 27
WEI_PER_ETHER = Decimal(10) ** 18
WEI_PER_GWEI = Decimal(10) ** 9
UNISWAP_FEE_DIVISOR = Decimal(10000)
CENT = Decimal("0.01")

BUILD_INSTRUCTIONS = "User should sign and broadcast this transaction using their wallet"


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def error_message(exc: BaseException) -> str:
    """Human-readable message for an exception, unquoting ``KeyError``."""
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc) or exc.__class__.__name__


def ray_to_percent(raw: int) -> str:
    """Convert a ray-scaled (1e27) rate to a two-decimal percentage string, ties rounded up."""
    pct = Decimal(int(raw)) / RAY * 100
    return f"{pct.quantize(CENT, rounding=ROUND_HALF_UP)}%"


def format_pool_fee(raw: int) -> str:
    """Render a Uniswap V3 fee as ``raw / 10000`` percent, e.g. 3000 -> ``0.3%``."""
    fee = Decimal(int(raw)) / UNISWAP_FEE_DIVISOR
    return f"{fee.normalize():f}%"


def format_timestamp(seconds: int) -> str:
    """Epoch seconds to an ISO-8601 UTC string with millisecond precision."""
    dt = datetime.fromtimestamp(int(seconds), tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_jsonable(value: Any) -> Any:
    """Decoded ABI values with ``bytes`` rendered as ``0x`` hex, tuples as lists."""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(bytes(value))
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    return value


def _scaled(raw: int, unit: Decimal, places: int = 4) -> str:
    return f"{Decimal(int(raw)) / unit:.{places}f}"


def _tx_params(
    from_address: str | None,
    to: str,
    data: str | None,
    value: str | None,
) -> dict:
    tx: dict[str, Any] = {"to": to_checksum(to)}
    if from_address:
        tx["from"] = to_checksum(from_address)
    if data:
        tx["data"] = data
    if value:
        tx["value"] = int(value)
    return tx


# ---------------------------------------------------------------------------
# Generic contract access
# ---------------------------------------------------------------------------

async def call_contract(
    provider: Web3Provider,
    chain: str,
    contract_address: str,
    function_name: str,
    abi: list[dict],
    args: Sequence[Any] | None = None,
) -> dict:
    """Read a view function and return the decoded result verbatim."""
    try:
        client = provider.get_client(chain)
        result = await client.read_contract(contract_address, abi, function_name, args or [])
        return {
            "success": True,
            "chain": chain,
            "contract": contract_address,
            "function": function_name,
            "result": to_jsonable(result),
        }
    except Exception as e:
        logger.warning(f"call_contract {function_name} on {chain} failed: {e}")
        return {
            "success": False,
            "error": error_message(e),
            "chain": chain,
            "contract": contract_address,
        }


async def simulate_transaction(
    provider: Web3Provider,
    chain: str,
    from_address: str,
    to: str,
    data: str | None = None,
    value: str | None = None,
) -> dict:
    """Dry-run a transaction and estimate its gas.

    A revert and a transport failure are reported the same way.
    """
    try:
        client = provider.get_client(chain)
        tx = _tx_params(from_address, to, data, value)
        returned = await client.call(tx)
        gas = await client.estimate_gas(tx)
        return {
            "success": True,
            "chain": chain,
            "simulation": {
                "willSucceed": True,
                "result": returned,
                "estimatedGas": str(gas),
            },
        }
    except Exception as e:
        logger.warning(f"simulate_transaction on {chain} failed: {e}")
        return {
            "success": False,
            "chain": chain,
            "simulation": {
                "willSucceed": False,
                "error": error_message(e),
            },
        }


def build_transaction(
    chain: str,
    contract_address: str,
    function_name: str,
    abi: list[dict],
    args: Sequence[Any] | None = None,
    value: str | None = None,
) -> dict:
    """Encode an unsigned call for the user's wallet. Never touches the network."""
    try:
        chain_id = get_chain(chain).chain_id
        data = encode_function_data(contract_address, abi, function_name, args or [])
        return {
            "success": True,
            "chain": chain,
            "transaction": {
                "to": contract_address,
                "data": data,
                "value": value or "0",
                "chainId": chain_id,
            },
            "instructions": BUILD_INSTRUCTIONS,
        }
    except Exception as e:
        return {"success": False, "error": error_message(e), "chain": chain}


# ---------------------------------------------------------------------------
# DeFi protocol reads
# ---------------------------------------------------------------------------

async def get_aave_data(provider: Web3Provider, chain: str, asset: str) -> dict:
    """Read an Aave V3 reserve and derive supply/borrow APY."""
    try:
        pool = abis.AAVE_POOL_ADDRESSES.get(chain)
        if pool is None:
            get_chain(chain)  # raises for unknown chains
            raise ValueError(f"Aave V3 is not deployed on {chain}")
        client = provider.get_client(chain)
        reserve = await client.read_contract(
            pool,
            abis.AAVE_GET_RESERVE_DATA_ABI,
            "getReserveData",
            [to_checksum(asset)],
        )
        return {
            "success": True,
            "chain": chain,
            "protocol": "Aave V3",
            "asset": asset,
            "data": {
                "supplyAPY": ray_to_percent(reserve[abis.RESERVE_LIQUIDITY_RATE]),
                "borrowAPY": ray_to_percent(reserve[abis.RESERVE_VARIABLE_BORROW_RATE]),
                "aTokenAddress": reserve[abis.RESERVE_ATOKEN],
                "lastUpdate": format_timestamp(reserve[abis.RESERVE_LAST_UPDATE]),
            },
        }
    except Exception as e:
        logger.warning(f"Aave reserve read for {asset} on {chain} failed: {e}")
        return {
            "success": False,
            "error": error_message(e),
            "chain": chain,
            "protocol": "Aave V3",
        }


async def get_uniswap_pool(provider: Web3Provider, chain: str, pool_address: str) -> dict:
    """Read token pair, fee, liquidity and price state of a Uniswap V3 pool."""
    try:
        client = provider.get_client(chain)

        def read(fn: str):
            return client.read_contract(pool_address, abis.UNISWAP_V3_POOL_ABI, fn)

        token0, token1, fee, liquidity, slot0 = await asyncio.gather(
            read("token0"),
            read("token1"),
            read("fee"),
            read("liquidity"),
            read("slot0"),
        )
        return {
            "success": True,
            "chain": chain,
            "protocol": "Uniswap V3",
            "pool": pool_address,
            "data": {
                "token0": token0,
                "token1": token1,
                "fee": format_pool_fee(fee),
                "liquidity": str(liquidity),
                "currentTick": int(slot0[1]),
                "sqrtPriceX96": str(slot0[0]),
            },
        }
    except Exception as e:
        logger.warning(f"Uniswap pool read for {pool_address} on {chain} failed: {e}")
        return {
            "success": False,
            "error": error_message(e),
            "chain": chain,
            "protocol": "Uniswap V3",
        }


async def get_multi_chain_balance(
    provider: Web3Provider,
    address: str,
    token_address: str,
    chains: Sequence[str],
) -> dict:
    """ERC-20 balance of *address* on each requested chain.

    Chains are queried concurrently. A failing chain gets an ``"Error: ..."``
    string in its slot; the others are unaffected.
    """

    async def balance_on(chain: str) -> str:
        try:
            client = provider.get_client(chain)
            balance = await client.read_contract(
                token_address,
                abis.ERC20_BALANCE_OF_ABI,
                "balanceOf",
                [to_checksum(address)],
            )
            return str(balance)
        except Exception as e:
            logger.warning(f"balanceOf on {chain} failed: {e}")
            return f"Error: {error_message(e)}"

    try:
        values = await asyncio.gather(*(balance_on(c) for c in chains))
        return {
            "success": True,
            "address": address,
            "token": token_address,
            "balances": dict(zip(chains, values)),
        }
    except Exception as e:
        return {"success": False, "error": error_message(e)}


# ---------------------------------------------------------------------------
# Network and account reads
# ---------------------------------------------------------------------------

async def get_network_stats(provider: Web3Provider, chain: str = "base") -> dict:
    """Current gas price (gwei) and block height."""
    try:
        client = provider.get_client(chain)
        gas_price, block_number = await asyncio.gather(
            client.gas_price(), client.block_number()
        )
        return {
            "success": True,
            "chain": chain,
            "gasPrice": _scaled(gas_price, WEI_PER_GWEI),
            "blockNumber": int(block_number),
            "rpcHealthy": True,
        }
    except Exception as e:
        logger.warning(f"Network stats for {chain} failed: {e}")
        return {
            "success": False,
            "error": error_message(e),
            "chain": chain,
            "rpcHealthy": False,
        }


async def get_native_balance(provider: Web3Provider, chain: str, address: str) -> dict:
    try:
        client = provider.get_client(chain)
        wei = await client.get_balance(address)
        return {
            "success": True,
            "chain": chain,
            "address": address,
            "balance": _scaled(wei, WEI_PER_ETHER),
            "balanceWei": str(wei),
        }
    except Exception as e:
        return {
            "success": False,
            "error": error_message(e),
            "chain": chain,
            "address": address,
            "balance": "0.0000",
        }


async def get_token_balance(
    provider: Web3Provider,
    chain: str,
    address: str,
    token_address: str,
) -> dict:
    try:
        client = provider.get_client(chain)
        balance = await client.read_contract(
            token_address,
            abis.ERC20_BALANCE_OF_ABI,
            "balanceOf",
            [to_checksum(address)],
        )
        return {
            "success": True,
            "chain": chain,
            "address": address,
            "tokenAddress": token_address,
            "balance": str(balance),
        }
    except Exception as e:
        return {
            "success": False,
            "error": error_message(e),
            "chain": chain,
            "address": address,
            "tokenAddress": token_address,
        }
