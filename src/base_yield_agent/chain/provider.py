"""Async Web3 clients for the supported EVM networks."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from web3 import AsyncWeb3, Web3
from web3.middleware import ExtraDataToPOAMiddleware

from base_yield_agent.chain.chains import Chain, get_chain

logger = logging.getLogger("base_yield_agent.chain.provider")


def to_checksum(address: str) -> str:
    return Web3.to_checksum_address(address)


def _checksum_value(abi_type: str, components: list[dict] | None, value: Any) -> Any:
    if abi_type.endswith("]"):
        inner = abi_type[: abi_type.rindex("[")]
        return [_checksum_value(inner, components, v) for v in value]
    if abi_type == "address" and isinstance(value, str):
        return to_checksum(value)
    if abi_type == "tuple" and components:
        if isinstance(value, dict):
            types = {c["name"]: c for c in components}
            return {
                k: _checksum_value(types[k]["type"], types[k].get("components"), v) if k in types else v
                for k, v in value.items()
            }
        return tuple(
            _checksum_value(c["type"], c.get("components"), v) for c, v in zip(components, value)
        )
    return value


def checksum_args(abi: list[dict], function_name: str, args: Sequence[Any]) -> list[Any]:
    """Checksum every ``address`` argument, including inside arrays and tuples.

    web3 rejects non-checksummed addresses; callers usually pass lowercase.
    Arguments are matched against the first overload of *function_name* with
    the same arity and returned unchanged when there is none.
    """
    args = list(args)
    for entry in abi:
        inputs = entry.get("inputs") or []
        if (
            entry.get("type", "function") == "function"
            and entry.get("name") == function_name
            and len(inputs) == len(args)
        ):
            return [_checksum_value(i["type"], i.get("components"), a) for i, a in zip(inputs, args)]
    return args


def encode_function_data(
    contract_address: str,
    abi: list[dict],
    function_name: str,
    args: Sequence[Any] = (),
) -> str:
    """ABI-encode a function call. Offline: no provider is attached."""
    contract = Web3().eth.contract(address=to_checksum(contract_address), abi=abi)
    return contract.encode_abi(function_name, args=checksum_args(abi, function_name, args))


class ChainClient:
    """Read-only RPC operations against a single chain."""

    def __init__(self, chain: Chain, w3: AsyncWeb3) -> None:
        self.chain = chain
        self.w3 = w3

    async def read_contract(
        self,
        address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        contract = self.w3.eth.contract(address=to_checksum(address), abi=abi)
        fn = getattr(contract.functions, function_name)
        return await fn(*checksum_args(abi, function_name, args)).call()

    async def call(self, tx: dict) -> str:
        """Dry-run a transaction and return the returned data as hex."""
        data = await self.w3.eth.call(tx)
        return Web3.to_hex(data)

    async def estimate_gas(self, tx: dict) -> int:
        return await self.w3.eth.estimate_gas(tx)

    async def gas_price(self) -> int:
        return await self.w3.eth.gas_price

    async def block_number(self) -> int:
        return await self.w3.eth.block_number

    async def get_balance(self, address: str) -> int:
        return await self.w3.eth.get_balance(to_checksum(address))


class Web3Provider:
    """Manages async Web3 connections across multiple EVM chains.

    Parameters
    ----------
    rpc_urls:
        Optional per-chain RPC endpoint overrides, keyed by chain name.
    """

    def __init__(self, rpc_urls: dict[str, str] | None = None) -> None:
        self._rpc_urls = dict(rpc_urls or {})
        self._clients: dict[str, ChainClient] = {}

    def resolve_chain(self, chain_name: str) -> Chain:
        chain = get_chain(chain_name)
        override = self._rpc_urls.get(chain_name)
        return chain.with_rpc_url(override) if override else chain

    def get_client(self, chain_name: str) -> ChainClient:
        """Return a (cached) client for the given chain.

        Injects POA middleware for chains flagged ``poa``.
        """
        if chain_name in self._clients:
            return self._clients[chain_name]

        chain = self.resolve_chain(chain_name)
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(chain.rpc_url))
        if chain.poa:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        client = ChainClient(chain, w3)
        self._clients[chain_name] = client
        logger.debug(f"Created web3 client for {chain_name} ({chain.rpc_url})")
        return client
