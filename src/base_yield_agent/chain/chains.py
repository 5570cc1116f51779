"""The fixed set of EVM networks the agent reads from."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Chain:
    name: str
    chain_id: int
    rpc_url: str
    explorer_url: str
    native_symbol: str = "ETH"
    poa: bool = True  # block headers carry extra data; only mainnet is plain PoS

    def with_rpc_url(self, rpc_url: str) -> Chain:
        return replace(self, rpc_url=rpc_url)


_SUPPORTED = (
    Chain("base", 8453, "https://mainnet.base.org", "https://basescan.org"),
    Chain("mainnet", 1, "https://eth.llamarpc.com", "https://etherscan.io", poa=False),
    Chain("arbitrum", 42161, "https://arb1.arbitrum.io/rpc", "https://arbiscan.io"),
    Chain("optimism", 10, "https://mainnet.optimism.io", "https://optimistic.etherscan.io"),
    Chain("polygon", 137, "https://polygon-rpc.com", "https://polygonscan.com", native_symbol="POL"),
)

CHAINS: dict[str, Chain] = {c.name: c for c in _SUPPORTED}


def get_chain(name: str) -> Chain:
    """Look up a chain by name. Raises ``KeyError`` for unsupported names."""
    try:
        return CHAINS[name]
    except KeyError:
        raise KeyError(f"Unknown chain '{name}'. Available: {list_chain_names()}") from None


def list_chain_names() -> list[str]:
    return list(CHAINS)
