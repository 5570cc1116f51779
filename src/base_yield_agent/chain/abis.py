"""ABI fragments and protocol addresses used by the built-in DeFi reads."""

from __future__ import annotations

# Aave V3 Pool per chain
AAVE_POOL_ADDRESSES: dict[str, str] = {
    "base": "0xA238Dd80C259a72e81d7e4664a9801593F98d1c5",
    "mainnet": "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2",
    "arbitrum": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "optimism": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "polygon": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
}


def _fn(name: str, inputs: list[dict], outputs: list[dict]) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": inputs,
        "outputs": outputs,
    }


def _param(type_: str, name: str = "") -> dict:
    return {"type": type_, "name": name}


ERC20_BALANCE_OF_ABI: list[dict] = [
    _fn("balanceOf", [_param("address", "account")], [_param("uint256")]),
]

# getReserveData returns a single ReserveData struct; web3 unwraps the
# single output so the call yields the tuple of components below.
AAVE_RESERVE_FIELDS: list[tuple[str, str]] = [
    ("uint256", "configuration"),
    ("uint128", "liquidityIndex"),
    ("uint128", "currentLiquidityRate"),
    ("uint128", "variableBorrowIndex"),
    ("uint128", "currentVariableBorrowRate"),
    ("uint128", "currentStableBorrowRate"),
    ("uint40", "lastUpdateTimestamp"),
    ("uint16", "id"),
    ("address", "aTokenAddress"),
    ("address", "stableDebtTokenAddress"),
    ("address", "variableDebtTokenAddress"),
    ("address", "interestRateStrategyAddress"),
    ("uint128", "accruedToTreasury"),
    ("uint128", "unbacked"),
    ("uint128", "isolationModeTotalDebt"),
]

AAVE_GET_RESERVE_DATA_ABI: list[dict] = [
    _fn(
        "getReserveData",
        [_param("address", "asset")],
        [
            {
                "type": "tuple",
                "name": "",
                "components": [_param(t, n) for t, n in AAVE_RESERVE_FIELDS],
            }
        ],
    ),
]

# Field positions within the reserve tuple
RESERVE_LIQUIDITY_RATE = 2
RESERVE_VARIABLE_BORROW_RATE = 4
RESERVE_LAST_UPDATE = 6
RESERVE_ATOKEN = 8

UNISWAP_V3_POOL_ABI: list[dict] = [
    _fn("token0", [], [_param("address")]),
    _fn("token1", [], [_param("address")]),
    _fn("fee", [], [_param("uint24")]),
    _fn("liquidity", [], [_param("uint128")]),
    _fn(
        "slot0",
        [],
        [
            _param("uint160", "sqrtPriceX96"),
            _param("int24", "tick"),
            _param("uint16", "observationIndex"),
            _param("uint16", "observationCardinality"),
            _param("uint16", "observationCardinalityNext"),
            _param("uint8", "feeProtocol"),
            _param("bool", "unlocked"),
        ],
    ),
]
