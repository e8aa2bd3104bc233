"""
Contract Interfaces — selectors and ABI types for the read-only calls
=====================================================================

Each interface lists the methods we call, with the 4-byte selector
(first 4 bytes of keccak256 of the signature), the input types and the
named outputs. Only static ABI types are needed here.

Sources:
  UniswapV2Factory : https://github.com/Uniswap/v2-core/blob/master/contracts/UniswapV2Factory.sol
  UniswapV2Pair    : https://github.com/Uniswap/v2-core/blob/master/contracts/UniswapV2Pair.sol
  UniswapV3Factory : https://github.com/Uniswap/v3-core/blob/main/contracts/UniswapV3Factory.sol
  UniswapV3Pool    : https://github.com/Uniswap/v3-core/blob/main/contracts/UniswapV3Pool.sol
  Chainlink feed   : https://docs.chain.link/data-feeds/api-reference
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple


@dataclass(frozen=True)
class MethodSpec:
    """One read-only contract method."""

    name: str
    selector: str
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ContractInterface:
    """Named set of methods callable through a ChainReader."""

    name: str
    methods: Mapping[str, MethodSpec]

    def method(self, name: str) -> MethodSpec:
        try:
            return self.methods[name]
        except KeyError:
            raise KeyError(f"{self.name} has no method {name!r}") from None


def _interface(name: str, *methods: MethodSpec) -> ContractInterface:
    return ContractInterface(name, MappingProxyType({m.name: m for m in methods}))


UNISWAP_V2_FACTORY = _interface(
    "UniswapV2Factory",
    # getPair(address,address)
    MethodSpec("getPair", "0xe6a43905", ("address", "address"), (("pair", "address"),)),
)

UNISWAP_V2_PAIR = _interface(
    "UniswapV2Pair",
    MethodSpec("token0", "0x0dfe1681", (), (("", "address"),)),
    MethodSpec(
        "getReserves",
        "0x0902f1ac",
        (),
        (
            ("reserve0", "uint112"),
            ("reserve1", "uint112"),
            ("blockTimestampLast", "uint32"),
        ),
    ),
)

UNISWAP_V3_FACTORY = _interface(
    "UniswapV3Factory",
    # getPool(address,address,uint24)
    MethodSpec(
        "getPool", "0x1698ee82", ("address", "address", "uint24"), (("pool", "address"),)
    ),
)

UNISWAP_V3_POOL = _interface(
    "UniswapV3Pool",
    MethodSpec(
        "slot0",
        "0x3850c7bd",
        (),
        (
            ("sqrtPriceX96", "uint160"),
            ("tick", "int24"),
            ("observationIndex", "uint16"),
            ("observationCardinality", "uint16"),
            ("observationCardinalityNext", "uint16"),
            ("feeProtocol", "uint8"),
            ("unlocked", "bool"),
        ),
    ),
)

CHAINLINK_AGGREGATOR = _interface(
    "ChainlinkAggregator",
    MethodSpec("latestAnswer", "0x50d25bcd", (), (("", "int256"),)),
)
