"""
Project Configuration — network parameters, RPC endpoints, version
===================================================================

Each NetworkConfig is an immutable value passed to the pricing components
at construction, so several deployments can coexist in one process.

Contract address sources:
  Uniswap V2 : https://docs.uniswap.org/contracts/v2/reference/smart-contracts/v2-deployments
  Uniswap V3 : https://docs.uniswap.org/contracts/v3/reference/deployments/
  Chainlink  : https://data.chain.link/feeds/ethereum/mainnet/eth-usd
"""

import os
import re
from dataclasses import dataclass, replace
from importlib.metadata import version, PackageNotFoundError
from pathlib import Path
from types import MappingProxyType
from typing import Optional, Tuple

from dotenv import load_dotenv

from dex_price.rpc_helpers import is_address

# Version: single source of truth is pyproject.toml
try:
    PROJECT_VERSION = version("dex-price")
except PackageNotFoundError:
    # Dev / CI: package not installed, read pyproject.toml directly
    _toml = Path(__file__).resolve().parent.parent / "pyproject.toml"
    _m = (
        re.search(r'version\s*=\s*"([^"]+)"', _toml.read_text())
        if _toml.exists()
        else None
    )
    PROJECT_VERSION = _m.group(1) if _m else "0.0.0-dev"
PROJECT_NAME = "DEX Price"

RPC_URL_ENV = "DEX_PRICE_RPC_URL"

# Uniswap V3 fee tiers in hundredths of a bip: 0.05%, 0.3%, 1%.
# Queried in this order; the first tier with a pool wins, so the lowest fee
# wins. Custom tiers must be strictly ascending.
DEFAULT_FEE_TIERS = (500, 3000, 10000)

# ── Privacy-Preserving RPC Endpoints via 1RPC.io ────────────────────────
# Free tier, no API key required. Docs: https://docs.1rpc.io/

RPC_URLS = MappingProxyType(
    {
        "ethereum": "https://1rpc.io/eth",
    }
)


@dataclass(frozen=True)
class NetworkConfig:
    """On-chain parameters for one network deployment."""

    name: str
    rpc_url: str
    constant_product_factory: str
    concentrated_liquidity_factory: str
    oracle: str
    reference_asset: str
    fee_tiers: Tuple[int, ...] = DEFAULT_FEE_TIERS
    oracle_decimals: int = 8
    reference_symbol: str = "WETH"
    fiat_symbol: str = "USD"

    def __post_init__(self):
        for field in (
            "constant_product_factory",
            "concentrated_liquidity_factory",
            "oracle",
            "reference_asset",
        ):
            value = getattr(self, field)
            if not is_address(value):
                raise ValueError(f"Invalid {field} address: {value!r}")
        # Stored as given: reserve orientation compares token0 to
        # reference_asset by exact string, and decoded addresses are lowercase.
        tiers = tuple(self.fee_tiers)
        if not tiers or any(not isinstance(t, int) or t <= 0 for t in tiers):
            raise ValueError(f"fee_tiers must be non-empty positive ints, got {self.fee_tiers!r}")
        if any(a >= b for a, b in zip(tiers, tiers[1:])):
            raise ValueError(f"fee_tiers must be strictly ascending, got {self.fee_tiers!r}")
        object.__setattr__(self, "fee_tiers", tiers)
        if self.oracle_decimals < 0:
            raise ValueError(f"oracle_decimals must be >= 0, got {self.oracle_decimals}")


ETHEREUM_MAINNET = NetworkConfig(
    name="ethereum",
    rpc_url=RPC_URLS["ethereum"],
    constant_product_factory="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
    concentrated_liquidity_factory="0x1F98431c8aD98523631AE4a59f267346ea31F984",
    oracle="0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
    reference_asset="0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
)

NETWORKS = MappingProxyType({"ethereum": ETHEREUM_MAINNET})


def load_config(network: str = "ethereum", rpc_url: Optional[str] = None) -> NetworkConfig:
    """
    Resolve the configuration for a network.

    RPC endpoint precedence: explicit rpc_url, then $DEX_PRICE_RPC_URL
    (a local .env file is honoured), then the network preset.
    """
    try:
        base = NETWORKS[network.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported network: {network}. Available: {list(NETWORKS.keys())}"
        ) from None

    load_dotenv()
    url = rpc_url or os.getenv(RPC_URL_ENV)
    if url:
        return replace(base, rpc_url=url)
    return base
