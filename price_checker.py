#!/usr/bin/env python3
"""
Token Price Checker — Uniswap V2/V3 + Chainlink
================================================

Resolves an ERC-20 token's spot price in WETH and USD straight from
on-chain state. No API key required; uses httpx for raw eth_call.

Data Sources (per get_price call):
──────────────────────────────────
1. UniswapV2Factory.getPair(token, WETH)          ┐
2. UniswapV3Factory.getPool(token, WETH, fee)     ├ concurrent
   fee ∈ (500, 3000, 10000), first hit wins       │
3. Chainlink ETH/USD latestAnswer() / 10^8        ┘
4. V2 pair: token0() + getReserves()   → reserve_token / reserve_weth
5. V3 pool: slot0().sqrtPriceX96       → (sqrtPriceX96 / 2^96)^2

Precedence:
───────────
  If both pools exist the V3 price replaces the V2 price.
  price_usd = price_weth × ETH/USD

A token with no pool gives a quote with both prices None. Any RPC or
decoding failure raises PriceResolutionFailed; there is no partial result.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from dex_price.central_config import NetworkConfig, load_config
from dex_price.concurrency import join_all
from dex_price.errors import PriceResolutionFailed
from dex_price.oracle import OracleClient
from dex_price.pool_locator import PoolLocator
from dex_price.price_extractor import Pool, PriceExtractor
from dex_price.rpc_helpers import ChainReader, RpcChainReader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceQuote:
    """Result of one get_price call. None means "no pool", not zero."""

    price_in_reference_asset: Optional[float]
    price_in_fiat: Optional[float]
    reference_fiat_rate: Optional[float] = None
    constant_product_pool: Optional[str] = None
    concentrated_liquidity_pool: Optional[str] = None
    constant_product_price: Optional[float] = None
    concentrated_liquidity_price: Optional[float] = None

    @property
    def found(self) -> bool:
        return self.price_in_reference_asset is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PriceChecker:
    """
    Token price in the reference asset and fiat for one network.

    Usage:
        checker = PriceChecker.from_network("ethereum")
        quote = await checker.get_price("0x34F5C9449Bae9b1D96044690164BD66f2f604c1e")
        quote.price_in_reference_asset, quote.price_in_fiat
    """

    def __init__(self, reader: ChainReader, config: NetworkConfig):
        self.reader = reader
        self.config = config
        self.oracle = OracleClient(reader, config)
        self.locator = PoolLocator(reader, config)
        self.extractor = PriceExtractor(reader, config)

    @classmethod
    def from_network(
        cls, network: str = "ethereum", rpc_url: Optional[str] = None, timeout: float = 20
    ) -> "PriceChecker":
        config = load_config(network, rpc_url)
        return cls(RpcChainReader(config.rpc_url, timeout=timeout), config)

    # ── Sub-operations ───────────────────────────────────────────────

    async def get_reference_fiat_rate(self) -> float:
        return await self.oracle.get_reference_fiat_rate()

    async def find_constant_product_pool(self, token: str) -> Optional[str]:
        return await self.locator.find_constant_product_pool(token)

    async def find_concentrated_liquidity_pool(self, token: str) -> Optional[str]:
        return await self.locator.find_concentrated_liquidity_pool(token)

    async def price_from_constant_product_pool(self, pool: Pool) -> float:
        return await self.extractor.price_from_constant_product_pool(pool)

    async def price_from_concentrated_liquidity_pool(self, pool: Pool) -> float:
        return await self.extractor.price_from_concentrated_liquidity_pool(pool)

    # ── Aggregate ────────────────────────────────────────────────────

    async def get_price(self, token: str) -> PriceQuote:
        """
        Resolve the token price.

        Steps:
          1. V2 lookup, V3 lookup and oracle rate run concurrently; all three
             settle before the first failure (if any) is raised.
          2. V2 price, then V3 price, extracted in that order. V3 wins.
          3. Fiat price = reference price × oracle rate.
        """
        try:
            v2_pool, v3_pool, rate = await join_all(
                self.locator.find_constant_product_pool(token),
                self.locator.find_concentrated_liquidity_pool(token),
                self.oracle.get_reference_fiat_rate(),
            )

            v2_price = v3_price = price = None
            if v2_pool:
                v2_price = await self.extractor.price_from_constant_product_pool(v2_pool)
                price = v2_price
            if v3_pool:
                v3_price = await self.extractor.price_from_concentrated_liquidity_pool(v3_pool)
                price = v3_price
        except Exception as e:
            raise PriceResolutionFailed(cause=e) from e

        price_fiat = price * rate if price is not None else None
        quote = PriceQuote(
            price_in_reference_asset=price,
            price_in_fiat=price_fiat,
            reference_fiat_rate=rate,
            constant_product_pool=v2_pool,
            concentrated_liquidity_pool=v3_pool,
            constant_product_price=v2_price,
            concentrated_liquidity_price=v3_price,
        )
        logger.info(
            "Price %s: %s %s / %s %s",
            token, price, self.config.reference_symbol, price_fiat, self.config.fiat_symbol,
        )
        return quote


# ── Standalone Test ──────────────────────────────────────────────────────

async def _test_price(token: str, network: str = "ethereum") -> PriceQuote:
    """Quick test: read a real token price from chain.

    Usage:
        python price_checker.py <token_address> [network]
    """
    checker = PriceChecker.from_network(network)
    quote = await checker.get_price(token)
    print(quote.to_dict())
    return quote


if __name__ == "__main__":
    import sys
    if len(sys.argv) < 2:
        print("Usage: python price_checker.py <token_address> [network]")
        sys.exit(1)
    net = sys.argv[2] if len(sys.argv) > 2 else "ethereum"
    asyncio.run(_test_price(sys.argv[1], net))
