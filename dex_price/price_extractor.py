"""
Price Extractor — pool state → token price in WETH
====================================================

Constant product (Uniswap V2):
  price = reserve_token / reserve_weth
  Orientation comes from token0(): if token0 is WETH, the token sits in
  reserve1. The comparison is an exact string match against the configured
  reference asset.

Concentrated liquidity (Uniswap V3, Whitepaper §6.1):
  price = (sqrtPriceX96 / 2^96)^2
  This is token1 per token0 in the pool's own ordering; which side is
  WETH is not resolved.

Neither formula applies a decimals correction (raw exchange rate).
"""

import logging
from typing import Tuple, Union

from dex_price.central_config import NetworkConfig
from dex_price.concurrency import join_all
from dex_price.contracts import UNISWAP_V2_PAIR, UNISWAP_V3_POOL
from dex_price.errors import PriceExtractionFailed
from dex_price.pool_locator import PoolDesign, PoolReference
from dex_price.rpc_helpers import Q96, ChainReader

logger = logging.getLogger(__name__)

Pool = Union[PoolReference, str]


def _address(pool: Pool, design: PoolDesign) -> str:
    if not isinstance(pool, PoolReference):
        return pool
    if pool.design is not design:
        raise ValueError(f"expected a {design.value} pool, got {pool.design.value}")
    return pool.address


def orient_reserves(
    token0: str, reserve0: int, reserve1: int, reference_asset: str
) -> Tuple[int, int]:
    """Return (token_reserve, reference_reserve) for a V2 pair."""
    if token0 != reference_asset:
        return reserve0, reserve1
    return reserve1, reserve0


def sqrt_price_x96_to_price(sqrt_price_x96: int) -> float:
    """(sqrtPriceX96 / 2^96)^2 — token1 per token0, no decimals adjustment."""
    if sqrt_price_x96 < 0:
        raise ValueError(f"sqrtPriceX96 must be non-negative, got {sqrt_price_x96}")
    sqrt_p = sqrt_price_x96 / Q96
    return sqrt_p * sqrt_p


class PriceExtractor:
    def __init__(self, reader: ChainReader, config: NetworkConfig):
        self.reader = reader
        self.config = config

    async def price_from_constant_product_pool(self, pool: Pool) -> float:
        try:
            address = _address(pool, PoolDesign.CONSTANT_PRODUCT)
            token0, reserves = await join_all(
                self.reader.call(address, UNISWAP_V2_PAIR, "token0"),
                self.reader.call(address, UNISWAP_V2_PAIR, "getReserves"),
            )
            token_reserve, ref_reserve = orient_reserves(
                token0,
                reserves["reserve0"],
                reserves["reserve1"],
                self.config.reference_asset,
            )
            # int / int is correctly rounded to float, even for 256-bit values
            price = token_reserve / ref_reserve
        except Exception as e:
            raise PriceExtractionFailed("Failed to get Uniswap V2 price", cause=e) from e

        logger.debug(
            "V2 %s: token0=%s reserves=(%d, %d) → %s",
            address, token0, reserves["reserve0"], reserves["reserve1"], price,
        )
        return price

    async def price_from_concentrated_liquidity_pool(self, pool: Pool) -> float:
        try:
            address = _address(pool, PoolDesign.CONCENTRATED_LIQUIDITY)
            state = await self.reader.call(address, UNISWAP_V3_POOL, "slot0")
            sqrt_price_x96 = state["sqrtPriceX96"]
            price = sqrt_price_x96_to_price(sqrt_price_x96)
        except Exception as e:
            raise PriceExtractionFailed("Failed to get Uniswap V3 price", cause=e) from e

        logger.debug("V3 %s: sqrtPriceX96=%d → %s", address, sqrt_price_x96, price)
        return price
