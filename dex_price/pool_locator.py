"""
Pool Locator — find a token/WETH pool on each Uniswap design
=============================================================

  Constant product (V2):        UniswapV2Factory.getPair(token, weth)
  Concentrated liquidity (V3):  UniswapV3Factory.getPool(token, weth, fee)

V3 keeps one pool per fee tier. Tiers are queried in configured order
(lowest fee first by default) and the first existing pool wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from dex_price.central_config import NetworkConfig
from dex_price.contracts import UNISWAP_V2_FACTORY, UNISWAP_V3_FACTORY
from dex_price.errors import PoolLookupFailed
from dex_price.rpc_helpers import ZERO_ADDRESS, ChainReader

logger = logging.getLogger(__name__)


class PoolDesign(Enum):
    CONSTANT_PRODUCT = "constant_product"              # Uniswap V2 pair
    CONCENTRATED_LIQUIDITY = "concentrated_liquidity"  # Uniswap V3 pool


@dataclass(frozen=True)
class PoolReference:
    design: PoolDesign
    address: str
    fee: Optional[int] = None   # V3 only: the tier that matched


class PoolLocator:
    def __init__(self, reader: ChainReader, config: NetworkConfig):
        self.reader = reader
        self.config = config

    async def find_constant_product_pool(self, token: str) -> Optional[str]:
        """V2 pair address for token/reference asset, or None."""
        try:
            pair = await self.reader.call(
                self.config.constant_product_factory,
                UNISWAP_V2_FACTORY,
                "getPair",
                [token, self.config.reference_asset],
            )
            found = pair != ZERO_ADDRESS
        except Exception as e:
            raise PoolLookupFailed("Failed to get Uniswap V2 pool address", cause=e) from e

        logger.debug("V2 pair for %s: %s", token, pair if found else "none")
        return pair if found else None

    async def find_concentrated_liquidity_pool(self, token: str) -> Optional[str]:
        """V3 pool address for token/reference asset (lowest fee tier first), or None."""
        found = await self._search_fee_tiers(token)
        return found[0] if found else None

    async def _search_fee_tiers(self, token: str) -> Optional[Tuple[str, int]]:
        try:
            for fee in self.config.fee_tiers:
                pool = await self.reader.call(
                    self.config.concentrated_liquidity_factory,
                    UNISWAP_V3_FACTORY,
                    "getPool",
                    [token, self.config.reference_asset, fee],
                )
                if pool != ZERO_ADDRESS:
                    logger.debug("V3 pool for %s at fee %d: %s", token, fee, pool)
                    return pool, fee
        except Exception as e:
            raise PoolLookupFailed("Failed to get Uniswap V3 pool address", cause=e) from e

        logger.debug("V3 pool for %s: none in tiers %s", token, self.config.fee_tiers)
        return None

    async def locate(self, token: str) -> List[PoolReference]:
        """All pools found for the token, constant-product first."""
        pools = []
        pair = await self.find_constant_product_pool(token)
        if pair:
            pools.append(PoolReference(PoolDesign.CONSTANT_PRODUCT, pair))
        v3 = await self._search_fee_tiers(token)
        if v3:
            pools.append(PoolReference(PoolDesign.CONCENTRATED_LIQUIDITY, v3[0], fee=v3[1]))
        return pools

