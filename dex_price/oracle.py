"""
Chainlink reference-asset/fiat rate (ETH/USD on mainnet).

Feed: https://data.chain.link/feeds/ethereum/mainnet/eth-usd
latestAnswer() returns an int256 with 8 decimals: 123456789012 → 1234.56789012
"""

import logging

from dex_price.central_config import NetworkConfig
from dex_price.contracts import CHAINLINK_AGGREGATOR
from dex_price.errors import OracleUnavailable
from dex_price.rpc_helpers import ChainReader

logger = logging.getLogger(__name__)


class OracleClient:
    def __init__(self, reader: ChainReader, config: NetworkConfig):
        self.reader = reader
        self.config = config

    async def get_reference_fiat_rate(self) -> float:
        """Current reference-asset price in fiat, e.g. ETH/USD."""
        try:
            answer = await self.reader.call(
                self.config.oracle, CHAINLINK_AGGREGATOR, "latestAnswer"
            )
            if answer <= 0:
                raise ValueError(f"non-positive oracle answer: {answer}")
            rate = answer / 10 ** self.config.oracle_decimals
        except Exception as e:
            raise OracleUnavailable(cause=e) from e

        logger.debug(
            "%s/%s rate: %s (raw %s)",
            self.config.reference_symbol, self.config.fiat_symbol, rate, answer,
        )
        return rate
