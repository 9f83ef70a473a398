"""
Chainlink price feed reader
"""
from dataclasses import dataclass

from dexquote.exchanges.dex.base_dex import CHAINLINK_AGGREGATOR_ABI, checksum
from dexquote.utils.rpc_manager import RPCManager


@dataclass(frozen=True)
class OracleRound:
    """latestRoundData() output"""
    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


class ChainlinkOracle:
    """Reads AggregatorV3 feeds; feed decimals are cached"""

    def __init__(self, rpc: RPCManager):
        self.rpc = rpc
        self._decimals: dict[str, int] = {}

    async def latest_round(self, feed_address: str) -> OracleRound:
        round_id, answer, started_at, updated_at, answered_in_round = await self.rpc.read(
            feed_address, CHAINLINK_AGGREGATOR_ABI, "latestRoundData"
        )
        return OracleRound(
            round_id=int(round_id),
            answer=int(answer),
            started_at=int(started_at),
            updated_at=int(updated_at),
            answered_in_round=int(answered_in_round),
        )

    async def decimals(self, feed_address: str) -> int:
        feed = checksum(feed_address)
        if feed not in self._decimals:
            self._decimals[feed] = int(
                await self.rpc.read(feed, CHAINLINK_AGGREGATOR_ABI, "decimals")
            )
        return self._decimals[feed]
