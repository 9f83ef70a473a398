"""
Gas estimator for calculating transaction costs
"""
import asyncio
from dataclasses import dataclass
from typing import Any

from dexquote.config.settings import FALLBACK_GAS_LIMIT, FALLBACK_GAS_PRICE_WEI
from dexquote.core.errors import DexQuoteError
from dexquote.core.units import format_units
from dexquote.utils.logger import get_logger
from dexquote.utils.rpc_manager import RPCManager

logger = get_logger(__name__)


@dataclass
class GasEstimate:
    """Gas figures for one transaction"""
    gas_limit: int
    gas_price_wei: int
    limit_is_fallback: bool = False
    price_is_fallback: bool = False

    @property
    def cost_wei(self) -> int:
        return self.gas_limit * self.gas_price_wei

    @property
    def cost_eth(self) -> str:
        return format_units(self.cost_wei, 18)


class GasEstimator:
    """
    Estimates gas for a transaction

    The limit and the price are fetched independently and each falls back
    to a fixed value on failure; a call that reverts usually can't be
    estimated but the node still knows the gas price.
    """

    def __init__(
        self,
        rpc: RPCManager,
        fallback_gas_limit: int = FALLBACK_GAS_LIMIT,
        fallback_gas_price: int = FALLBACK_GAS_PRICE_WEI,
    ):
        self.rpc = rpc
        self.fallback_gas_limit = fallback_gas_limit
        self.fallback_gas_price = fallback_gas_price

    async def estimate_gas_limit(self, tx: dict[str, Any]) -> tuple[int, bool]:
        try:
            return await self.rpc.estimate_gas(tx), False
        except DexQuoteError as e:
            logger.debug(f"Gas estimation failed, using {self.fallback_gas_limit}: {e}")
            return self.fallback_gas_limit, True

    async def get_gas_price(self) -> tuple[int, bool]:
        try:
            return await self.rpc.get_gas_price(), False
        except DexQuoteError as e:
            logger.debug(f"Gas price unavailable, using {self.fallback_gas_price} wei: {e}")
            return self.fallback_gas_price, True

    async def estimate(self, tx: dict[str, Any]) -> GasEstimate:
        """Gas limit and price for `tx`; never raises for RPC failures"""
        (gas_limit, limit_fallback), (gas_price, price_fallback) = await asyncio.gather(
            self.estimate_gas_limit(tx),
            self.get_gas_price(),
        )
        return GasEstimate(
            gas_limit=gas_limit,
            gas_price_wei=gas_price,
            limit_is_fallback=limit_fallback,
            price_is_fallback=price_fallback,
        )
