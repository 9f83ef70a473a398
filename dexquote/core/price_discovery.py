"""
Token price discovery

Sources are tried in order: fixed-point shortcuts, the Chainlink feed (USD
quotes only), Uniswap V3 and finally the Uniswap V2 reserve ratio.
"""
import time
from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Callable, Optional

from dexquote.config.chains import ChainConfig
from dexquote.config.settings import ORACLE_STALENESS_SECONDS
from dexquote.core.balance import BalanceService
from dexquote.core.errors import (
    ChainRpcError, InsufficientLiquidityError, PoolNotFoundError, PriceOracleError,
)
from dexquote.core.structures import PriceInfo, PriceSource, QuoteCurrency, TokenInfo
from dexquote.core.token_registry import TokenRegistry
from dexquote.core.units import DECIMAL_CONTEXT, checked_uint, to_decimal
from dexquote.exchanges.dex.chainlink import ChainlinkOracle, OracleRound
from dexquote.exchanges.dex.uniswap_v2 import UniswapV2DEX
from dexquote.exchanges.dex.uniswap_v3 import UniswapV3DEX
from dexquote.utils.logger import get_logger
from dexquote.utils.rpc_manager import RPCManager

logger = get_logger(__name__)

# Fractional digits kept in a displayed price
PRICE_PRECISION = Decimal(1).scaleb(-18)


def format_price(value: Decimal) -> str:
    """Plain decimal string, truncated to 18 places, no exponent"""
    with localcontext(DECIMAL_CONTEXT):
        truncated = value.quantize(PRICE_PRECISION, rounding=ROUND_DOWN).normalize()
    return format(truncated, "f")


def validate_round(round_data: OracleRound, now: int, staleness_threshold: int):
    """Raise PriceOracleError if a feed answer can't be trusted"""
    if round_data.answered_in_round < round_data.round_id:
        raise PriceOracleError(
            f"stale round (answered in {round_data.answered_in_round}, latest {round_data.round_id})"
        )
    if now > round_data.updated_at and now - round_data.updated_at > staleness_threshold:
        raise PriceOracleError(f"answer is {now - round_data.updated_at}s old")
    if round_data.answer <= 0:
        raise PriceOracleError(f"non-positive answer {round_data.answer}")


class PriceService:
    """
    Spot prices in USD or ETH
    """

    def __init__(
        self,
        rpc: RPCManager,
        registry: TokenRegistry,
        chain: ChainConfig,
        oracle: Optional[ChainlinkOracle] = None,
        v2: Optional[UniswapV2DEX] = None,
        v3: Optional[UniswapV3DEX] = None,
        balances: Optional[BalanceService] = None,
        staleness_threshold: int = ORACLE_STALENESS_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.rpc = rpc
        self.registry = registry
        self.chain = chain
        self.oracle = oracle or ChainlinkOracle(rpc)
        self.v2 = v2 or UniswapV2DEX.from_chain(rpc, chain)
        self.v3 = v3 or UniswapV3DEX.from_chain(rpc, chain)
        self.balances = balances or BalanceService(rpc, registry, chain)
        self.staleness_threshold = staleness_threshold
        self._clock = clock

    def _result(self, token: TokenInfo, price: str, quote: QuoteCurrency, source: PriceSource) -> PriceInfo:
        return PriceInfo(
            token=token,
            price=price,
            quote_currency=quote,
            source=source,
            timestamp=int(self._clock()),
        )

    async def get_price(self, token_address: str, quote_currency: QuoteCurrency) -> PriceInfo:
        """
        Price of one whole token in `quote_currency`

        Raises PoolNotFoundError when no source can price the token, or
        InsufficientLiquidityError when the only pool found is empty.
        """
        token = await self.balances.token_info(token_address)

        if quote_currency == QuoteCurrency.ETH and self.chain.is_wrapped_native(token_address):
            return self._result(token, "1", quote_currency, PriceSource.AMM_V3)
        if quote_currency == QuoteCurrency.USD and self.chain.is_stablecoin(token_address):
            return self._result(token, "1", quote_currency, PriceSource.ORACLE)

        if quote_currency == QuoteCurrency.USD:
            feed = self.chain.feed_for(token_address)
            if feed is not None:
                try:
                    price = await self.get_oracle_price(feed)
                    return self._result(token, price, quote_currency, PriceSource.ORACLE)
                except (PriceOracleError, ChainRpcError) as e:
                    logger.debug(f"Oracle price for {token.symbol} rejected: {e}")

        quote_token = (
            self.chain.wrapped_native if quote_currency == QuoteCurrency.ETH else self.chain.stablecoin
        )
        quote_info = await self.balances.token_info(quote_token)

        price = await self.get_v3_price(token, quote_info)
        if price is not None:
            return self._result(token, price, quote_currency, PriceSource.AMM_V3)

        price = await self.get_v2_price(token, quote_info)
        return self._result(token, price, quote_currency, PriceSource.AMM_V2)

    async def get_oracle_price(self, feed_address: str) -> str:
        round_data = await self.oracle.latest_round(feed_address)
        validate_round(round_data, int(self._clock()), self.staleness_threshold)
        decimals = await self.oracle.decimals(feed_address)
        return format_price(to_decimal(round_data.answer, decimals))

    async def get_v3_price(self, token: TokenInfo, quote: TokenInfo) -> Optional[str]:
        """Quote one whole token through the first fee tier that answers"""
        one_unit = 10 ** token.decimals
        for fee in self.v3.fee_tiers:
            try:
                amount_out = await self.v3.quote_exact_input_single(
                    token.address, quote.address, one_unit, fee
                )
            except ChainRpcError as e:
                logger.debug(f"V3 quote {token.symbol}/{quote.symbol} fee {fee} failed: {e}")
                continue
            if amount_out == 0:
                logger.debug(f"V3 quote {token.symbol}/{quote.symbol} fee {fee} returned zero")
                continue
            return format_price(to_decimal(amount_out, quote.decimals))
        return None

    async def get_v2_price(self, token: TokenInfo, quote: TokenInfo) -> str:
        """Price from the direct pair's reserves"""
        try:
            reserves = await self.v2.get_reserves(token.address, quote.address)
        except ChainRpcError as e:
            logger.debug(f"V2 reserves {token.symbol}/{quote.symbol} failed: {e}")
            reserves = None
        if reserves is None:
            raise PoolNotFoundError(f"{token.symbol}/{quote.symbol}")

        reserve_in = checked_uint(reserves[0], "reserve_in")
        reserve_out = checked_uint(reserves[1], "reserve_out")
        if reserve_in == 0:
            raise InsufficientLiquidityError(f"{token.symbol}/{quote.symbol} pair has no reserves")

        with localcontext(DECIMAL_CONTEXT):
            price = to_decimal(reserve_out, quote.decimals) / to_decimal(reserve_in, token.decimals)
        return format_price(price)
