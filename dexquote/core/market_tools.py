"""
Caller-facing operations: balance, price and swap simulation

Inputs arrive as strings from a user or a tool call. Everything is
validated here, before any service sees it; results are plain dicts ready
for JSON.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from web3 import Web3

from dexquote.config.settings import DEFAULT_SLIPPAGE_PERCENT, MAX_SLIPPAGE_PERCENT
from dexquote.core.balance import BalanceService
from dexquote.core.errors import (
    ConfigurationError, InvalidAddressError, TokenNotFoundError, ValidationError,
)
from dexquote.core.price_discovery import PriceService
from dexquote.core.structures import QuoteCurrency, SwapParams, TokenEntry
from dexquote.core.swap_router import SwapRouter
from dexquote.core.token_registry import TokenRegistry
from dexquote.core.units import parse_units
from dexquote.utils.logger import get_logger

logger = get_logger(__name__)

SlippageInput = Union[str, float, int, Decimal, None]


def parse_address(text: str) -> str:
    """Checksummed address, or InvalidAddressError"""
    candidate = (text or "").strip()
    if not Web3.is_address(candidate):
        raise InvalidAddressError(text)
    return Web3.to_checksum_address(candidate)


def parse_slippage(value: SlippageInput) -> Decimal:
    """Slippage percent in [0, MAX_SLIPPAGE_PERCENT]; None gives the default"""
    if value is None:
        return DEFAULT_SLIPPAGE_PERCENT
    try:
        slippage = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"Invalid slippage tolerance: {value!r}") from None
    if not slippage.is_finite() or slippage < 0 or slippage > MAX_SLIPPAGE_PERCENT:
        raise ValidationError(
            f"Slippage tolerance must be between 0 and {MAX_SLIPPAGE_PERCENT}%, got {value}"
        )
    return slippage


class MarketTools:
    """
    The three public operations over the wired services

    `swaps` is None when no wallet is configured; swap simulation then
    fails with ConfigurationError while the read-only operations still work.
    """

    def __init__(
        self,
        registry: TokenRegistry,
        balances: BalanceService,
        prices: PriceService,
        swaps: Optional[SwapRouter] = None,
    ):
        self.registry = registry
        self.balances = balances
        self.prices = prices
        self.swaps = swaps

    async def _resolve(self, symbol: str, role: str = "token") -> TokenEntry:
        if not symbol or not symbol.strip():
            raise ValidationError(f"{role} symbol cannot be empty")
        entry = await self.registry.resolve_symbol(symbol)
        if entry is None:
            raise TokenNotFoundError(
                f"Unknown {role} symbol: '{symbol}'. Token not found in the token list."
            )
        return entry

    async def get_balance(self, address: str, token_address: Optional[str] = None) -> dict[str, Any]:
        logger.info(f"get_balance called for {address} (token: {token_address or 'native'})")
        owner = parse_address(address)
        token = parse_address(token_address) if token_address else None
        result = await self.balances.get_balance(owner, token)
        return result.to_dict()

    async def get_token_price(self, symbol: str, quote_currency: Optional[str] = "USD") -> dict[str, Any]:
        logger.info(f"get_token_price called for {symbol} in {quote_currency or 'USD'}")
        entry = await self._resolve(symbol)
        quote = QuoteCurrency.parse(quote_currency)
        result = await self.prices.get_price(entry.address, quote)
        return result.to_dict()

    async def swap_tokens(
        self,
        from_symbol: str,
        to_symbol: str,
        amount: str,
        slippage_tolerance: SlippageInput = None,
    ) -> dict[str, Any]:
        logger.info(f"swap_tokens called: {amount} {from_symbol} -> {to_symbol}")
        if self.swaps is None:
            raise ConfigurationError("ETHEREUM_PRIVATE_KEY is required for swap simulation")

        slippage = parse_slippage(slippage_tolerance)
        from_entry = await self._resolve(from_symbol, "from_token")
        to_entry = await self._resolve(to_symbol, "to_token")
        if from_entry.address.lower() == to_entry.address.lower():
            raise ValidationError("from_token and to_token must be different")

        amount_in = parse_units(amount, from_entry.decimals)
        if amount_in == 0:
            raise ValidationError("Amount must be greater than zero")

        params = SwapParams(
            from_token=from_entry.address,
            to_token=to_entry.address,
            amount_in=amount_in,
            slippage_tolerance=slippage,
        )
        result = await self.swaps.simulate_swap(params)
        return result.to_dict()
