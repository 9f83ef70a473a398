"""
Data types shared by the registry, price and swap services
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from dexquote.core.errors import ValidationError


@dataclass(frozen=True)
class TokenEntry:
    """A token known to the registry, unique per (chain_id, address)"""
    address: str
    symbol: str
    name: str
    decimals: int
    chain_id: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "chain_id": self.chain_id,
        }


@dataclass
class TokenInfo:
    """Token descriptor attached to results; no address means the native asset"""
    symbol: str
    decimals: int
    address: Optional[str] = None

    @classmethod
    def native(cls, symbol: str = "ETH", decimals: int = 18) -> "TokenInfo":
        return cls(symbol=symbol, decimals=decimals)

    @classmethod
    def erc20(cls, address: str, symbol: str, decimals: int) -> "TokenInfo":
        return cls(symbol=symbol, decimals=decimals, address=address)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"symbol": self.symbol, "decimals": self.decimals}
        if self.address is not None:
            data = {"address": self.address, **data}
        return data


@dataclass
class TokenMetadata:
    """ERC-20 metadata read from the token contract"""
    address: str
    symbol: str
    name: str
    decimals: int


@dataclass
class BalanceInfo:
    address: str
    token: TokenInfo
    balance: str
    balance_raw: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "token": self.token.to_dict(),
            "balance": self.balance,
            "balance_raw": self.balance_raw,
        }


class QuoteCurrency(Enum):
    USD = "USD"
    ETH = "ETH"

    @classmethod
    def parse(cls, text: str | None) -> "QuoteCurrency":
        """Case-insensitive parse; None gives the default (USD)"""
        if text is None:
            return cls.USD
        try:
            return cls(text.strip().upper())
        except ValueError:
            raise ValidationError(f"Invalid quote currency: {text}") from None


class PriceSource(Enum):
    """Where a price came from; the set is closed"""
    ORACLE = "chainlink"
    AMM_V2 = "uniswap_v2"
    AMM_V3 = "uniswap_v3"


@dataclass
class PriceInfo:
    """A freshly computed price; never cached across requests"""
    token: TokenInfo
    price: str
    quote_currency: QuoteCurrency
    source: PriceSource
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.token.to_dict(),
            "price": self.price,
            "quote_currency": self.quote_currency.value,
            "source": self.source.value,
            "timestamp": self.timestamp,
        }


@dataclass
class SwapParams:
    from_token: str
    to_token: str
    amount_in: int
    slippage_tolerance: Decimal  # percent, 0.5 means 0.5%
    deadline: Optional[int] = None


class Protocol(Enum):
    V2 = "v2"
    V3 = "v3"


@dataclass
class SwapRoute:
    """The path actually chosen for a swap"""
    protocol: Protocol
    path: list[str]
    fee_tier: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"protocol": self.protocol.value, "path": list(self.path)}
        if self.fee_tier is not None:
            data["fee_tier"] = self.fee_tier
        return data


@dataclass
class TransactionData:
    """Unsigned transaction fields"""
    to: str
    data: str
    value: str = "0"

    def to_dict(self) -> dict[str, Any]:
        return {"to": self.to, "data": self.data, "value": self.value}


@dataclass
class SwapSimulationResult:
    simulation_success: bool
    amount_in: str
    amount_out_expected: str
    amount_out_minimum: str
    price_impact: str
    gas_estimate: str
    gas_price: str
    gas_cost_eth: str
    route: SwapRoute
    transaction: TransactionData
    simulation_error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"simulation_success": self.simulation_success}
        if self.simulation_error is not None:
            data["simulation_error"] = self.simulation_error
        data.update({
            "amount_in": self.amount_in,
            "amount_out_expected": self.amount_out_expected,
            "amount_out_minimum": self.amount_out_minimum,
            "price_impact": self.price_impact,
            "gas_estimate": self.gas_estimate,
            "gas_price": self.gas_price,
            "gas_cost_eth": self.gas_cost_eth,
            "route": self.route.to_dict(),
            "transaction": self.transaction.to_dict(),
        })
        return data
