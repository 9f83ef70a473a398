from decimal import Decimal

import pytest

from conftest import LINK_ADDRESS, FakeErc20, FakeRPC, WALLET_ADDRESS
from dexquote.config.chains import USDC_ADDRESS, WETH_ADDRESS
from dexquote.core.balance import BalanceService
from dexquote.core.errors import (
    ConfigurationError, InvalidAddressError, ParseError, TokenNotFoundError, ValidationError,
)
from dexquote.core.market_tools import MarketTools, parse_address, parse_slippage
from dexquote.core.structures import (
    PriceInfo, PriceSource, Protocol, QuoteCurrency, SwapRoute, SwapSimulationResult, TokenInfo,
    TokenMetadata, TransactionData,
)


class RecordingPrices:
    def __init__(self):
        self.calls = []

    async def get_price(self, token_address, quote_currency):
        self.calls.append((token_address, quote_currency))
        return PriceInfo(
            token=TokenInfo.erc20(token_address, "WETH", 18),
            price="2000",
            quote_currency=quote_currency,
            source=PriceSource.ORACLE,
            timestamp=1,
        )


class RecordingSwaps:
    def __init__(self):
        self.calls = []

    async def simulate_swap(self, params):
        self.calls.append(params)
        return SwapSimulationResult(
            simulation_success=True,
            amount_in="1",
            amount_out_expected="2000",
            amount_out_minimum="1990",
            price_impact="0.01",
            gas_estimate="150000",
            gas_price="20000000000",
            gas_cost_eth="0.003",
            route=SwapRoute(Protocol.V3, [params.from_token, params.to_token], 500),
            transaction=TransactionData(to="0xrouter", data="0x"),
        )


@pytest.fixture
def swaps():
    return RecordingSwaps()


@pytest.fixture
def prices():
    return RecordingPrices()


@pytest.fixture
def tools(registry, chain, prices, swaps):
    rpc = FakeRPC(native_balance=1_500_000_000_000_000_000)
    erc20 = FakeErc20(balances={USDC_ADDRESS.lower(): 2_500_000})
    balances = BalanceService(rpc, registry, chain, erc20=erc20)
    return MarketTools(registry, balances, prices, swaps)


@pytest.mark.asyncio
async def test_native_balance(tools):
    result = await tools.get_balance(WALLET_ADDRESS.lower())

    assert result["address"] == WALLET_ADDRESS
    assert result["token"] == {"symbol": "ETH", "decimals": 18}
    assert result["balance"] == "1.5"
    assert result["balance_raw"] == "1500000000000000000"


@pytest.mark.asyncio
async def test_erc20_balance_uses_registry_decimals(tools):
    result = await tools.get_balance(WALLET_ADDRESS, USDC_ADDRESS)

    assert result["token"] == {"address": USDC_ADDRESS, "symbol": "USDC", "decimals": 6}
    assert result["balance"] == "2.5"


@pytest.mark.asyncio
@pytest.mark.parametrize("address", ["", "0x123", "not an address", "0xZZ00000000000000000000000000000000000000"])
async def test_balance_rejects_bad_address(tools, address):
    with pytest.raises(InvalidAddressError):
        await tools.get_balance(address)


@pytest.mark.asyncio
async def test_price_resolves_symbol_and_quote(tools, prices):
    result = await tools.get_token_price("weth", "eth")

    assert prices.calls == [(WETH_ADDRESS, QuoteCurrency.ETH)]
    assert result["price"] == "2000"
    assert result["quote_currency"] == "ETH"
    assert result["source"] == "chainlink"


@pytest.mark.asyncio
async def test_price_defaults_to_usd(tools, prices):
    await tools.get_token_price("WETH", None)
    assert prices.calls[0][1] == QuoteCurrency.USD


@pytest.mark.asyncio
async def test_unknown_symbol(tools, prices):
    with pytest.raises(TokenNotFoundError) as exc:
        await tools.get_token_price("NOPE")
    assert exc.value.category == "invalid_params"
    assert prices.calls == []


@pytest.mark.asyncio
async def test_bad_quote_currency(tools):
    with pytest.raises(ValidationError):
        await tools.get_token_price("WETH", "EUR")


@pytest.mark.asyncio
async def test_swap_builds_params(tools, swaps):
    result = await tools.swap_tokens("WETH", "usdc", "1.25", 1)

    params = swaps.calls[0]
    assert params.from_token == WETH_ADDRESS
    assert params.to_token == USDC_ADDRESS
    assert params.amount_in == 1_250_000_000_000_000_000
    assert params.slippage_tolerance == Decimal("1")
    assert params.deadline is None
    assert result["simulation_success"] is True
    assert result["route"]["fee_tier"] == 500


@pytest.mark.asyncio
async def test_swap_default_slippage(tools, swaps):
    await tools.swap_tokens("WETH", "USDC", "1")
    assert swaps.calls[0].slippage_tolerance == Decimal("0.5")


@pytest.mark.asyncio
async def test_swap_same_token_rejected_before_router(tools, swaps):
    with pytest.raises(ValidationError):
        await tools.swap_tokens("WETH", "weth", "1")
    assert swaps.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "0.0", "0.0000000000000000001"])
async def test_swap_zero_amount_rejected_before_router(tools, swaps, amount):
    with pytest.raises(ValidationError):
        await tools.swap_tokens("WETH", "USDC", amount)
    assert swaps.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["", "-1", "1.2.3", "one"])
async def test_swap_malformed_amount_rejected(tools, swaps, amount):
    with pytest.raises(ParseError):
        await tools.swap_tokens("WETH", "USDC", amount)
    assert swaps.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("slippage", ["50.01", 51, -0.1, "abc", "NaN", "Infinity"])
async def test_swap_slippage_out_of_range(tools, swaps, slippage):
    with pytest.raises(ValidationError):
        await tools.swap_tokens("WETH", "USDC", "1", slippage)
    assert swaps.calls == []


@pytest.mark.asyncio
async def test_swap_unknown_symbol(tools, swaps):
    with pytest.raises(TokenNotFoundError):
        await tools.swap_tokens("WETH", "NOPE", "1")
    assert swaps.calls == []


@pytest.mark.asyncio
async def test_swap_without_wallet(registry, chain, prices):
    rpc = FakeRPC()
    tools = MarketTools(registry, BalanceService(rpc, registry, chain, erc20=FakeErc20()), prices)

    with pytest.raises(ConfigurationError):
        await tools.swap_tokens("WETH", "USDC", "1")


def test_parse_address_checksums():
    assert parse_address(WETH_ADDRESS.lower()) == WETH_ADDRESS


@pytest.mark.parametrize("value,expected", [(None, "0.5"), ("0", "0"), (50, "50"), (0.3, "0.3"), (" 2 ", "2")])
def test_parse_slippage(value, expected):
    assert parse_slippage(value) == Decimal(expected)


@pytest.mark.asyncio
async def test_unlisted_token_balance_reads_chain_without_refetching_list(registry, chain, token_list_client):
    rpc = FakeRPC()
    erc20 = FakeErc20(
        balances={LINK_ADDRESS.lower(): 3 * 10**18},
        metadata=TokenMetadata(LINK_ADDRESS, "LINK", "ChainLink Token", 18),
    )
    balances = BalanceService(rpc, registry, chain, erc20=erc20)

    for _ in range(3):
        info = await balances.get_balance(WALLET_ADDRESS, LINK_ADDRESS)
        assert info.balance == "3"
        assert info.token.symbol == "LINK"

    assert token_list_client.calls <= 1
