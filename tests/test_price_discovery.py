from decimal import Decimal

import pytest

from conftest import FakeClock, FakeErc20, FakeRPC, FakeV2, FakeV3, LINK_ADDRESS
from dexquote.config.chains import USDC_ADDRESS, WBTC_ADDRESS, WETH_ADDRESS
from dexquote.core.balance import BalanceService
from dexquote.core.errors import (
    ChainRpcError, InsufficientLiquidityError, PoolNotFoundError, PriceOracleError,
)
from dexquote.core.price_discovery import PriceService, format_price, validate_round
from dexquote.core.structures import PriceSource, QuoteCurrency, TokenMetadata
from dexquote.exchanges.dex.chainlink import OracleRound

NOW = 1_700_000_000


class FakeOracle:
    def __init__(self, round_data=None, decimals=8, error=None):
        self.round_data = round_data
        self._decimals = decimals
        self.error = error
        self.calls = 0

    async def latest_round(self, feed_address):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.round_data

    async def decimals(self, feed_address):
        return self._decimals


def oracle_round(answer=2_000_50000000, round_id=10, answered_in_round=10, age=30):
    return OracleRound(
        round_id=round_id,
        answer=answer,
        started_at=NOW - age,
        updated_at=NOW - age,
        answered_in_round=answered_in_round,
    )


def make_service(registry, chain, oracle=None, v2=None, v3=None, erc20=None):
    rpc = FakeRPC()
    return PriceService(
        rpc,
        registry,
        chain,
        oracle=oracle or FakeOracle(error=ChainRpcError("no oracle")),
        v2=v2 or FakeV2(),
        v3=v3 or FakeV3(),
        balances=BalanceService(rpc, registry, chain, erc20=erc20 or FakeErc20()),
        clock=FakeClock(NOW),
    )


@pytest.mark.asyncio
async def test_wrapped_native_in_eth_is_one(registry, chain):
    oracle, v2, v3 = FakeOracle(), FakeV2(), FakeV3()
    service = make_service(registry, chain, oracle=oracle, v2=v2, v3=v3)

    result = await service.get_price(WETH_ADDRESS, QuoteCurrency.ETH)

    assert result.price == "1"
    assert result.source == PriceSource.AMM_V3
    assert result.token.symbol == "WETH"
    assert oracle.calls == 0
    assert v3.quote_calls == []
    assert v2.amounts_calls == []


@pytest.mark.asyncio
async def test_stablecoin_in_usd_is_one(registry, chain):
    oracle = FakeOracle()
    service = make_service(registry, chain, oracle=oracle)

    result = await service.get_price(USDC_ADDRESS, QuoteCurrency.USD)

    assert result.price == "1"
    assert result.source == PriceSource.ORACLE
    assert result.timestamp == NOW
    assert oracle.calls == 0


@pytest.mark.asyncio
async def test_fresh_oracle_answer_is_used(registry, chain):
    service = make_service(registry, chain, oracle=FakeOracle(oracle_round()))

    result = await service.get_price(WETH_ADDRESS, QuoteCurrency.USD)

    assert result.source == PriceSource.ORACLE
    assert result.price == "2000.5"
    assert result.quote_currency == QuoteCurrency.USD


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "round_data",
    [
        oracle_round(round_id=11, answered_in_round=10),
        oracle_round(age=3601),
        oracle_round(answer=0),
        oracle_round(answer=-5),
    ],
)
async def test_rejected_oracle_round_falls_through_to_amm(registry, chain, round_data):
    v3 = FakeV3(outputs={3000: 2_500 * 10**6})
    service = make_service(registry, chain, oracle=FakeOracle(round_data), v3=v3)

    result = await service.get_price(WETH_ADDRESS, QuoteCurrency.USD)

    assert result.source != PriceSource.ORACLE
    assert result.source == PriceSource.AMM_V3
    assert result.price == "2500"


@pytest.mark.asyncio
async def test_v3_uses_first_successful_tier(registry, chain):
    # 100 reverts, 500 quotes zero, 3000 answers; 10000 would be better but is never asked
    v3 = FakeV3(outputs={500: 0, 3000: 30_000 * 10**6, 10000: 31_000 * 10**6})
    service = make_service(registry, chain, v3=v3)

    result = await service.get_price(WBTC_ADDRESS, QuoteCurrency.USD)

    assert result.price == "30000"
    assert [fee for fee, _ in v3.quote_calls] == [100, 500, 3000]
    # One whole WBTC (8 decimals)
    assert v3.quote_calls[0][1] == 10**8


@pytest.mark.asyncio
async def test_v2_reserve_ratio_when_v3_fails(registry, chain):
    v2 = FakeV2(pairs=[(LINK_ADDRESS, USDC_ADDRESS)], reserves=(1_000 * 10**18, 15_000 * 10**6))
    erc20 = FakeErc20(metadata=TokenMetadata(LINK_ADDRESS, "LINK", "ChainLink Token", 18))
    service = make_service(registry, chain, v2=v2, erc20=erc20)

    result = await service.get_price(LINK_ADDRESS, QuoteCurrency.USD)

    assert result.source == PriceSource.AMM_V2
    assert result.price == "15"
    assert result.token.symbol == "LINK"


@pytest.mark.asyncio
async def test_v2_price_in_eth(registry, chain):
    v2 = FakeV2(pairs=[(LINK_ADDRESS, WETH_ADDRESS)], reserves=(400 * 10**18, 3 * 10**18))
    erc20 = FakeErc20(metadata=TokenMetadata(LINK_ADDRESS, "LINK", "ChainLink Token", 18))
    service = make_service(registry, chain, v2=v2, erc20=erc20)

    result = await service.get_price(LINK_ADDRESS, QuoteCurrency.ETH)

    assert result.price == "0.0075"
    assert result.quote_currency == QuoteCurrency.ETH


@pytest.mark.asyncio
async def test_zero_reserves_is_insufficient_liquidity(registry, chain):
    v2 = FakeV2(pairs=[(LINK_ADDRESS, USDC_ADDRESS)], reserves=(0, 0))
    service = make_service(registry, chain, v2=v2)

    with pytest.raises(InsufficientLiquidityError):
        await service.get_price(LINK_ADDRESS, QuoteCurrency.USD)


@pytest.mark.asyncio
async def test_no_source_is_pool_not_found(registry, chain):
    service = make_service(registry, chain)

    with pytest.raises(PoolNotFoundError):
        await service.get_price(LINK_ADDRESS, QuoteCurrency.USD)


def test_validate_round_accepts_future_timestamp():
    # Node clock skew: updated_at ahead of local time is not stale
    validate_round(oracle_round(age=-120), NOW, 3600)


def test_validate_round_rejects_stale_round():
    with pytest.raises(PriceOracleError):
        validate_round(oracle_round(round_id=5, answered_in_round=4), NOW, 3600)


@pytest.mark.parametrize(
    "value,expected",
    [
        (Decimal("2500.000000"), "2500"),
        (Decimal("0.0075"), "0.0075"),
        (Decimal(1) / Decimal(3), "0.333333333333333333"),
        (Decimal(0), "0"),
        (Decimal("1E+3"), "1000"),
    ],
)
def test_format_price(value, expected):
    assert format_price(value) == expected
