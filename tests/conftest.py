import asyncio
from typing import Any, Callable, Optional, Union

import pytest

from dexquote.config.chains import (
    CHAINS, ChainId, FEE_TIERS, UNI_ADDRESS, USDC_ADDRESS, WBTC_ADDRESS, WETH_ADDRESS,
)
from dexquote.core.errors import ChainRpcError
from dexquote.core.structures import TokenMetadata
from dexquote.core.token_registry import TokenRegistry
from dexquote.core.wallet import WalletManager

WALLET_ADDRESS = "0x1111111111111111111111111111111111111111"
LINK_ADDRESS = "0x514910771AF9Ca656af840dff83E8264EcF986CA"
POOL_ADDRESS = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
PAIR_ADDRESS = "0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"

Output = Union[int, Exception, Callable[[int], int]]


class FakeTokenListClient:
    """Counts fetches; optionally slow or failing"""

    def __init__(self, payload: Any = None, error: Optional[Exception] = None, delay: float = 0):
        self.payload = payload if payload is not None else {"name": "Test List", "tokens": []}
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch_json(self, url: str, timeout: float) -> Any:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


class FakeClock:
    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def _resolve_output(output: Output, amount_in: int) -> int:
    if isinstance(output, Exception):
        raise output
    if callable(output):
        return output(amount_in)
    return output


class FakeV3:
    """Uniswap V3 adapter double keyed by fee tier"""

    router_address = "0xE592427A0AEce92De3Edee1F18E0157C05861564"

    def __init__(self, pools: Optional[dict[int, bool]] = None, outputs: Optional[dict[int, Output]] = None):
        self.fee_tiers = FEE_TIERS
        self.pools = pools or {}
        self.outputs = outputs or {}
        self.quote_calls: list[tuple[int, int]] = []
        self.pool_calls: list[int] = []

    async def get_pool(self, token_a: str, token_b: str, fee: int) -> Optional[str]:
        self.pool_calls.append(fee)
        return POOL_ADDRESS if self.pools.get(fee) else None

    async def quote_exact_input_single(self, token_in: str, token_out: str, amount_in: int, fee: int) -> int:
        self.quote_calls.append((fee, amount_in))
        if fee not in self.outputs:
            raise ChainRpcError(f"quoter reverted for fee {fee}")
        return _resolve_output(self.outputs[fee], amount_in)

    async def quote(self, path, amount_in: int, fee: Optional[int] = None) -> int:
        return await self.quote_exact_input_single(path[0], path[1], amount_in, fee or 3000)

    def encode_swap(self, path, amount_in, amount_out_minimum, recipient, deadline, fee=None) -> str:
        self.last_swap = (list(path), amount_in, amount_out_minimum, recipient, deadline, fee)
        return "0x414bf389"


class FakeV2:
    """Uniswap V2 adapter double with pair existence and a pricing function"""

    router_address = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"

    def __init__(
        self,
        pairs: Optional[list[tuple[str, str]]] = None,
        reserves: Optional[tuple[int, int]] = None,
        amount_out: Optional[Output] = None,
    ):
        self.pairs = {frozenset((a.lower(), b.lower())) for a, b in (pairs or [])}
        self.reserves = reserves
        self.amount_out = amount_out
        self.amounts_calls: list[tuple[int, list[str]]] = []

    async def get_pair(self, token_a: str, token_b: str) -> Optional[str]:
        if frozenset((token_a.lower(), token_b.lower())) in self.pairs:
            return PAIR_ADDRESS
        return None

    async def get_reserves(self, token_in: str, token_out: str) -> Optional[tuple[int, int]]:
        if await self.get_pair(token_in, token_out) is None:
            return None
        return self.reserves

    async def get_amounts_out(self, amount_in: int, path) -> list[int]:
        self.amounts_calls.append((amount_in, list(path)))
        out = _resolve_output(self.amount_out, amount_in)
        return [amount_in] * (len(path) - 1) + [out]

    async def quote(self, path, amount_in: int, fee: Optional[int] = None) -> int:
        amounts = await self.get_amounts_out(amount_in, path)
        return amounts[-1]

    def encode_swap(self, path, amount_in, amount_out_minimum, recipient, deadline, fee=None) -> str:
        self.last_swap = (list(path), amount_in, amount_out_minimum, recipient, deadline, fee)
        return "0x38ed1739"


class FakeErc20:
    def __init__(self, balances: Optional[dict[str, int]] = None, metadata: Optional[TokenMetadata] = None):
        self.balances = balances or {}
        self._metadata = metadata
        self.metadata_calls = 0

    async def balance_of(self, token_address: str, owner: str) -> int:
        return self.balances.get(token_address.lower(), 0)

    async def metadata(self, token_address: str) -> TokenMetadata:
        self.metadata_calls += 1
        if self._metadata is not None:
            return self._metadata
        return TokenMetadata(address=token_address, symbol="UNKNOWN", name="Unknown Token", decimals=18)


class FakeRPC:
    """Node double for eth_call, gas and balances"""

    def __init__(
        self,
        call_error: Optional[Exception] = None,
        gas_error: Optional[Exception] = None,
        gas_price_error: Optional[Exception] = None,
        gas: int = 150_000,
        gas_price: int = 20_000_000_000,
        native_balance: int = 0,
    ):
        self.call_error = call_error
        self.gas_error = gas_error
        self.gas_price_error = gas_price_error
        self.gas = gas
        self.gas_price = gas_price
        self.native_balance = native_balance
        self.calls: list[dict] = []

    async def call(self, tx: dict) -> bytes:
        self.calls.append(tx)
        if self.call_error is not None:
            raise self.call_error
        return b""

    async def estimate_gas(self, tx: dict) -> int:
        if self.gas_error is not None:
            raise self.gas_error
        return self.gas

    async def get_gas_price(self) -> int:
        if self.gas_price_error is not None:
            raise self.gas_price_error
        return self.gas_price

    async def get_balance(self, address: str) -> int:
        return self.native_balance


@pytest.fixture
def chain():
    return CHAINS[ChainId.ETHEREUM]


@pytest.fixture
def token_list_client():
    return FakeTokenListClient()


@pytest.fixture
def registry(token_list_client):
    return TokenRegistry(ChainId.ETHEREUM.value, http_client=token_list_client)


@pytest.fixture
def wallet():
    return WalletManager(WALLET_ADDRESS)

