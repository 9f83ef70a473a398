"""
Uniswap V3 style DEX adapter
Uses the factory for pool discovery and QuoterV2 for quotes
"""
from typing import Optional, Sequence

from dexquote.config.chains import FEE_TIERS, ChainConfig
from dexquote.exchanges.dex.base_dex import (
    BaseDEX,
    UNISWAP_V3_EXACT_INPUT_SINGLE_SIGNATURE, UNISWAP_V3_EXACT_INPUT_SINGLE_TYPES,
    UNISWAP_V3_FACTORY_ABI, UNISWAP_V3_QUOTER_ABI,
    address_or_none, checksum, encode_call,
)
from dexquote.utils.logger import get_logger
from dexquote.utils.rpc_manager import RPCManager

logger = get_logger(__name__)


class UniswapV3DEX(BaseDEX):
    """
    Uniswap V3 style DEX adapter (single-hop only)
    """

    def __init__(
        self,
        rpc: RPCManager,
        router_address: str,
        factory_address: str,
        quoter_address: str,
        fee_tiers: tuple[int, ...] = FEE_TIERS,
        name: str = "Uniswap V3",
    ):
        super().__init__(rpc, name)
        self._router_address = checksum(router_address)
        self.factory_address = checksum(factory_address)
        self.quoter_address = checksum(quoter_address)
        self.fee_tiers = tuple(sorted(fee_tiers))

    @classmethod
    def from_chain(cls, rpc: RPCManager, chain: ChainConfig) -> "UniswapV3DEX":
        return cls(
            rpc,
            chain.uniswap_v3_router,
            chain.uniswap_v3_factory,
            chain.uniswap_v3_quoter,
            chain.fee_tiers,
        )

    @property
    def router_address(self) -> str:
        return self._router_address

    async def get_pool(self, token_a: str, token_b: str, fee: int) -> Optional[str]:
        """Pool address for a fee tier, or None when it doesn't exist"""
        raw = await self.rpc.read(
            self.factory_address,
            UNISWAP_V3_FACTORY_ABI,
            "getPool",
            checksum(token_a),
            checksum(token_b),
            fee,
        )
        return address_or_none(raw)

    async def quote_exact_input_single(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        fee: int
    ) -> int:
        """QuoterV2 quote; the quoter reverts when the pool can't fill"""
        result = await self.rpc.read(
            self.quoter_address,
            UNISWAP_V3_QUOTER_ABI,
            "quoteExactInputSingle",
            (checksum(token_in), checksum(token_out), amount_in, fee, 0),
        )
        # (amountOut, sqrtPriceX96After, initializedTicksCrossed, gasEstimate)
        return int(result[0])

    async def quote(
        self,
        path: Sequence[str],
        amount_in: int,
        fee: Optional[int] = None,
    ) -> int:
        if len(path) != 2:
            raise ValueError("V3 adapter quotes single-hop paths only")
        return await self.quote_exact_input_single(
            path[0], path[1], amount_in, fee if fee is not None else 3000
        )

    def encode_swap(
        self,
        path: Sequence[str],
        amount_in: int,
        amount_out_minimum: int,
        recipient: str,
        deadline: int,
        fee: Optional[int] = None,
    ) -> str:
        """exactInputSingle calldata"""
        if len(path) != 2 or fee is None:
            raise ValueError("exactInputSingle needs a two-token path and a fee tier")
        params = (
            checksum(path[0]),
            checksum(path[1]),
            fee,
            checksum(recipient),
            deadline,
            amount_in,
            amount_out_minimum,
            0,  # sqrtPriceLimitX96: no limit
        )
        return encode_call(
            UNISWAP_V3_EXACT_INPUT_SINGLE_SIGNATURE,
            UNISWAP_V3_EXACT_INPUT_SINGLE_TYPES,
            [params],
        )
