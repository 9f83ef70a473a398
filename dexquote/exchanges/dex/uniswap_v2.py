"""
Uniswap V2 style DEX adapter
Pair lookup and reserves through the factory, quotes through router.getAmountsOut
"""
from typing import Optional, Sequence

from dexquote.config.chains import ChainConfig
from dexquote.core.errors import ChainRpcError
from dexquote.exchanges.dex.base_dex import (
    BaseDEX,
    UNISWAP_V2_FACTORY_ABI, UNISWAP_V2_PAIR_ABI, UNISWAP_V2_ROUTER_ABI,
    UNISWAP_V2_SWAP_SIGNATURE,
    address_or_none, checksum, encode_call,
)
from dexquote.utils.logger import get_logger
from dexquote.utils.rpc_manager import RPCManager

logger = get_logger(__name__)


class UniswapV2DEX(BaseDEX):
    """
    Uniswap V2 style DEX adapter
    """

    def __init__(
        self,
        rpc: RPCManager,
        router_address: str,
        factory_address: str,
        name: str = "Uniswap V2",
    ):
        super().__init__(rpc, name)
        self._router_address = checksum(router_address)
        self.factory_address = checksum(factory_address)

        # Pairs never move once created, token0 never changes
        self._pair_cache: dict[frozenset[str], str] = {}
        self._token0_cache: dict[str, str] = {}

    @classmethod
    def from_chain(cls, rpc: RPCManager, chain: ChainConfig) -> "UniswapV2DEX":
        return cls(rpc, chain.uniswap_v2_router, chain.uniswap_v2_factory)

    @property
    def router_address(self) -> str:
        return self._router_address

    async def get_pair(self, token_a: str, token_b: str) -> Optional[str]:
        """Pair address, or None when the factory has no pair"""
        token_a, token_b = checksum(token_a), checksum(token_b)
        pair_key = frozenset((token_a, token_b))

        if pair_key in self._pair_cache:
            return self._pair_cache[pair_key]

        raw = await self.rpc.read(
            self.factory_address, UNISWAP_V2_FACTORY_ABI, "getPair", token_a, token_b
        )
        pair_address = address_or_none(raw)
        if pair_address is not None:
            self._pair_cache[pair_key] = pair_address
        return pair_address

    async def get_reserves(
        self,
        token_in: str,
        token_out: str
    ) -> Optional[tuple[int, int]]:
        """
        Pool reserves ordered as (reserve_in, reserve_out)

        Returns None if the pair doesn't exist.
        """
        pair_address = await self.get_pair(token_in, token_out)
        if pair_address is None:
            return None

        # Reserves are always fresh
        reserves = await self.rpc.read(pair_address, UNISWAP_V2_PAIR_ABI, "getReserves")

        if pair_address in self._token0_cache:
            token0 = self._token0_cache[pair_address]
        else:
            token0 = checksum(await self.rpc.read(pair_address, UNISWAP_V2_PAIR_ABI, "token0"))
            self._token0_cache[pair_address] = token0

        if token0 == checksum(token_in):
            return int(reserves[0]), int(reserves[1])
        return int(reserves[1]), int(reserves[0])

    async def get_amounts_out(self, amount_in: int, path: Sequence[str]) -> list[int]:
        """router.getAmountsOut along a path of two or more tokens"""
        amounts = await self.rpc.read(
            self._router_address,
            UNISWAP_V2_ROUTER_ABI,
            "getAmountsOut",
            amount_in,
            [checksum(token) for token in path],
        )
        if len(amounts) != len(path):
            raise ChainRpcError(
                f"getAmountsOut returned {len(amounts)} amounts for a path of {len(path)}"
            )
        return [int(amount) for amount in amounts]

    async def quote(
        self,
        path: Sequence[str],
        amount_in: int,
        fee: Optional[int] = None,
    ) -> int:
        amounts = await self.get_amounts_out(amount_in, path)
        return amounts[-1]

    def encode_swap(
        self,
        path: Sequence[str],
        amount_in: int,
        amount_out_minimum: int,
        recipient: str,
        deadline: int,
        fee: Optional[int] = None,
    ) -> str:
        """swapExactTokensForTokens calldata"""
        return encode_call(
            UNISWAP_V2_SWAP_SIGNATURE,
            ["uint256", "uint256", "address[]", "address", "uint256"],
            [
                amount_in,
                amount_out_minimum,
                [checksum(token) for token in path],
                checksum(recipient),
                deadline,
            ],
        )
