"""
Native and ERC-20 balance lookups
"""
from typing import Optional

from dexquote.config.chains import ChainConfig
from dexquote.core.structures import BalanceInfo, TokenInfo, TokenMetadata
from dexquote.core.token_registry import TokenRegistry
from dexquote.core.units import format_units
from dexquote.exchanges.dex.base_dex import checksum
from dexquote.exchanges.dex.erc20 import Erc20Reader
from dexquote.utils.logger import get_logger, short_address
from dexquote.utils.rpc_manager import RPCManager

logger = get_logger(__name__)


class BalanceService:
    """
    Balances and token descriptors

    Token decimals come from the registry when it already holds the token,
    which saves three contract reads; otherwise from the contract itself.
    A registry miss here never forces a token list download.
    """

    def __init__(
        self,
        rpc: RPCManager,
        registry: TokenRegistry,
        chain: ChainConfig,
        erc20: Optional[Erc20Reader] = None,
    ):
        self.rpc = rpc
        self.registry = registry
        self.chain = chain
        self.erc20 = erc20 or Erc20Reader(rpc)

    async def get_token_metadata(self, token_address: str) -> TokenMetadata:
        """On-chain symbol, name and decimals, with defaults for failed reads"""
        return await self.erc20.metadata(token_address)

    async def token_info(self, token_address: str) -> TokenInfo:
        entry = await self.registry.cached_address(token_address)
        if entry is not None:
            return TokenInfo.erc20(entry.address, entry.symbol, entry.decimals)
        metadata = await self.get_token_metadata(token_address)
        return TokenInfo.erc20(metadata.address, metadata.symbol, metadata.decimals)

    async def get_balance(self, address: str, token_address: Optional[str] = None) -> BalanceInfo:
        """Native balance when no token is given, ERC-20 balance otherwise"""
        owner = checksum(address)

        if token_address is None:
            raw = await self.rpc.get_balance(owner)
            token = TokenInfo.native(self.chain.native_token, self.chain.native_decimals)
        else:
            token = await self.token_info(token_address)
            raw = await self.erc20.balance_of(token.address, owner)

        logger.debug(f"Balance of {short_address(owner)}: {raw} raw {token.symbol}")
        return BalanceInfo(
            address=owner,
            token=token,
            balance=format_units(raw, token.decimals),
            balance_raw=str(raw),
        )
