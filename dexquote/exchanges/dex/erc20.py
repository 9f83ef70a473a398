"""
ERC-20 token reads
"""
from dexquote.core.errors import DexQuoteError
from dexquote.core.structures import TokenMetadata
from dexquote.exchanges.dex.base_dex import ERC20_ABI, checksum
from dexquote.utils.logger import get_logger
from dexquote.utils.rpc_manager import RPCManager

logger = get_logger(__name__)

DEFAULT_SYMBOL = "UNKNOWN"
DEFAULT_NAME = "Unknown Token"
DEFAULT_DECIMALS = 18


class Erc20Reader:
    """Balance and metadata reads for ERC-20 contracts"""

    def __init__(self, rpc: RPCManager):
        self.rpc = rpc

    async def balance_of(self, token_address: str, owner: str) -> int:
        return int(await self.rpc.read(token_address, ERC20_ABI, "balanceOf", checksum(owner)))

    async def _read_or_default(self, token_address: str, function: str, default):
        try:
            return await self.rpc.read(token_address, ERC20_ABI, function)
        except DexQuoteError as e:
            logger.debug(f"{function}() failed for {token_address}: {e}")
            return default

    async def metadata(self, token_address: str) -> TokenMetadata:
        """
        Symbol, name and decimals

        Non-standard tokens (bytes32 symbol, no name) are common, so each
        field falls back to a default on its own.
        """
        symbol = await self._read_or_default(token_address, "symbol", DEFAULT_SYMBOL)
        name = await self._read_or_default(token_address, "name", DEFAULT_NAME)
        decimals = await self._read_or_default(token_address, "decimals", DEFAULT_DECIMALS)
        return TokenMetadata(
            address=checksum(token_address),
            symbol=str(symbol),
            name=str(name),
            decimals=int(decimals),
        )
