"""
Fallback token set per chain
Seeded into the token registry so lookups work without network access
"""
from dexquote.config.chains import (
    ChainId, UNI_ADDRESS, USDC_ADDRESS, WBTC_ADDRESS, WETH_ADDRESS,
)
from dexquote.core.structures import TokenEntry


# ==================== ETHEREUM MAINNET ====================

WETH = TokenEntry(
    address=WETH_ADDRESS,
    symbol="WETH",
    name="Wrapped Ether",
    decimals=18,
    chain_id=ChainId.ETHEREUM.value,
)

USDC = TokenEntry(
    address=USDC_ADDRESS,
    symbol="USDC",
    name="USD Coin",
    decimals=6,
    chain_id=ChainId.ETHEREUM.value,
)

WBTC = TokenEntry(
    address=WBTC_ADDRESS,
    symbol="WBTC",
    name="Wrapped BTC",
    decimals=8,
    chain_id=ChainId.ETHEREUM.value,
)

UNI = TokenEntry(
    address=UNI_ADDRESS,
    symbol="UNI",
    name="Uniswap",
    decimals=18,
    chain_id=ChainId.ETHEREUM.value,
)


FALLBACK_TOKENS: dict[int, tuple[TokenEntry, ...]] = {
    ChainId.ETHEREUM.value: (WETH, USDC, WBTC, UNI),
}


def get_fallback_tokens(chain_id: int) -> tuple[TokenEntry, ...]:
    """Get the seed tokens for a chain (empty for chains without a seed)"""
    return FALLBACK_TOKENS.get(chain_id, ())
