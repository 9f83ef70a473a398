"""
Chain configurations with well-known contract addresses
Loaded once at start-up and injected into the services
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping

from dexquote.core.errors import ConfigurationError


class ChainId(Enum):
    """Blockchain chain IDs"""
    ETHEREUM = 1


# Uniswap V3 fee tiers in hundredths of a basis point, ascending
FEE_TIERS: Final[tuple[int, ...]] = (100, 500, 3000, 10000)  # 0.01%, 0.05%, 0.3%, 1%


@dataclass(frozen=True)
class ChainConfig:
    """Addresses and constants for one blockchain"""
    chain_id: ChainId
    name: str
    native_token: str
    native_decimals: int

    # Canonical assets
    wrapped_native: str
    stablecoin: str

    # AMM V2
    uniswap_v2_router: str
    uniswap_v2_factory: str

    # AMM V3
    uniswap_v3_router: str
    uniswap_v3_factory: str
    uniswap_v3_quoter: str
    fee_tiers: tuple[int, ...] = FEE_TIERS

    # Token address -> Chainlink USD feed address
    oracle_feeds: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def feed_for(self, token_address: str) -> str | None:
        """Get the USD feed for a token, if one is known"""
        target = token_address.lower()
        for token, feed in self.oracle_feeds.items():
            if token.lower() == target:
                return feed
        return None

    def is_wrapped_native(self, token_address: str) -> bool:
        return token_address.lower() == self.wrapped_native.lower()

    def is_stablecoin(self, token_address: str) -> bool:
        return token_address.lower() == self.stablecoin.lower()


# Core token addresses (Ethereum Mainnet)
WETH_ADDRESS: Final[str] = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC_ADDRESS: Final[str] = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WBTC_ADDRESS: Final[str] = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"
UNI_ADDRESS: Final[str] = "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984"

# Chainlink USD feeds (Ethereum Mainnet)
ETH_USD_FEED: Final[str] = "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419"
BTC_USD_FEED: Final[str] = "0xF4030086522a5bEEa4988F8cA5B36dbC97BeE88c"
USDC_USD_FEED: Final[str] = "0x8fFfFfd4AfB6115b954Bd326cbe7B4BA576818f6"


CHAINS: dict[ChainId, ChainConfig] = {
    ChainId.ETHEREUM: ChainConfig(
        chain_id=ChainId.ETHEREUM,
        name="Ethereum",
        native_token="ETH",
        native_decimals=18,
        wrapped_native=WETH_ADDRESS,
        stablecoin=USDC_ADDRESS,
        uniswap_v2_router="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
        uniswap_v2_factory="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
        uniswap_v3_router="0xE592427A0AEce92De3Edee1F18E0157C05861564",
        uniswap_v3_factory="0x1F98431c8aD98523631AE4a59f267346ea31F984",
        uniswap_v3_quoter="0x61fFE014bA17989E743c5F6cB21bF9697530B21e",
        oracle_feeds=MappingProxyType({
            WETH_ADDRESS: ETH_USD_FEED,
            WBTC_ADDRESS: BTC_USD_FEED,
            USDC_ADDRESS: USDC_USD_FEED,
        }),
    ),
}


def get_chain_config(chain_id: int) -> ChainConfig:
    """Look up the configuration for a numeric chain id"""
    for config in CHAINS.values():
        if config.chain_id.value == chain_id:
            return config
    raise ConfigurationError(f"Unsupported chain id: {chain_id}")
