"""
Base class and contract ABIs for AMM adapters
"""
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from eth_abi import encode
from web3 import AsyncWeb3, Web3

from dexquote.utils.rpc_manager import RPCManager

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def checksum(address: str) -> str:
    return AsyncWeb3.to_checksum_address(address)


def encode_call(signature: str, arg_types: Sequence[str], args: Sequence[Any]) -> str:
    """
    ABI-encode a function call as 0x-prefixed calldata

    `signature` is the canonical form, e.g. "transfer(address,uint256)".
    """
    selector = Web3.keccak(text=signature)[:4]
    return "0x" + (selector + encode(list(arg_types), list(args))).hex()


def address_or_none(address: str) -> Optional[str]:
    """Factories return the zero address for pools that don't exist"""
    if not address or int(address, 16) == 0:
        return None
    return checksum(address)


class BaseDEX(ABC):
    """Abstract base class for AMM protocol adapters"""

    def __init__(self, rpc: RPCManager, name: str):
        self.rpc = rpc
        self.name = name

    @abstractmethod
    async def quote(
        self,
        path: Sequence[str],
        amount_in: int,
        fee: Optional[int] = None,
    ) -> int:
        """
        Raw output amount for swapping `amount_in` along `path`

        Raises ChainRpcError when the protocol cannot quote the path.
        """

    @abstractmethod
    def encode_swap(
        self,
        path: Sequence[str],
        amount_in: int,
        amount_out_minimum: int,
        recipient: str,
        deadline: int,
        fee: Optional[int] = None,
    ) -> str:
        """Calldata for an exact-input swap on the protocol router"""

    @property
    @abstractmethod
    def router_address(self) -> str:
        """Router contract the swap calldata is addressed to"""


# Standard ERC20 ABI (read functions)
ERC20_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "symbol",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "name",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function"
    }
]

# Standard Uniswap V2 ABI for Router, Factory and Pair
UNISWAP_V2_ROUTER_ABI = [
    {
        "inputs": [
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "address[]", "name": "path", "type": "address[]"}
        ],
        "name": "getAmountsOut",
        "outputs": [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function"
    }
]

UNISWAP_V2_SWAP_SIGNATURE = "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)"

UNISWAP_V2_FACTORY_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "tokenA", "type": "address"},
            {"internalType": "address", "name": "tokenB", "type": "address"}
        ],
        "name": "getPair",
        "outputs": [{"internalType": "address", "name": "pair", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    }
]

UNISWAP_V2_PAIR_ABI = [
    {
        "inputs": [],
        "name": "getReserves",
        "outputs": [
            {"internalType": "uint112", "name": "_reserve0", "type": "uint112"},
            {"internalType": "uint112", "name": "_reserve1", "type": "uint112"},
            {"internalType": "uint32", "name": "_blockTimestampLast", "type": "uint32"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "token0",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    }
]

# Uniswap V3 QuoterV2 ABI
UNISWAP_V3_QUOTER_ABI = [
    {
        "inputs": [
            {
                "components": [
                    {"internalType": "address", "name": "tokenIn", "type": "address"},
                    {"internalType": "address", "name": "tokenOut", "type": "address"},
                    {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
                    {"internalType": "uint24", "name": "fee", "type": "uint24"},
                    {"internalType": "uint160", "name": "sqrtPriceLimitX96", "type": "uint160"}
                ],
                "internalType": "struct IQuoterV2.QuoteExactInputSingleParams",
                "name": "params",
                "type": "tuple"
            }
        ],
        "name": "quoteExactInputSingle",
        "outputs": [
            {"internalType": "uint256", "name": "amountOut", "type": "uint256"},
            {"internalType": "uint160", "name": "sqrtPriceX96After", "type": "uint160"},
            {"internalType": "uint32", "name": "initializedTicksCrossed", "type": "uint32"},
            {"internalType": "uint256", "name": "gasEstimate", "type": "uint256"}
        ],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

UNISWAP_V3_FACTORY_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "tokenA", "type": "address"},
            {"internalType": "address", "name": "tokenB", "type": "address"},
            {"internalType": "uint24", "name": "fee", "type": "uint24"}
        ],
        "name": "getPool",
        "outputs": [{"internalType": "address", "name": "pool", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    }
]

# SwapRouter.exactInputSingle(ExactInputSingleParams)
UNISWAP_V3_EXACT_INPUT_SINGLE_SIGNATURE = (
    "exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))"
)
UNISWAP_V3_EXACT_INPUT_SINGLE_TYPES = [
    "(address,address,uint24,address,uint256,uint256,uint256,uint160)"
]

# Chainlink AggregatorV3Interface
CHAINLINK_AGGREGATOR_ABI = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            {"internalType": "uint80", "name": "roundId", "type": "uint80"},
            {"internalType": "int256", "name": "answer", "type": "int256"},
            {"internalType": "uint256", "name": "startedAt", "type": "uint256"},
            {"internalType": "uint256", "name": "updatedAt", "type": "uint256"},
            {"internalType": "uint80", "name": "answeredInRound", "type": "uint80"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]
