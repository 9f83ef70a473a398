"""
Global settings for the market quoter
Every value can be overridden from the environment or a .env file
"""
import os
from decimal import Decimal
from typing import Final

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Logging level
LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO").upper()

# Token list source (tokenlists.org schema)
TOKEN_LIST_URL: Final[str] = os.getenv("TOKEN_LIST_URL", "https://tokens.uniswap.org")

# Token cache time-to-live in seconds (24h)
TOKEN_CACHE_TTL_SECONDS: Final[int] = _env_int("TOKEN_CACHE_TTL_SECONDS", 86_400)

# Timeout for the token list download
TOKEN_LIST_TIMEOUT_SECONDS: Final[int] = _env_int("TOKEN_LIST_TIMEOUT_SECONDS", 30)

# Maximum age of an oracle answer before it is discarded
ORACLE_STALENESS_SECONDS: Final[int] = _env_int("ORACLE_STALENESS_SECONDS", 3600)

# Slippage tolerance in percent (0.5 = 0.5%)
DEFAULT_SLIPPAGE_PERCENT: Final[Decimal] = Decimal("0.5")
MAX_SLIPPAGE_PERCENT: Final[Decimal] = Decimal("50")

# Swap deadline offset from now, in seconds (20 minutes)
SWAP_DEADLINE_SECONDS: Final[int] = _env_int("SWAP_DEADLINE_SECONDS", 1200)

# Used when the node cannot estimate gas or report a gas price
FALLBACK_GAS_LIMIT: Final[int] = 200_000
FALLBACK_GAS_PRICE_WEI: Final[int] = 30_000_000_000  # 30 gwei

# Smallest reference trade (raw units) used to measure spot rate
REFERENCE_AMOUNT_FLOOR: Final[int] = 1_000

# RPC transport
RPC_REQUEST_TIMEOUT: Final[int] = _env_int("RPC_REQUEST_TIMEOUT", 15)
RPC_RATE_LIMIT_PER_SECOND: Final[float] = float(_env_int("RPC_RATE_LIMIT_PER_SECOND", 25))
RPC_RATE_LIMIT_BURST: Final[int] = 5
