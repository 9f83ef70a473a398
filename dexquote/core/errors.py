"""
Error types for the quoter

Every failure raised by the core derives from DexQuoteError. The `category`
attribute tells the caller-facing layer whether the caller sent bad input
("invalid_params"), the process is misconfigured ("invalid_request") or
something went wrong underneath ("internal").
"""


class DexQuoteError(Exception):
    """Base class for all quoter errors"""
    category = "internal"
    prefix = "Error"

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(f"{self.prefix}: {message}" if message else self.prefix)


class ConfigurationError(DexQuoteError):
    category = "invalid_request"
    prefix = "Configuration error"


class TransportError(DexQuoteError):
    prefix = "Transport error"


class ChainRpcError(DexQuoteError):
    prefix = "Ethereum RPC error"


class ExecutionRevertedError(ChainRpcError):
    """The node executed the call and it reverted; retrying elsewhere won't help"""
    prefix = "Execution reverted"

    def __init__(self, message: str = "", data: str | bytes | None = None):
        self.data = data
        super().__init__(message)


class InvalidAddressError(DexQuoteError):
    category = "invalid_params"
    prefix = "Invalid address"


class TokenNotFoundError(DexQuoteError):
    category = "invalid_params"
    prefix = "Token not found"


class InsufficientLiquidityError(DexQuoteError):
    prefix = "Insufficient liquidity for swap"


class PoolNotFoundError(DexQuoteError):
    prefix = "Pool not found for token pair"


# Part of the error taxonomy for callers that enforce a minimum output
# themselves; simulation reports slippage as a classified revert instead.
class SlippageExceededError(DexQuoteError):
    prefix = "Slippage too high"

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected}, got {actual}")


class PriceOracleError(DexQuoteError):
    prefix = "Price oracle error"


class NumericOverflowError(DexQuoteError):
    category = "invalid_params"
    prefix = "Numeric overflow"


class ParseError(DexQuoteError):
    category = "invalid_params"
    prefix = "Parse error"


# Reserved for callers that treat a reverted simulation as fatal; the
# router itself returns simulation_success=False.
class SimulationFailedError(DexQuoteError):
    prefix = "Simulation failed"


class WalletError(DexQuoteError):
    prefix = "Wallet error"


class ValidationError(DexQuoteError):
    category = "invalid_params"
    prefix = "Invalid input"
