"""
Swap route selection and dry-run simulation

Nothing here signs or broadcasts. A swap is quoted, turned into router
calldata and executed with eth_call from the wallet address; a revert is
reported in the result instead of raised.
"""
import time
from decimal import ROUND_HALF_EVEN, Decimal, localcontext
from typing import Any, Callable, Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from dexquote.config.chains import ChainConfig
from dexquote.config.settings import REFERENCE_AMOUNT_FLOOR, SWAP_DEADLINE_SECONDS
from dexquote.core.balance import BalanceService
from dexquote.core.errors import (
    ChainRpcError, ExecutionRevertedError, InsufficientLiquidityError, NumericOverflowError,
    PoolNotFoundError,
)
from dexquote.core.gas_estimator import GasEstimator
from dexquote.core.structures import (
    Protocol, SwapParams, SwapRoute, SwapSimulationResult, TransactionData,
)
from dexquote.core.token_registry import TokenRegistry
from dexquote.core.units import DECIMAL_CONTEXT, checked_uint, decimal_to_uint, format_units
from dexquote.core.wallet import WalletManager
from dexquote.exchanges.dex.base_dex import BaseDEX
from dexquote.exchanges.dex.uniswap_v2 import UniswapV2DEX
from dexquote.exchanges.dex.uniswap_v3 import UniswapV3DEX
from dexquote.utils.logger import get_logger, short_address
from dexquote.utils.rpc_manager import RPCManager

logger = get_logger(__name__)

# Error(string) selector used by require/revert with a reason
ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")

IMPACT_PRECISION = Decimal("0.0001")


def minimum_output(amount_out: int, slippage_percent: Decimal) -> int:
    """floor(amount_out * (1 - slippage/100))"""
    checked_uint(amount_out, "amount_out")
    with localcontext(DECIMAL_CONTEXT):
        value = Decimal(amount_out) * (1 - slippage_percent / 100)
    return decimal_to_uint(value, "amount_out_minimum")


def reference_amount(amount_in: int, floor: int = REFERENCE_AMOUNT_FLOOR) -> int:
    """
    Small trade used to sample the spot rate

    0.1% of the input, at least `floor` (but never more than the input
    itself) and at most 10% of the input.
    """
    reference = amount_in // 1000
    ceiling = amount_in // 10
    if reference < floor:
        return min(floor, amount_in)
    if reference > ceiling:
        return ceiling
    return reference


def price_impact(amount_in: int, amount_out: int, reference_in: int, reference_out: int) -> Decimal:
    """
    Percent difference between the execution rate and the spot rate

    Never negative, rounded to 4 decimal places.
    """
    amount_in = checked_uint(amount_in, "amount_in")
    amount_out = checked_uint(amount_out, "amount_out")
    reference_in = checked_uint(reference_in, "reference_amount")
    reference_out = checked_uint(reference_out, "reference_output")

    if amount_in == 0 or reference_in == 0 or reference_out == 0:
        return Decimal(0)

    with localcontext(DECIMAL_CONTEXT):
        execution_rate = Decimal(amount_out) / Decimal(amount_in)
        spot_rate = Decimal(reference_out) / Decimal(reference_in)
        impact = (1 - execution_rate / spot_rate) * 100
        impact = max(impact, Decimal(0))
        return impact.quantize(IMPACT_PRECISION, rounding=ROUND_HALF_EVEN)


def decode_revert_reason(data: Any) -> Optional[str]:
    """Reason string of an Error(string) revert payload, if that's what it is"""
    if isinstance(data, str):
        try:
            data = bytes.fromhex(data[2:] if data.startswith("0x") else data)
        except ValueError:
            return None
    if not isinstance(data, (bytes, bytearray)) or data[:4] != ERROR_STRING_SELECTOR:
        return None
    try:
        (reason,) = decode(["string"], bytes(data[4:]))
    except (DecodingError, ValueError):
        return None
    return reason


def classify_revert(message: str, data: Any = None) -> str:
    """Turn a node's revert message into something a user can act on"""
    reason = decode_revert_reason(data)
    if reason and reason not in message:
        message = f"{message}: {reason}"

    if "insufficient" in message:
        return "Insufficient token balance or allowance"
    if "INSUFFICIENT_OUTPUT_AMOUNT" in message:
        return "Output amount is less than minimum (slippage exceeded)"
    if "EXPIRED" in message:
        return "Transaction deadline expired"
    if "TRANSFER_FROM_FAILED" in message:
        return "Token transfer failed - check token approval"
    if "execution reverted" in message:
        return f"Transaction would revert: {message}"
    return f"Simulation failed: {message}"


def format_decimal(value: Decimal) -> str:
    return format(value.normalize(), "f")


class SwapRouter:
    """
    Builds and dry-runs exact-input swaps on Uniswap V3, then V2
    """

    def __init__(
        self,
        rpc: RPCManager,
        wallet: WalletManager,
        registry: TokenRegistry,
        chain: ChainConfig,
        v2: Optional[UniswapV2DEX] = None,
        v3: Optional[UniswapV3DEX] = None,
        gas_estimator: Optional[GasEstimator] = None,
        balances: Optional[BalanceService] = None,
        deadline_seconds: int = SWAP_DEADLINE_SECONDS,
        reference_floor: int = REFERENCE_AMOUNT_FLOOR,
        clock: Callable[[], float] = time.time,
    ):
        self.rpc = rpc
        self.wallet = wallet
        self.chain = chain
        self.v2 = v2 or UniswapV2DEX.from_chain(rpc, chain)
        self.v3 = v3 or UniswapV3DEX.from_chain(rpc, chain)
        self.gas_estimator = gas_estimator or GasEstimator(rpc)
        self.balances = balances or BalanceService(rpc, registry, chain)
        self.deadline_seconds = deadline_seconds
        self.reference_floor = reference_floor
        self._clock = clock

    def _dex_for(self, route: SwapRoute) -> BaseDEX:
        return self.v3 if route.protocol == Protocol.V3 else self.v2

    async def find_v3_route(self, params: SwapParams) -> tuple[SwapRoute, int]:
        """Best output over every fee tier that has a pool"""
        best_fee: Optional[int] = None
        best_amount_out = 0
        pool_found = False

        for fee in self.v3.fee_tiers:
            try:
                pool = await self.v3.get_pool(params.from_token, params.to_token, fee)
            except ChainRpcError as e:
                logger.debug(f"V3 getPool fee {fee} failed: {e}")
                continue
            if pool is None:
                continue
            pool_found = True

            try:
                amount_out = await self.v3.quote_exact_input_single(
                    params.from_token, params.to_token, params.amount_in, fee
                )
            except ChainRpcError as e:
                logger.debug(f"V3 quote fee {fee} failed: {e}")
                continue

            if amount_out > best_amount_out:
                best_amount_out, best_fee = amount_out, fee

        if not pool_found:
            raise PoolNotFoundError("no Uniswap V3 pool")
        if best_fee is None:
            raise InsufficientLiquidityError("every Uniswap V3 pool quoted zero output")

        route = SwapRoute(
            protocol=Protocol.V3,
            path=[params.from_token, params.to_token],
            fee_tier=best_fee,
        )
        return route, best_amount_out

    async def find_v2_route(self, params: SwapParams) -> tuple[SwapRoute, int]:
        """Direct pair, or two hops through the wrapped native token"""
        try:
            path = await self._v2_path(params.from_token, params.to_token)
            amounts = await self.v2.get_amounts_out(params.amount_in, path)
        except ChainRpcError as e:
            raise PoolNotFoundError(f"Uniswap V2 lookup failed: {e.message}") from e

        amount_out = amounts[-1]
        if amount_out == 0:
            raise InsufficientLiquidityError("Uniswap V2 quoted zero output")
        return SwapRoute(protocol=Protocol.V2, path=path), amount_out

    async def _v2_path(self, from_token: str, to_token: str) -> list[str]:
        if await self.v2.get_pair(from_token, to_token) is not None:
            return [from_token, to_token]

        wrapped = self.chain.wrapped_native
        leg_in = await self.v2.get_pair(from_token, wrapped)
        leg_out = await self.v2.get_pair(wrapped, to_token)
        if leg_in is None or leg_out is None:
            raise PoolNotFoundError("no Uniswap V2 pair or route via the wrapped native token")
        return [from_token, wrapped, to_token]

    async def find_route(self, params: SwapParams) -> tuple[SwapRoute, int]:
        try:
            return await self.find_v3_route(params)
        except (PoolNotFoundError, InsufficientLiquidityError) as e:
            logger.debug(f"V3 route unavailable ({e}), trying V2")
        return await self.find_v2_route(params)

    async def simulate(self, tx: dict[str, Any]) -> tuple[bool, Optional[str]]:
        """eth_call the transaction; (success, classified error)"""
        try:
            await self.rpc.call(tx)
        except ExecutionRevertedError as e:
            error = classify_revert(e.message, e.data)
        except ChainRpcError as e:
            error = classify_revert(e.message)
        else:
            logger.info("Swap simulation successful - transaction would execute")
            return True, None

        logger.warning(f"Swap simulation failed - transaction would revert: {error}")
        return False, error

    async def measure_price_impact(self, params: SwapParams, amount_out: int, route: SwapRoute) -> Decimal:
        """Price impact against a small trade on the same route; 0 if it can't be quoted or computed"""
        reference_in = reference_amount(params.amount_in, self.reference_floor)
        try:
            reference_out = await self._dex_for(route).quote(
                route.path, reference_in, fee=route.fee_tier
            )
        except ChainRpcError as e:
            logger.debug(f"Reference quote failed, reporting zero price impact: {e}")
            return Decimal(0)
        try:
            return price_impact(params.amount_in, amount_out, reference_in, reference_out)
        except NumericOverflowError as e:
            logger.debug(f"Price impact out of range, reporting zero: {e}")
            return Decimal(0)

    async def simulate_swap(self, params: SwapParams) -> SwapSimulationResult:
        """
        Quote, build and dry-run an exact-input swap

        Raises PoolNotFoundError or InsufficientLiquidityError when no route
        exists. A swap that would revert is still returned, with
        simulation_success False and the reason in simulation_error.
        """
        logger.info(
            f"Simulating swap {params.amount_in} {short_address(params.from_token)} -> "
            f"{short_address(params.to_token)} (slippage {params.slippage_tolerance}%)"
        )

        from_info = await self.balances.token_info(params.from_token)
        to_info = await self.balances.token_info(params.to_token)

        route, amount_out = await self.find_route(params)
        amount_out_min = minimum_output(amount_out, params.slippage_tolerance)
        deadline = params.deadline or int(self._clock()) + self.deadline_seconds

        dex = self._dex_for(route)
        recipient = self.wallet.address
        calldata = dex.encode_swap(
            route.path, params.amount_in, amount_out_min, recipient, deadline, fee=route.fee_tier
        )
        tx = {"from": recipient, "to": dex.router_address, "data": calldata, "value": 0}

        success, error = await self.simulate(tx)
        gas = await self.gas_estimator.estimate(tx)
        impact = await self.measure_price_impact(params, amount_out, route)

        return SwapSimulationResult(
            simulation_success=success,
            simulation_error=error,
            amount_in=format_units(params.amount_in, from_info.decimals),
            amount_out_expected=format_units(amount_out, to_info.decimals),
            amount_out_minimum=format_units(amount_out_min, to_info.decimals),
            price_impact=format_decimal(impact),
            gas_estimate=str(gas.gas_limit),
            gas_price=str(gas.gas_price_wei),
            gas_cost_eth=gas.cost_eth,
            route=route,
            transaction=TransactionData(to=dex.router_address, data=calldata, value="0"),
        )
