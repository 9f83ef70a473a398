"""
RPC endpoint manager with automatic failover and rotation
"""
import asyncio
import inspect
import time
from dataclasses import dataclass
from typing import Any

from eth_abi.exceptions import EncodingError
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, MismatchedABI, Web3ValidationError

from dexquote.config.settings import (
    RPC_RATE_LIMIT_BURST, RPC_RATE_LIMIT_PER_SECOND, RPC_REQUEST_TIMEOUT,
)
from dexquote.core.errors import ChainRpcError, ConfigurationError, ExecutionRevertedError
from dexquote.utils.logger import get_logger
from dexquote.utils.rate_limiter import MultiRateLimiter

logger = get_logger(__name__)


@dataclass
class RPCEndpointHealth:
    """Track health of an RPC endpoint"""
    url: str
    failures: int = 0
    last_failure: float = 0
    last_success: float = 0
    avg_latency_ms: float = 0

    def record_success(self, latency_ms: float):
        self.last_success = time.time()
        self.failures = 0
        # Exponential moving average
        if self.avg_latency_ms == 0:
            self.avg_latency_ms = latency_ms
        else:
            self.avg_latency_ms = 0.8 * self.avg_latency_ms + 0.2 * latency_ms

    def record_failure(self):
        self.failures += 1
        self.last_failure = time.time()

    def is_healthy(self) -> bool:
        # Unhealthy after 3+ failures within the last 60 seconds
        if self.failures >= 3 and time.time() - self.last_failure < 60:
            return False
        return True


class RPCManager:
    """
    Read-only access to one chain through a set of interchangeable endpoints

    Transport faults move on to the next healthy endpoint; a revert is an
    answer from the chain and is raised immediately as ExecutionRevertedError.
    """

    def __init__(
        self,
        rpc_urls: list[str],
        request_timeout: float = RPC_REQUEST_TIMEOUT,
        rate_limiter: MultiRateLimiter | None = None,
    ):
        if not rpc_urls:
            raise ConfigurationError("At least one RPC URL is required")
        self.rpc_urls = list(rpc_urls)
        self.request_timeout = request_timeout
        self._web3_instances: dict[str, AsyncWeb3] = {}
        self._endpoint_health = {url: RPCEndpointHealth(url=url) for url in self.rpc_urls}
        self._rate_limiter = rate_limiter or MultiRateLimiter(
            RPC_RATE_LIMIT_PER_SECOND, RPC_RATE_LIMIT_BURST
        )

        # Lazily fetched chain id; the lock makes concurrent first callers share one fetch
        self._chain_id: int | None = None
        self._chain_id_lock = asyncio.Lock()

        logger.info(f"RPC manager created with {len(self.rpc_urls)} endpoint(s) (lazy initialization)")

    def _get_web3(self, url: str) -> AsyncWeb3:
        """Get or create a Web3 instance for a specific endpoint"""
        if url not in self._web3_instances:
            provider = AsyncHTTPProvider(url, request_kwargs={"timeout": self.request_timeout})
            self._web3_instances[url] = AsyncWeb3(provider)
        return self._web3_instances[url]

    def _get_best_endpoint(self, exclude: set[str] | None = None) -> str:
        """Get the best available endpoint not yet tried for this request"""
        exclude = exclude or set()
        candidates = [url for url in self.rpc_urls if url not in exclude] or self.rpc_urls
        healthy_endpoints = []

        for url in candidates:
            health = self._endpoint_health[url]
            if health.is_healthy():
                healthy_endpoints.append((url, health.avg_latency_ms or float("inf")))

        if not healthy_endpoints:
            # All unhealthy, reset and use first
            for url in candidates:
                self._endpoint_health[url].failures = 0
            return candidates[0]

        # Sort by latency, return fastest
        healthy_endpoints.sort(key=lambda x: x[1])
        return healthy_endpoints[0][0]

    async def _execute(self, label: str, operation) -> Any:
        """
        Run `operation(web3)` with automatic failover
        """
        last_error: Exception | None = None
        tried: set[str] = set()

        for _ in range(len(self.rpc_urls)):
            url = self._get_best_endpoint(tried)
            tried.add(url)
            web3 = self._get_web3(url)
            await self._rate_limiter.acquire(url)

            start_time = time.time()
            try:
                result = await asyncio.wait_for(operation(web3), timeout=self.request_timeout + 5)
            except ContractLogicError as e:
                # The node is fine, the call itself reverted
                self._endpoint_health[url].record_success((time.time() - start_time) * 1000)
                raise ExecutionRevertedError(str(e), data=getattr(e, "data", None)) from e
            except (Web3ValidationError, MismatchedABI, EncodingError) as e:
                # Rejected before anything was sent; every endpoint would say the same
                raise ChainRpcError(f"{label}: invalid call arguments: {e}") from e
            except Exception as e:
                self._endpoint_health[url].record_failure()
                logger.debug(f"{label} failed on {url}: {e}")
                last_error = e
                continue

            self._endpoint_health[url].record_success((time.time() - start_time) * 1000)
            return result

        raise ChainRpcError(f"{label} failed on all endpoints: {last_error}")

    async def _eth(self, method: str, *args, **kwargs) -> Any:
        """Call a web3.eth method or awaitable property"""
        async def execute_call(web3: AsyncWeb3):
            attr = getattr(web3.eth, method)
            # Some are awaitable properties (gas_price, block_number)
            if inspect.isawaitable(attr):
                return await attr
            if callable(attr):
                return await attr(*args, **kwargs)
            return attr

        return await self._execute(method, execute_call)

    async def chain_id(self) -> int:
        """Chain id of the connected node (fetched once)"""
        if self._chain_id is not None:
            return self._chain_id
        async with self._chain_id_lock:
            if self._chain_id is None:
                self._chain_id = int(await self._eth("chain_id"))
                logger.info(f"Connected to chain {self._chain_id}")
        return self._chain_id

    async def get_balance(self, address: str) -> int:
        return int(await self._eth("get_balance", AsyncWeb3.to_checksum_address(address)))

    async def call(self, tx: dict[str, Any]) -> bytes:
        """eth_call: execute without broadcasting"""
        return bytes(await self._eth("call", tx))

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return int(await self._eth("estimate_gas", tx))

    async def get_gas_price(self) -> int:
        return int(await self._eth("gas_price"))

    async def get_block_timestamp(self) -> int:
        block = await self._eth("get_block", "latest")
        if not block:
            raise ChainRpcError("Failed to get latest block")
        return int(block["timestamp"])

    async def read(self, address: str, abi: list[dict], function: str, *args) -> Any:
        """Call a view function on a contract and return the decoded output"""
        checksum = AsyncWeb3.to_checksum_address(address)

        async def execute_read(web3: AsyncWeb3):
            contract = web3.eth.contract(address=checksum, abi=abi)
            return await contract.functions[function](*args).call()

        return await self._execute(f"{function}@{checksum}", execute_read)

    async def close(self):
        """Close all Web3 providers"""
        for web3 in self._web3_instances.values():
            disconnect = getattr(web3.provider, "disconnect", None)
            if disconnect is None:
                continue
            try:
                await disconnect()
            except Exception as e:
                logger.debug(f"Provider disconnect failed: {e}")
        self._web3_instances.clear()
