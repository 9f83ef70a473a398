"""
Rate limiter for RPC calls
"""
import asyncio
import time


class TokenBucketRateLimiter:
    """
    Token bucket rate limiter for controlling request rates
    """

    def __init__(self, rate: float, burst: int = 1):
        """
        Args:
            rate: Requests per second
            burst: Maximum burst size
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = rate
        self.burst = burst
        self.tokens = float(burst)
        self.last_update = time.monotonic()
        self._lock = asyncio.Lock()

    async def acquire(self):
        """Wait until a token is available"""
        wait_time = 0.0
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.last_update
            if elapsed > 0:
                self.tokens = min(self.burst, self.tokens + elapsed * self.rate)
                self.last_update = now

            if self.tokens < 1:
                wait_time = (1 - self.tokens) / self.rate
            # May go negative: later callers queue behind the debt
            self.tokens -= 1

        if wait_time > 0:
            await asyncio.sleep(wait_time)


class MultiRateLimiter:
    """
    One bucket per key (e.g. per RPC endpoint), created on first use
    """

    def __init__(self, default_rate: float = 10.0, default_burst: int = 5):
        self._limiters: dict[str, TokenBucketRateLimiter] = {}
        self._default_rate = default_rate
        self._default_burst = default_burst

    async def acquire(self, key: str):
        """Acquire a token for the given key"""
        limiter = self._limiters.get(key)
        if limiter is None:
            limiter = self._limiters.setdefault(
                key, TokenBucketRateLimiter(self._default_rate, self._default_burst)
            )
        await limiter.acquire()
