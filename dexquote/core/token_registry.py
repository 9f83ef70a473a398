"""
Token registry with remote fetching and caching

Tokens come from a tokenlists.org style list (Uniswap default list unless
configured otherwise) and are cached in memory:

- a fixed fallback set is seeded at construction so the home chain works
  without network access
- the cache is refreshed when older than the TTL (24h by default)
- a miss forces one refresh and a retry
- concurrent callers that all see a stale cache trigger a single fetch
"""
import asyncio
import time
from typing import Any, Callable, Optional

from web3 import Web3

from dexquote.config.settings import (
    TOKEN_CACHE_TTL_SECONDS, TOKEN_LIST_TIMEOUT_SECONDS, TOKEN_LIST_URL,
)
from dexquote.config.tokens import get_fallback_tokens
from dexquote.core.errors import DexQuoteError, ParseError
from dexquote.core.structures import TokenEntry
from dexquote.utils.http_client import TokenListClient
from dexquote.utils.logger import get_logger
from dexquote.utils.rw_lock import AsyncRWLock

logger = get_logger(__name__)


class CacheState:
    """
    Token indexes by (chain_id, SYMBOL) and (chain_id, address)

    Both indexes are only ever changed together through insert(), so they
    always hold the same entries.
    """

    def __init__(self):
        self.by_symbol: dict[tuple[int, str], TokenEntry] = {}
        self.by_address: dict[tuple[int, str], TokenEntry] = {}
        self.last_updated: Optional[float] = None

    @staticmethod
    def symbol_key(chain_id: int, symbol: str) -> tuple[int, str]:
        return chain_id, symbol.upper()

    @staticmethod
    def address_key(chain_id: int, address: str) -> tuple[int, str]:
        return chain_id, address.lower()

    def is_expired(self, ttl: float, now: float) -> bool:
        if self.last_updated is None:
            return True
        return now - self.last_updated > ttl

    def insert(self, entry: TokenEntry):
        """Insert into both indexes, evicting whatever the new entry shadows"""
        symbol_key = self.symbol_key(entry.chain_id, entry.symbol)
        address_key = self.address_key(entry.chain_id, entry.address)

        shadowed = self.by_symbol.get(symbol_key)
        if shadowed is not None:
            self.by_address.pop(self.address_key(shadowed.chain_id, shadowed.address), None)
        previous = self.by_address.get(address_key)
        if previous is not None:
            self.by_symbol.pop(self.symbol_key(previous.chain_id, previous.symbol), None)

        self.by_symbol[symbol_key] = entry
        self.by_address[address_key] = entry


class TokenRegistry:
    """
    Token lookups by symbol or address for one chain
    """

    def __init__(
        self,
        chain_id: int,
        http_client: Optional[TokenListClient] = None,
        token_list_url: str = TOKEN_LIST_URL,
        cache_ttl: float = TOKEN_CACHE_TTL_SECONDS,
        fetch_timeout: float = TOKEN_LIST_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.chain_id = chain_id
        self.token_list_url = token_list_url
        self.cache_ttl = cache_ttl
        self.fetch_timeout = fetch_timeout
        self._http = http_client or TokenListClient()
        self._clock = clock

        self._cache = CacheState()
        self._lock = AsyncRWLock()
        # Single-flight gate: at most one remote fetch at a time
        self._refresh_gate = asyncio.Semaphore(1)

        self._populate_fallback_tokens()

    def _populate_fallback_tokens(self):
        """Seed well-known tokens; refresh time stays unset so the first lookup still refreshes"""
        fallback = get_fallback_tokens(self.chain_id)
        if not fallback:
            return
        # No task can hold the lock yet
        for entry in fallback:
            self._cache.insert(entry)
        logger.info(f"Pre-populated {len(fallback)} fallback tokens for chain {self.chain_id}")

    async def _is_stale(self) -> bool:
        async with self._lock.read():
            return self._cache.is_expired(self.cache_ttl, self._clock())

    async def _ensure_fresh(self):
        """Refresh if stale; callers waiting on the gate re-check before fetching again"""
        if not await self._is_stale():
            return
        async with self._refresh_gate:
            if await self._is_stale():
                await self.refresh()

    async def _ensure_fresh_quietly(self):
        try:
            await self._ensure_fresh()
        except DexQuoteError as e:
            logger.warning(f"Failed to refresh token list: {e}")

    async def _force_refresh_quietly(self) -> bool:
        try:
            async with self._refresh_gate:
                await self.refresh()
        except DexQuoteError as e:
            logger.warning(f"Failed to refresh token list on cache miss: {e}")
            return False
        return True

    def _parse_token(self, raw: Any) -> Optional[TokenEntry]:
        """One token list item for this chain, or None to skip it"""
        if not isinstance(raw, dict):
            logger.warning(f"Skipping malformed token list item: {raw!r}")
            return None
        if raw.get("chainId") != self.chain_id:
            return None

        address = raw.get("address")
        if not isinstance(address, str) or not Web3.is_address(address):
            logger.warning(f"Invalid token address {address!r}")
            return None

        symbol, name, decimals = raw.get("symbol"), raw.get("name"), raw.get("decimals")
        if not isinstance(symbol, str) or not symbol.strip():
            logger.warning(f"Token {address} has no symbol")
            return None
        if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= 255:
            logger.warning(f"Token {address} has invalid decimals {decimals!r}")
            return None

        return TokenEntry(
            address=Web3.to_checksum_address(address),
            symbol=symbol.strip(),
            name=name if isinstance(name, str) else symbol.strip(),
            decimals=decimals,
            chain_id=self.chain_id,
        )

    async def refresh(self) -> int:
        """
        Reload the token cache from the remote list

        Returns the number of tokens loaded for this chain.
        """
        logger.info(f"Refreshing token list from {self.token_list_url}")

        payload = await self._http.fetch_json(self.token_list_url, self.fetch_timeout)
        if not isinstance(payload, dict) or not isinstance(payload.get("tokens"), list):
            raise ParseError("Failed to parse token list: missing 'tokens' array")

        entries = [entry for entry in map(self._parse_token, payload["tokens"]) if entry]

        async with self._lock.write():
            for entry in entries:
                self._cache.insert(entry)
            self._cache.last_updated = self._clock()

        logger.info(
            f"Loaded {len(entries)} tokens for chain {self.chain_id} "
            f"from '{payload.get('name', 'unnamed list')}'"
        )
        return len(entries)

    async def resolve_symbol(self, symbol: str) -> Optional[TokenEntry]:
        """Case-insensitive symbol lookup; None when the token is unknown"""
        await self._ensure_fresh_quietly()

        key = CacheState.symbol_key(self.chain_id, symbol.strip())
        async with self._lock.read():
            entry = self._cache.by_symbol.get(key)
        if entry is not None:
            return entry

        logger.info(f"Token '{symbol}' not found in cache, forcing refresh")
        if not await self._force_refresh_quietly():
            return None

        async with self._lock.read():
            return self._cache.by_symbol.get(key)

    async def lookup_address(self, address: str) -> Optional[TokenEntry]:
        """Address lookup; None when the token is unknown"""
        await self._ensure_fresh_quietly()

        key = CacheState.address_key(self.chain_id, address.strip())
        async with self._lock.read():
            entry = self._cache.by_address.get(key)
        if entry is not None:
            return entry

        logger.info(f"Token address {address} not found in cache, forcing refresh")
        if not await self._force_refresh_quietly():
            return None

        async with self._lock.read():
            return self._cache.by_address.get(key)

    async def cached_address(self, address: str) -> Optional[TokenEntry]:
        """Address lookup that refreshes only on TTL expiry, never on a miss"""
        await self._ensure_fresh_quietly()
        key = CacheState.address_key(self.chain_id, address.strip())
        async with self._lock.read():
            return self._cache.by_address.get(key)

    async def get_address(self, symbol: str) -> Optional[str]:
        entry = await self.resolve_symbol(symbol)
        return entry.address if entry else None

    async def list_tokens(self) -> list[TokenEntry]:
        """All cached tokens for this chain, sorted by symbol"""
        await self._ensure_fresh_quietly()
        async with self._lock.read():
            tokens = [t for t in self._cache.by_symbol.values() if t.chain_id == self.chain_id]
        return sorted(tokens, key=lambda t: t.symbol.upper())

    async def cache_stats(self) -> tuple[int, Optional[float]]:
        """(token count, seconds since last refresh or None)"""
        async with self._lock.read():
            count = len(self._cache.by_symbol)
            last = self._cache.last_updated
        return count, (self._clock() - last) if last is not None else None
