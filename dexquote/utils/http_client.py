"""
Shared HTTP session and the token list client
"""
import asyncio
import json
from typing import Any

import aiohttp

from dexquote.core.errors import ParseError, TransportError
from dexquote.utils.logger import get_logger

logger = get_logger(__name__)

# Global session for all plain HTTP requests
_GLOBAL_SESSION: aiohttp.ClientSession | None = None


async def get_global_session() -> aiohttp.ClientSession:
    """Get or create a shared session with DNS caching"""
    global _GLOBAL_SESSION
    if _GLOBAL_SESSION is None or _GLOBAL_SESSION.closed:
        connector = aiohttp.TCPConnector(
            use_dns_cache=True,
            ttl_dns_cache=600,     # Cache for 10 minutes
            limit=100,
            limit_per_host=20,
            enable_cleanup_closed=True,
        )
        _GLOBAL_SESSION = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=30, connect=10)
        )
    return _GLOBAL_SESSION


async def close_global_session():
    global _GLOBAL_SESSION
    if _GLOBAL_SESSION is not None and not _GLOBAL_SESSION.closed:
        await _GLOBAL_SESSION.close()
    _GLOBAL_SESSION = None


class TokenListClient:
    """
    GET-with-timeout returning a decoded JSON body
    """

    def __init__(self, session: aiohttp.ClientSession | None = None):
        self._session = session

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session
        return await get_global_session()

    async def fetch_json(self, url: str, timeout: float) -> Any:
        session = await self._get_session()
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                if response.status < 200 or response.status >= 300:
                    raise TransportError(f"Token list API returned status: {response.status}")
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed to fetch token list: {e}") from e

        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Failed to parse token list: {e}") from e
