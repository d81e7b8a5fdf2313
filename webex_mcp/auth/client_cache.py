"""Cache of Webex API clients keyed by access-token hash.

Provides TTL-based expiration with a background sweeper and hit/miss
metrics. Keys are SHA-256 digests, so raw Webex tokens never become
dictionary keys.
"""

import asyncio
import logging
import time
from typing import Any

import httpx

from webex_mcp.core.constants import (
    CLIENT_CACHE_CLEANUP_INTERVAL_DEFAULT,
    CLIENT_CACHE_TTL_DEFAULT,
)
from webex_mcp.core.credentials import token_hash
from webex_mcp.storage.sweeper import PeriodicSweeper
from webex_mcp.webex.client import DEFAULT_API_BASE_URL, WebexClient

logger = logging.getLogger(__name__)


class ClientCache:
    """TTL cache of ``WebexClient`` instances.

    Features:
    - Get-or-create keyed by token hash
    - Explicit eviction after a token refresh
    - Background expiry sweeper
    - One shared ``httpx.AsyncClient`` for every cached client
    """

    def __init__(
        self,
        ttl: float = CLIENT_CACHE_TTL_DEFAULT,
        cleanup_interval: float = CLIENT_CACHE_CLEANUP_INTERVAL_DEFAULT,
        api_base_url: str = DEFAULT_API_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the client cache.

        Args:
            ttl: Seconds a client stays cached after creation
            cleanup_interval: Seconds between sweeps of expired entries
            api_base_url: Webex REST API base URL
            http_client: Optional shared HTTP client (tests inject a mock transport)
            timeout: Request timeout when the cache builds its own HTTP client
        """
        self.ttl = ttl
        self.api_base_url = api_base_url
        self._entries: dict[str, tuple[WebexClient, float]] = {}
        self._lock = asyncio.Lock()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._sweeper = PeriodicSweeper("client-cache", cleanup_interval, self.purge_expired)

        # Performance metrics
        self.hits = 0
        self.misses = 0

    async def get_or_create(self, access_token: str) -> WebexClient:
        """Return the cached client for ``access_token``, creating it if needed."""
        key = token_hash(access_token)
        now = time.time()
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and now < entry[1]:
                self.hits += 1
                return entry[0]

            self.misses += 1
            client = WebexClient(access_token, base_url=self.api_base_url, http_client=self._http)
            self._entries[key] = (client, now + self.ttl)
            return client

    async def evict(self, access_token: str) -> None:
        """Drop the client built for ``access_token``, if any."""
        async with self._lock:
            self._entries.pop(token_hash(access_token), None)

    async def purge_expired(self) -> int:
        """Remove expired entries. Returns the number removed."""
        now = time.time()
        async with self._lock:
            expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests) if total_requests > 0 else 0.0
        return {
            "size": len(self._entries),
            "ttl": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": hit_rate,
        }

    def start(self) -> None:
        """Start the background sweeper."""
        self._sweeper.start()

    async def close(self) -> None:
        """Stop the sweeper, drop all entries and close the shared HTTP client."""
        await self._sweeper.stop()
        async with self._lock:
            self._entries.clear()
        if self._owns_http:
            await self._http.aclose()
        logger.info("Client cache closed")
