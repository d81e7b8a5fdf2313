"""Tests for the Webex client cache."""

import asyncio
import time

import httpx
import pytest

from webex_mcp.auth.client_cache import ClientCache
from webex_mcp.core.credentials import token_hash


@pytest.fixture
def cache(http_client):
    return ClientCache(ttl=60, cleanup_interval=0.05, http_client=http_client)


class TestClientCache:
    @pytest.mark.asyncio
    async def test_get_or_create_reuses_client(self, cache):
        first = await cache.get_or_create("tok-a")
        second = await cache.get_or_create("tok-a")
        other = await cache.get_or_create("tok-b")

        assert first is second
        assert other is not first
        assert first.access_token == "tok-a"
        assert cache.get_stats()["hits"] == 1
        assert cache.get_stats()["misses"] == 2

    @pytest.mark.asyncio
    async def test_keys_are_token_hashes(self, cache):
        await cache.get_or_create("tok-a")
        assert list(cache._entries) == [token_hash("tok-a")]

    @pytest.mark.asyncio
    async def test_evict(self, cache):
        first = await cache.get_or_create("tok-a")
        await cache.evict("tok-a")
        await cache.evict("never-cached")

        assert len(cache) == 0
        assert await cache.get_or_create("tok-a") is not first

    @pytest.mark.asyncio
    async def test_expired_entry_is_rebuilt(self, cache):
        first = await cache.get_or_create("tok-a")
        client, _ = cache._entries[token_hash("tok-a")]
        cache._entries[token_hash("tok-a")] = (client, time.time() - 1)

        assert await cache.get_or_create("tok-a") is not first

    @pytest.mark.asyncio
    async def test_purge_expired(self, cache):
        await cache.get_or_create("tok-a")
        await cache.get_or_create("tok-b")
        client, _ = cache._entries[token_hash("tok-a")]
        cache._entries[token_hash("tok-a")] = (client, time.time() - 1)

        assert await cache.purge_expired() == 1
        assert list(cache._entries) == [token_hash("tok-b")]

    @pytest.mark.asyncio
    async def test_background_sweeper(self, cache):
        await cache.get_or_create("tok-a")
        client, _ = cache._entries[token_hash("tok-a")]
        cache._entries[token_hash("tok-a")] = (client, time.time() - 1)

        cache.start()
        try:
            for _ in range(40):
                if len(cache) == 0:
                    break
                await asyncio.sleep(0.05)
            assert len(cache) == 0
        finally:
            await cache.close()

    @pytest.mark.asyncio
    async def test_close_keeps_injected_http_client_open(self, cache, http_client):
        await cache.get_or_create("tok-a")
        await cache.close()

        assert len(cache) == 0
        assert not http_client.is_closed

    @pytest.mark.asyncio
    async def test_close_closes_owned_http_client(self):
        cache = ClientCache()
        http = cache._http
        await cache.close()
        assert isinstance(http, httpx.AsyncClient)
        assert http.is_closed
