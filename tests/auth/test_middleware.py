"""
Bearer authentication middleware tests.

Tests:
1. Unauthorized access (missing, malformed, unknown token)
2. Valid opaque token binds a Webex client
3. Just-in-time refresh near expiry, with cache eviction
"""

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from webex_mcp.auth.middleware import split_bearer_token
from webex_mcp.core.credentials import token_hash
from webex_mcp.core.exceptions import StorageError

from ..conftest import SERVER_URL

WWW_AUTHENTICATE = f'Bearer resource_metadata="{SERVER_URL}/.well-known/oauth-protected-resource"'


def _store_token(store, access="webex-access-0", refresh="webex-refresh-0", expires_in=3600):
    return asyncio.run(store.store_token(access, refresh, expires_in))


class TestSplitBearerToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("Bearer  abc ", "abc"),
            ("Bearer ", None),
            ("bearer abc", None),
            ("Basic abc", None),
            (None, None),
        ],
    )
    def test_split(self, header, expected):
        assert split_bearer_token(header) == expected


class TestUnauthorizedAccess:
    def test_no_authorization_header(self, client):
        response = client.get("/mcp")

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"
        assert response.headers["www-authenticate"] == WWW_AUTHENTICATE

    def test_invalid_authorization_format(self, client):
        response = client.get("/mcp", headers={"Authorization": "InvalidFormat token123"})
        assert response.status_code == 401

    def test_unknown_token(self, client):
        response = client.get("/mcp", headers={"Authorization": "Bearer " + "0" * 64})

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == WWW_AUTHENTICATE

    def test_store_failure_is_server_error(self, client, memory_store, monkeypatch):
        monkeypatch.setattr(
            memory_store, "lookup_token", AsyncMock(side_effect=StorageError("db down"))
        )

        response = client.get("/mcp", headers={"Authorization": "Bearer " + "0" * 64})

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        assert response.headers["cache-control"] == "no-store"
        assert "db down" not in response.text

    def test_public_paths_bypass_auth(self, client):
        assert client.get("/.well-known/oauth-authorization-server").status_code == 200


class TestValidToken:
    def test_binds_webex_client(self, client, memory_store, fake_webex):
        token = _store_token(memory_store)

        response = client.get("/mcp", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"displayName": "Test User"}
        sent = fake_webex.api_requests[0]
        assert sent.headers["authorization"] == "Bearer webex-access-0"
        assert fake_webex.token_requests == []

    def test_client_is_reused_across_requests(self, client, memory_store, client_cache):
        token = _store_token(memory_store)
        headers = {"Authorization": f"Bearer {token}"}

        client.get("/mcp", headers=headers)
        client.get("/mcp", headers=headers)

        assert len(client_cache) == 1
        assert client_cache.hits == 1
        assert client_cache.misses == 1


class TestRefresh:
    def test_refreshes_near_expiry_and_evicts_old_client(
        self, client, memory_store, client_cache, fake_webex
    ):
        token = _store_token(memory_store, expires_in=60)
        asyncio.run(client_cache.get_or_create("webex-access-0"))

        response = client.get("/mcp", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert fake_webex.token_requests[0]["refresh_token"] == "webex-refresh-0"
        assert fake_webex.api_requests[0].headers["authorization"] == "Bearer webex-access-1"
        assert token_hash("webex-access-0") not in client_cache._entries
        assert token_hash("webex-access-1") in client_cache._entries

        record = memory_store._tokens[token]
        assert record.opaque_token == token
        assert record.webex_refresh_token == "webex-refresh-1"
        assert record.expires_at > time.time() + 3000

    def test_refresh_failure_returns_401(self, client, memory_store, fake_webex):
        token = _store_token(memory_store, expires_in=0)
        fake_webex.fail_token_endpoint = True

        response = client.get("/mcp", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_token"
        assert response.headers["www-authenticate"] == WWW_AUTHENTICATE
        assert fake_webex.api_requests == []

    def test_fresh_token_is_not_refreshed(self, client, memory_store, fake_webex):
        token = _store_token(memory_store, expires_in=301 + 60)

        client.get("/mcp", headers={"Authorization": f"Bearer {token}"})

        assert fake_webex.token_requests == []
