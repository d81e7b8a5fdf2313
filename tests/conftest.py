"""
Shared pytest fixtures and configuration for all tests.

Environment Variables for Test Control:
- WEBEX_MCP_TEST_POSTGRES_DSN : Run the store contract suite against PostgreSQL
- By default, Webex is replaced by an httpx.MockTransport, no network calls are made
"""

import json
import os
from urllib.parse import parse_qs

import httpx
import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

# Set test environment variables BEFORE any imports
os.environ.setdefault("WEBEX_CLIENT_ID", "test-webex-client")
os.environ.setdefault("WEBEX_CLIENT_SECRET", "test-webex-secret")

from webex_mcp.auth.client_cache import ClientCache
from webex_mcp.auth.discovery import DiscoveryPublisher
from webex_mcp.auth.middleware import BearerAuthMiddleware
from webex_mcp.auth.oauth2_server import OAuthProxyServer
from webex_mcp.auth.setup import setup_oauth2_routes
from webex_mcp.auth.upstream import WebexOAuthClient
from webex_mcp.config import reset_settings
from webex_mcp.storage.memory import MemoryStore

SERVER_URL = "https://mcp.test"
CLIENT_REDIRECT_URI = "https://client.test/cb"
WEBEX_TOKEN_URL = "https://webex.test/v1/access_token"
WEBEX_AUTHORIZE_URL = "https://webex.test/v1/authorize"
WEBEX_API_URL = "https://webex.test/v1"


class FakeWebex:
    """In-process stand-in for the Webex OAuth and REST endpoints."""

    def __init__(self):
        self.token_requests: list[dict[str, str]] = []
        self.api_requests: list[httpx.Request] = []
        self.issued = 0
        self.expires_in = 3600
        self.fail_token_endpoint = False

    def _issue(self) -> dict:
        self.issued += 1
        return {
            "access_token": f"webex-access-{self.issued}",
            "expires_in": self.expires_in,
            "refresh_token": f"webex-refresh-{self.issued}",
            "refresh_token_expires_in": 7776000,
            "token_type": "Bearer",
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == WEBEX_TOKEN_URL:
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            self.token_requests.append(form)
            if self.fail_token_endpoint:
                return httpx.Response(400, json={"message": "upstream secret detail"})
            return httpx.Response(200, json=self._issue())

        if request.url.path.endswith("/people/me"):
            self.api_requests.append(request)
            return httpx.Response(
                200,
                json={
                    "id": "person-1",
                    "displayName": "Test User",
                    "emails": ["user@example.com"],
                    "orgId": "org-1",
                },
            )
        return httpx.Response(404, json={"message": "not found"})


class RouteCollector:
    """Minimal FastMCP stand-in that records custom routes."""

    def __init__(self):
        self.routes: list[Route] = []

    def custom_route(self, path, methods):
        def decorator(func):
            self.routes.append(Route(path, func, methods=methods))
            return func

        return decorator


@pytest.fixture(autouse=True)
def _reset_settings():
    """Reset the settings singleton around every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def fake_webex():
    return FakeWebex()


@pytest.fixture
def http_client(fake_webex):
    """httpx client routed to FakeWebex."""
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_webex.handler))


@pytest.fixture
def memory_store():
    """Uninitialized MemoryStore (no sweeper task), safe for TestClient."""
    return MemoryStore()


@pytest.fixture
def upstream(http_client):
    return WebexOAuthClient(
        client_id="test-webex-client",
        client_secret="test-webex-secret",
        redirect_uri=f"{SERVER_URL}/callback",
        scopes=["spark:all"],
        authorize_url=WEBEX_AUTHORIZE_URL,
        token_url=WEBEX_TOKEN_URL,
        http_client=http_client,
    )


@pytest.fixture
def discovery():
    return DiscoveryPublisher(SERVER_URL, ["spark:all"])


@pytest.fixture
def client_cache(http_client):
    return ClientCache(ttl=900, api_base_url=WEBEX_API_URL, http_client=http_client)


@pytest.fixture
def oauth_server(memory_store, upstream):
    return OAuthProxyServer(memory_store, upstream)


@pytest.fixture
def app(memory_store, oauth_server, discovery, client_cache):
    """Starlette app with the OAuth routes, bearer middleware and one protected route."""

    async def whoami(request):
        client = request.state.webex_client
        person = await client.get_my_details()
        return JSONResponse({"displayName": person["displayName"]})

    collector = RouteCollector()
    setup_oauth2_routes(collector, oauth_server, discovery)

    middleware = [
        Middleware(
            BearerAuthMiddleware,
            store=memory_store,
            client_cache=client_cache,
            oauth_server=oauth_server,
            discovery=discovery,
        )
    ]
    return Starlette(routes=[*collector.routes, Route("/mcp", whoami)], middleware=middleware)


@pytest.fixture
def client(app):
    """Create test client (redirects are inspected, not followed)."""
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def registered_client(client):
    """Register a public client via DCR and return its registration body."""
    response = client.post(
        "/register",
        content=json.dumps({"redirect_uris": [CLIENT_REDIRECT_URI], "client_name": "Test"}),
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 201
    return response.json()
