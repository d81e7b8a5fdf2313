"""
Tests for middleware.setup module.

Tests the HTTP middleware stack with and without the OAuth proxy.
"""

from unittest.mock import Mock

import pytest
from starlette.middleware.cors import CORSMiddleware

from webex_mcp.auth.middleware import BearerAuthMiddleware
from webex_mcp.config import Settings
from webex_mcp.middleware import RequestLoggingMiddleware, setup_middleware


@pytest.fixture
def settings():
    return Settings(cors_allow_origins="https://a.test, https://b.test", token_refresh_window=120)


class TestSetupMiddleware:
    """Test middleware configuration."""

    def test_without_oauth_has_cors_and_logging_only(self, settings):
        middleware = setup_middleware(settings)

        assert [m.cls for m in middleware] == [CORSMiddleware, RequestLoggingMiddleware]

    def test_cors_origins_come_from_settings(self, settings):
        cors = setup_middleware(settings)[0]

        assert cors.kwargs["allow_origins"] == ["https://a.test", "https://b.test"]
        assert "Mcp-Session-Id" in cors.kwargs["expose_headers"]

    def test_oauth_mode_appends_bearer_auth_last(self, settings):
        store, cache, oauth_server, discovery = Mock(), Mock(), Mock(), Mock()

        middleware = setup_middleware(
            settings,
            oauth_server=oauth_server,
            store=store,
            client_cache=cache,
            discovery=discovery,
        )

        assert len(middleware) == 3
        auth = middleware[-1]
        assert auth.cls == BearerAuthMiddleware
        assert auth.kwargs["store"] is store
        assert auth.kwargs["client_cache"] is cache
        assert auth.kwargs["oauth_server"] is oauth_server
        assert auth.kwargs["discovery"] is discovery
        assert auth.kwargs["refresh_window"] == 120

    def test_oauth_mode_requires_collaborators(self, settings):
        with pytest.raises(ValueError, match="required with oauth_server"):
            setup_middleware(settings, oauth_server=Mock())
