"""Tests for configuration settings."""

import pytest

from webex_mcp.config import Settings, get_settings, reset_settings
from webex_mcp.core.exceptions import ConfigurationError


class TestDefaults:
    def test_server_url_from_host_and_port(self, monkeypatch):
        monkeypatch.delenv("SERVER_URL", raising=False)
        settings = Settings(host="0.0.0.0", port=9000)

        assert settings.server_url == "http://localhost:9000"
        assert settings.webex_redirect_uri == "http://localhost:9000/callback"

    def test_explicit_server_url_is_trimmed(self):
        settings = Settings(server_url="https://mcp.example.com/")

        assert settings.server_url == "https://mcp.example.com"
        assert settings.webex_redirect_uri == "https://mcp.example.com/callback"

    def test_lifetimes_and_store(self):
        settings = Settings()

        assert settings.store_type == "memory"
        assert settings.store_cleanup_interval == 60
        assert settings.client_cache_ttl == 900
        assert settings.token_refresh_window == 300
        assert settings.enforce_downstream_pkce is False

    def test_env_loading(self, monkeypatch):
        monkeypatch.setenv("STORE_TYPE", " SQLite ")
        monkeypatch.setenv("MCP_DEBUG", "true")
        monkeypatch.setenv("OAUTH_SCOPES", "spark:people_read spark:messages_read")

        settings = Settings()

        assert settings.store_type == "sqlite"
        assert settings.debug is True
        assert settings.get_oauth_scopes_list() == ["spark:people_read", "spark:messages_read"]


class TestStaticClients:
    def test_parse_pairs(self):
        settings = Settings(static_clients="cli=http://localhost:3000/cb, other = https://o/cb")

        assert settings.get_static_clients() == [
            ("cli", "http://localhost:3000/cb"),
            ("other", "https://o/cb"),
        ]

    def test_empty(self):
        assert Settings(static_clients="").get_static_clients() == []

    @pytest.mark.parametrize("value", ["no-separator", "=https://x/cb", "id="])
    def test_invalid_entries(self, value):
        with pytest.raises(ConfigurationError):
            Settings(static_clients=value).get_static_clients()


class TestValidation:
    def test_http_mode_requires_webex_credentials(self, monkeypatch):
        monkeypatch.delenv("WEBEX_CLIENT_ID", raising=False)
        monkeypatch.delenv("WEBEX_CLIENT_SECRET", raising=False)

        with pytest.raises(ConfigurationError, match="WEBEX_CLIENT_ID"):
            Settings().validate_http_mode()

    def test_to_dict_hides_secrets(self):
        settings = Settings(webex_client_secret="s3cret", webex_access_token="tok")

        exported = settings.to_dict()

        assert "s3cret" not in str(exported)
        assert "tok" not in exported.values()
        assert exported["has_static_token"] is True


class TestSingleton:
    def test_get_settings_is_cached_until_reset(self):
        first = get_settings()
        assert get_settings() is first

        reset_settings()
        assert get_settings() is not first
