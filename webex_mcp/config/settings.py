"""Configuration settings for the Webex MCP server using Pydantic Settings.

This module provides type-safe configuration management with automatic validation,
environment variable loading, and documentation generation.
"""

import logging
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from webex_mcp.core.constants import (
    CLIENT_CACHE_CLEANUP_INTERVAL_DEFAULT,
    CLIENT_CACHE_TTL_DEFAULT,
    STORE_CLEANUP_INTERVAL_DEFAULT,
    STORE_MEMORY,
    TOKEN_REFRESH_WINDOW,
)
from webex_mcp.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Central configuration management with Pydantic validation.

    All settings are loaded from environment variables with automatic type conversion
    and validation. Default values are provided for non-critical settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
        validate_default=True,
        populate_by_name=True,
    )

    # ========================================
    # Debug Settings
    # ========================================
    debug: bool = Field(
        default=False,
        alias="MCP_DEBUG",
        description="Enable debug mode with verbose logging",
    )

    # ========================================
    # Server Settings
    # ========================================
    host: str = Field(
        default="0.0.0.0",
        description="Server host address",
    )

    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Server port number",
    )

    transport: str = Field(
        default="http",
        description="Transport mode (http or stdio)",
    )

    server_url: str | None = Field(
        default=None,
        description="External base URL of this server (issuer and resource identifier)",
    )

    cors_allow_origins: str = Field(
        default="*",
        description="Comma-separated list of origins allowed by CORS",
    )

    # ========================================
    # Webex Integration (upstream provider)
    # ========================================
    webex_client_id: str | None = Field(
        default=None,
        description="Client ID of the Webex integration",
    )

    webex_client_secret: str | None = Field(
        default=None,
        description="Client secret of the Webex integration",
    )

    webex_redirect_uri: str | None = Field(
        default=None,
        description="Our /callback URL as registered with Webex (defaults to {server_url}/callback)",
    )

    oauth_scopes: str = Field(
        default="spark:all",
        description="Space-separated scopes requested from Webex",
    )

    webex_authorize_url: str = Field(
        default="https://webexapis.com/v1/authorize",
        description="Webex authorization endpoint",
    )

    webex_token_url: str = Field(
        default="https://webexapis.com/v1/access_token",
        description="Webex token endpoint",
    )

    webex_api_base_url: str = Field(
        default="https://webexapis.com/v1",
        description="Base URL for Webex REST API calls",
    )

    upstream_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout in seconds for calls to Webex",
    )

    webex_access_token: str | None = Field(
        default=None,
        description="Static Webex access token used in stdio mode",
    )

    # ========================================
    # Token Store Settings
    # ========================================
    store_type: str = Field(
        default=STORE_MEMORY,
        description="Token store backend (memory, sqlite or postgres)",
    )

    store_dsn: str | None = Field(
        default=None,
        description="SQLite file path or PostgreSQL DSN",
    )

    store_cleanup_interval: float = Field(
        default=STORE_CLEANUP_INTERVAL_DEFAULT,
        gt=0,
        description="Seconds between sweeps of expired auth codes and pending auths",
    )

    # ========================================
    # Client Cache / Middleware Settings
    # ========================================
    client_cache_ttl: float = Field(
        default=CLIENT_CACHE_TTL_DEFAULT,
        gt=0,
        description="Seconds a constructed Webex client stays cached",
    )

    client_cache_cleanup_interval: float = Field(
        default=CLIENT_CACHE_CLEANUP_INTERVAL_DEFAULT,
        gt=0,
        description="Seconds between client cache sweeps",
    )

    token_refresh_window: float = Field(
        default=TOKEN_REFRESH_WINDOW,
        ge=0,
        description="Refresh the Webex token when it expires within this many seconds",
    )

    # ========================================
    # OAuth Client Settings
    # ========================================
    static_clients: str = Field(
        default="",
        description="Comma-separated client_id=redirect_uri pairs registered at startup",
    )

    enforce_downstream_pkce: bool = Field(
        default=False,
        description="Verify the MCP client's code_verifier against its code_challenge at /token",
    )

    # ========================================
    # Validators
    # ========================================
    @field_validator("server_url", mode="before")
    @classmethod
    def set_server_url(cls, v: str | None, info: Any) -> str:
        """Default the server URL from host and port if not provided."""
        if v:
            return v.rstrip("/")
        host = info.data.get("host", "0.0.0.0")
        port = info.data.get("port", 8080)
        if host == "0.0.0.0":
            host = "localhost"
        return f"http://{host}:{port}"

    @field_validator("webex_redirect_uri", mode="before")
    @classmethod
    def set_webex_redirect_uri(cls, v: str | None, info: Any) -> str:
        """Default the upstream redirect URI to our /callback endpoint."""
        if v:
            return v
        return f"{info.data.get('server_url')}/callback"

    @field_validator("store_type", "transport", mode="before")
    @classmethod
    def normalize_choice(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    # ========================================
    # Helper Methods
    # ========================================
    def get_oauth_scopes_list(self) -> list[str]:
        """Get upstream OAuth scopes as a list."""
        return self.oauth_scopes.split()

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    def get_static_clients(self) -> list[tuple[str, str]]:
        """Parse static_clients into (client_id, redirect_uri) pairs."""
        pairs = []
        for entry in self.static_clients.split(","):
            entry = entry.strip()
            if not entry:
                continue
            client_id, sep, redirect_uri = entry.partition("=")
            if not sep or not client_id.strip() or not redirect_uri.strip():
                msg = f"Invalid static client entry {entry!r}, expected client_id=redirect_uri"
                raise ConfigurationError(msg)
            pairs.append((client_id.strip(), redirect_uri.strip()))
        return pairs

    def validate_http_mode(self) -> None:
        """Check the settings required to proxy OAuth to Webex."""
        if not self.webex_client_id:
            msg = "WEBEX_CLIENT_ID is required in http mode"
            raise ConfigurationError(msg)
        if not self.webex_client_secret:
            msg = "WEBEX_CLIENT_SECRET is required in http mode"
            raise ConfigurationError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Export settings as a dictionary (safe version without secrets)."""
        return {
            "debug": self.debug,
            "host": self.host,
            "port": self.port,
            "transport": self.transport,
            "server_url": self.server_url,
            "webex_redirect_uri": self.webex_redirect_uri,
            "oauth_scopes": self.oauth_scopes,
            "has_webex_client": bool(self.webex_client_id and self.webex_client_secret),
            "has_static_token": bool(self.webex_access_token),
            "store_type": self.store_type,
            "store_cleanup_interval": self.store_cleanup_interval,
            "client_cache_ttl": self.client_cache_ttl,
            "token_refresh_window": self.token_refresh_window,
            "enforce_downstream_pkce": self.enforce_downstream_pkce,
        }


# Singleton pattern with proper typing
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        logger.info("Settings initialized from environment")
        logger.debug("Token store: %s", _settings_instance.store_type)
        if not _settings_instance.webex_client_id:
            logger.warning(
                "WEBEX_CLIENT_ID is missing. The OAuth proxy will be unavailable.",
            )
    return _settings_instance


def reset_settings() -> None:
    """Reset settings instance (useful for testing)."""
    global _settings_instance
    _settings_instance = None
