"""Application context and lifecycle management for the Webex MCP server."""

import asyncio
from dataclasses import dataclass
from typing import Optional

from webex_mcp.auth.client_cache import ClientCache
from webex_mcp.auth.discovery import DiscoveryPublisher
from webex_mcp.auth.oauth2_server import OAuthProxyServer
from webex_mcp.auth.resolver import (
    ClientResolver,
    http_client_resolver,
    static_client_resolver,
)
from webex_mcp.auth.upstream import WebexOAuthClient
from webex_mcp.config import Settings, get_settings
from webex_mcp.storage.base import TokenStore
from webex_mcp.storage.factory import create_and_initialize_store
from webex_mcp.webex.client import WebexClient

from .exceptions import ConfigurationError
from .logging import logger


@dataclass
class WebexMCPContext:
    """Long-lived collaborators shared by routes, middleware and tools.

    In stdio mode only ``settings``, ``resolver`` and ``static_client`` are set.
    """

    settings: Settings
    resolver: ClientResolver
    store: TokenStore | None = None
    client_cache: ClientCache | None = None
    upstream: WebexOAuthClient | None = None
    oauth_server: OAuthProxyServer | None = None
    discovery: DiscoveryPublisher | None = None
    static_client: WebexClient | None = None

    @property
    def http_mode(self) -> bool:
        return self.oauth_server is not None


# Global context storage
_app_context: Optional["WebexMCPContext"] = None
_context_lock: asyncio.Lock | None = None


def set_app_context(context: Optional["WebexMCPContext"]) -> None:
    """Store the application context globally."""
    global _app_context
    _app_context = context


def get_app_context() -> Optional["WebexMCPContext"]:
    """Get the stored application context."""
    return _app_context


async def _build_http_context(settings: Settings) -> WebexMCPContext:
    settings.validate_http_mode()

    store = await create_and_initialize_store(settings)

    upstream = WebexOAuthClient(
        client_id=settings.webex_client_id,
        client_secret=settings.webex_client_secret,
        redirect_uri=settings.webex_redirect_uri,
        scopes=settings.get_oauth_scopes_list(),
        authorize_url=settings.webex_authorize_url,
        token_url=settings.webex_token_url,
        timeout=settings.upstream_timeout,
    )
    client_cache = ClientCache(
        ttl=settings.client_cache_ttl,
        cleanup_interval=settings.client_cache_cleanup_interval,
        api_base_url=settings.webex_api_base_url,
        timeout=settings.upstream_timeout,
    )
    client_cache.start()

    oauth_server = OAuthProxyServer(
        store,
        upstream,
        enforce_downstream_pkce=settings.enforce_downstream_pkce,
    )
    discovery = DiscoveryPublisher(settings.server_url, settings.get_oauth_scopes_list())

    logger.info("OAuth proxy ready (issuer %s, store %s)", settings.server_url, settings.store_type)
    return WebexMCPContext(
        settings=settings,
        resolver=http_client_resolver(),
        store=store,
        client_cache=client_cache,
        upstream=upstream,
        oauth_server=oauth_server,
        discovery=discovery,
    )


def _build_stdio_context(settings: Settings) -> WebexMCPContext:
    if not settings.webex_access_token:
        msg = "WEBEX_ACCESS_TOKEN is required in stdio mode"
        raise ConfigurationError(msg)
    client = WebexClient(
        settings.webex_access_token,
        base_url=settings.webex_api_base_url,
        timeout=settings.upstream_timeout,
    )
    logger.info("Using static Webex access token (stdio mode)")
    return WebexMCPContext(
        settings=settings,
        resolver=static_client_resolver(client),
        static_client=client,
    )


async def initialize_global_context(settings: Settings | None = None) -> WebexMCPContext:
    """Initialize the global application context once.

    This should be called at application startup, not per-request.

    Returns:
        WebexMCPContext: The initialized context
    """
    global _app_context, _context_lock

    if _context_lock is None:
        _context_lock = asyncio.Lock()

    async with _context_lock:
        if _app_context is not None:
            logger.info("Using existing application context (singleton)")
            return _app_context

        settings = settings or get_settings()
        logger.info("Initializing global application context (transport=%s)...", settings.transport)

        if settings.transport == "stdio":
            context = _build_stdio_context(settings)
        else:
            context = await _build_http_context(settings)

        _app_context = context
        logger.info("Global application context initialized")
        return context


async def cleanup_global_context() -> None:
    """Clean up the global application context.

    Order matters: the client cache sweeper stops first, then the store
    (its sweeper, then its storage handles).
    """
    global _app_context

    if _app_context is None:
        logger.info("No global context to clean up")
        return

    logger.info("Starting cleanup of global application context...")
    context = _app_context

    closers = [
        ("client cache", context.client_cache),
        ("token store", context.store),
        ("upstream OAuth client", context.upstream),
        ("static Webex client", context.static_client),
    ]
    for name, resource in closers:
        if resource is None:
            continue
        try:
            await resource.close()
        except Exception as e:
            logger.error("Error closing %s: %s", name, e, exc_info=True)

    _app_context = None
    logger.info("Global application context cleanup completed")
