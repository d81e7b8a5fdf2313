"""
Middleware configuration for the FastMCP HTTP app.

Builds the Starlette middleware stack, outermost first:
- CORSMiddleware (browser-based MCP clients)
- RequestLoggingMiddleware (request id + access log)
- BearerAuthMiddleware (opaque token validation), when OAuth is enabled
"""

import logging
from typing import TYPE_CHECKING

from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from webex_mcp.auth.middleware import BearerAuthMiddleware

from .logging import RequestLoggingMiddleware

if TYPE_CHECKING:
    from webex_mcp.auth.client_cache import ClientCache
    from webex_mcp.auth.discovery import DiscoveryPublisher
    from webex_mcp.auth.oauth2_server import OAuthProxyServer
    from webex_mcp.config import Settings
    from webex_mcp.storage.base import TokenStore

logger = logging.getLogger(__name__)


def setup_middleware(
    settings: "Settings",
    oauth_server: "OAuthProxyServer | None" = None,
    store: "TokenStore | None" = None,
    client_cache: "ClientCache | None" = None,
    discovery: "DiscoveryPublisher | None" = None,
) -> list[Middleware]:
    """
    Configure the HTTP middleware stack.

    Args:
        settings: Application settings
        oauth_server: Proxy server; enables bearer authentication when given
        store: Token store (required with oauth_server)
        client_cache: Webex client cache (required with oauth_server)
        discovery: Discovery publisher (required with oauth_server)

    Returns:
        List of configured Middleware instances

    Raises:
        ValueError: If oauth_server is given without its collaborators
    """
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.get_cors_origins_list(),
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "Mcp-Session-Id", "Mcp-Protocol-Version"],
            expose_headers=["Mcp-Session-Id", "WWW-Authenticate"],
        ),
        Middleware(RequestLoggingMiddleware),
    ]
    logger.info("CORS enabled for origins: %s", settings.cors_allow_origins)

    if oauth_server is None:
        logger.warning("No authentication middleware configured")
        return middleware

    if store is None or client_cache is None or discovery is None:
        msg = "store, client_cache and discovery are required with oauth_server"
        raise ValueError(msg)

    middleware.append(
        Middleware(
            BearerAuthMiddleware,
            store=store,
            client_cache=client_cache,
            oauth_server=oauth_server,
            discovery=discovery,
            refresh_window=settings.token_refresh_window,
        )
    )
    logger.info("Bearer token authentication enabled")
    return middleware
