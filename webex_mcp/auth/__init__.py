"""OAuth proxy, discovery and request authentication."""

from .client_cache import ClientCache
from .discovery import DiscoveryPublisher
from .middleware import BearerAuthMiddleware
from .oauth2_server import OAuthProxyServer, TokenResponse
from .resolver import ClientResolver, http_client_resolver, static_client_resolver
from .setup import setup_oauth2_routes
from .upstream import UpstreamTokenResponse, WebexOAuthClient

__all__ = [
    "BearerAuthMiddleware",
    "ClientCache",
    "ClientResolver",
    "DiscoveryPublisher",
    "OAuthProxyServer",
    "TokenResponse",
    "UpstreamTokenResponse",
    "WebexOAuthClient",
    "http_client_resolver",
    "setup_oauth2_routes",
    "static_client_resolver",
]
