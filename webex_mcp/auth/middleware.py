"""
Bearer token authentication middleware for the MCP server.

Validates opaque tokens issued by ``OAuthProxyServer`` and binds the
matching Webex client to the request.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from webex_mcp.core.constants import HEALTH_PATHS, PUBLIC_PATHS, TOKEN_REFRESH_WINDOW
from webex_mcp.core.credentials import redact
from webex_mcp.core.exceptions import (
    InvalidTokenError,
    OAuthError,
    OAuthServerError,
    StorageError,
    UpstreamError,
)
from webex_mcp.storage.base import TokenStore

from .client_cache import ClientCache
from .discovery import DiscoveryPublisher
from .oauth2_server import OAuthProxyServer
from .resolver import bind_request_client, unbind_request_client
from .routes import oauth_error_response

logger = logging.getLogger(__name__)


def split_bearer_token(auth_header: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header[len("Bearer ") :].strip()
    return token or None


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware enforcing opaque bearer tokens on every protected path.

    For each request:
    1. Look up the opaque token in the store
    2. Refresh the Webex token first if it expires within the refresh window
    3. Fetch (or build) the Webex client from the cache and bind it to the request

    Any failure returns 401 with a ``WWW-Authenticate`` header pointing at
    the protected resource metadata.
    """

    def __init__(
        self,
        app,
        store: TokenStore,
        client_cache: ClientCache,
        oauth_server: OAuthProxyServer,
        discovery: DiscoveryPublisher,
        refresh_window: float = TOKEN_REFRESH_WINDOW,
    ):
        """
        Initialize middleware.

        Args:
            app: ASGI application
            store: Token store holding the opaque token records
            client_cache: Cache of Webex clients
            oauth_server: Proxy server used for just-in-time refresh
            discovery: Discovery publisher (for the WWW-Authenticate header)
            refresh_window: Seconds before expiry at which a refresh is forced
        """
        super().__init__(app)
        self.store = store
        self.client_cache = client_cache
        self.oauth_server = oauth_server
        self.discovery = discovery
        self.refresh_window = refresh_window

    async def dispatch(self, request: Request, call_next):
        """Authenticate the request, then pass it on."""
        path = request.url.path
        if path in PUBLIC_PATHS or path in HEALTH_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        opaque_token = split_bearer_token(request.headers.get("Authorization"))
        if opaque_token is None:
            return self._unauthorized_response("Bearer token required")

        try:
            record = await self.store.lookup_token(opaque_token)
            if record is None:
                logger.info("Rejected unknown bearer token %s", redact(opaque_token))
                return self._unauthorized_response("Invalid or revoked token")

            webex_token = record.webex_access_token
            if record.expires_within(self.refresh_window):
                try:
                    refreshed = await self.oauth_server.refresh_record(record)
                except (UpstreamError, OAuthError) as e:
                    logger.warning(
                        "Failed to refresh Webex token for %s: %s",
                        redact(opaque_token),
                        e,
                    )
                    return self._unauthorized_response("Token expired and could not be refreshed")
                # The old client must not outlive the token it was built on
                await self.client_cache.evict(record.webex_access_token)
                webex_token = refreshed.webex_access_token
        except StorageError as e:
            logger.error("Token lookup failed: %s", e)
            return oauth_error_response(OAuthServerError("Failed to validate token"))

        client = await self.client_cache.get_or_create(webex_token)

        request.state.webex_client = client
        request.state.opaque_token = opaque_token
        bound = bind_request_client(client, webex_token)
        try:
            return await call_next(request)
        finally:
            unbind_request_client(bound)

    def _unauthorized_response(self, message: str) -> JSONResponse:
        """Create 401 Unauthorized response with WWW-Authenticate header."""
        error = InvalidTokenError(message)
        return JSONResponse(
            error.to_dict(),
            status_code=error.status_code,
            headers={"WWW-Authenticate": self.discovery.www_authenticate()},
        )
