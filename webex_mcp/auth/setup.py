"""
OAuth2 route registration for FastMCP server.

Route handlers live in ``auth.routes``; this module wraps them in closures
that inject the proxy server and discovery publisher, and registers them
with ``FastMCP.custom_route``.
"""

import logging
from typing import TYPE_CHECKING

from .routes import (
    authorization_server_metadata,
    authorize,
    callback,
    protected_resource_metadata,
    register_client,
    revoke_endpoint,
    token_endpoint,
)

if TYPE_CHECKING:
    from fastmcp import FastMCP

    from .discovery import DiscoveryPublisher
    from .oauth2_server import OAuthProxyServer

logger = logging.getLogger(__name__)


def setup_oauth2_routes(
    mcp: "FastMCP",
    oauth_server: "OAuthProxyServer",
    discovery: "DiscoveryPublisher",
) -> None:
    """
    Register OAuth2 endpoints with FastMCP server.

    Registers:
    - /.well-known/oauth-protected-resource (RFC 9728)
    - /.well-known/oauth-authorization-server (RFC 8414)
    - /register (RFC 7591 - Dynamic Client Registration)
    - /authorize (redirect to Webex)
    - /callback (Webex redirect target)
    - /token (authorization_code and refresh_token grants)
    - /revoke (RFC 7009)

    Args:
        mcp: FastMCP server instance
        oauth_server: Proxy server handling the flow
        discovery: Publisher of the metadata documents
    """

    @mcp.custom_route("/.well-known/oauth-protected-resource", methods=["GET"])
    async def _protected_resource_metadata(request):
        """Protected Resource Metadata (RFC 9728)."""
        return await protected_resource_metadata(request, discovery)

    @mcp.custom_route("/.well-known/oauth-authorization-server", methods=["GET"])
    async def _authorization_server_metadata(request):
        """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
        return await authorization_server_metadata(request, discovery)

    @mcp.custom_route("/register", methods=["POST"])
    async def _register_client(request):
        """Dynamic Client Registration (RFC 7591)."""
        return await register_client(request, oauth_server)

    @mcp.custom_route("/authorize", methods=["GET"])
    async def _authorize(request):
        """Authorization endpoint - redirects to Webex."""
        return await authorize(request, oauth_server)

    @mcp.custom_route("/callback", methods=["GET"])
    async def _callback(request):
        """Webex callback - redirects back to the MCP client."""
        return await callback(request, oauth_server)

    @mcp.custom_route("/token", methods=["POST"])
    async def _token_endpoint(request):
        """Token endpoint - issues and refreshes opaque tokens."""
        return await token_endpoint(request, oauth_server)

    @mcp.custom_route("/revoke", methods=["POST"])
    async def _revoke(request):
        """Token revocation (RFC 7009)."""
        return await revoke_endpoint(request, oauth_server)

    logger.info("OAuth2 endpoints registered (7 routes)")
