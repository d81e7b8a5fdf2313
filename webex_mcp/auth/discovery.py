"""
OAuth discovery documents.

Implements:
- Protected Resource Metadata (RFC 9728)
- Authorization Server Metadata (RFC 8414)

Both documents are static renderings of configuration. This server is the
resource and the authorization server at once, so the issuer and the
resource identifier are the same base URL.
"""

from webex_mcp.core.constants import (
    CODE_CHALLENGE_METHODS,
    SUPPORTED_GRANT_TYPES,
    SUPPORTED_RESPONSE_TYPES,
    TOKEN_ENDPOINT_AUTH_METHODS,
)

PROTECTED_RESOURCE_PATH = "/.well-known/oauth-protected-resource"
AUTHORIZATION_SERVER_PATH = "/.well-known/oauth-authorization-server"


class DiscoveryPublisher:
    """Render discovery metadata for a server reachable at ``server_url``."""

    def __init__(self, server_url: str, scopes: list[str] | None = None):
        """
        Initialize the publisher.

        Args:
            server_url: External base URL (e.g., "https://mcp.example.com")
            scopes: Upstream scopes advertised as supported
        """
        self.server_url = server_url.rstrip("/")
        self.scopes = list(scopes or [])

    @property
    def resource_metadata_url(self) -> str:
        return f"{self.server_url}{PROTECTED_RESOURCE_PATH}"

    def www_authenticate(self) -> str:
        """Value of the ``WWW-Authenticate`` header on 401 responses."""
        return f'Bearer resource_metadata="{self.resource_metadata_url}"'

    def protected_resource_metadata(self) -> dict:
        """
        Get Protected Resource Metadata (RFC 9728).

        Returns:
            Protected resource metadata
        """
        return {
            "resource": self.server_url,
            "authorization_servers": [self.server_url],
            "scopes_supported": self.scopes,
            "bearer_methods_supported": ["header"],
        }

    def authorization_server_metadata(self) -> dict:
        """
        Get OAuth 2.0 Authorization Server Metadata (RFC 8414).

        Returns:
            Authorization server metadata
        """
        return {
            "issuer": self.server_url,
            "authorization_endpoint": f"{self.server_url}/authorize",
            "token_endpoint": f"{self.server_url}/token",
            "registration_endpoint": f"{self.server_url}/register",
            "revocation_endpoint": f"{self.server_url}/revoke",
            "scopes_supported": self.scopes,
            "response_types_supported": list(SUPPORTED_RESPONSE_TYPES),
            "grant_types_supported": list(SUPPORTED_GRANT_TYPES),
            "code_challenge_methods_supported": list(CODE_CHALLENGE_METHODS),
            "token_endpoint_auth_methods_supported": list(TOKEN_ENDPOINT_AUTH_METHODS),
        }
