"""
Client for the Webex OAuth endpoints.

Covers the three calls the proxy makes upstream: building the authorize
redirect, exchanging an authorization code and refreshing a token. Both
token calls send the server's own PKCE verifier / refresh token together
with the integration's client credentials.
"""

import logging
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from webex_mcp.core.constants import GRANT_AUTHORIZATION_CODE, GRANT_REFRESH_TOKEN
from webex_mcp.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class UpstreamTokenResponse(BaseModel):
    """Token response from the Webex token endpoint."""

    access_token: str
    expires_in: int
    refresh_token: str
    refresh_token_expires_in: int | None = None
    token_type: str | None = None


class WebexOAuthClient:
    """Talks to the upstream (Webex) authorization server."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: list[str],
        authorize_url: str = "https://webexapis.com/v1/authorize",
        token_url: str = "https://webexapis.com/v1/access_token",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the upstream client.

        Args:
            client_id: Webex integration client ID
            client_secret: Webex integration client secret
            redirect_uri: Our /callback URL as registered with Webex
            scopes: Scopes requested on every authorization
            authorize_url: Webex authorization endpoint
            token_url: Webex token endpoint
            timeout: Request timeout in seconds
            http_client: Optional pre-built client (tests inject a mock transport)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = scopes
        self.authorize_endpoint = authorize_url
        self.token_endpoint = token_url
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    def authorize_url(self, state: str, code_challenge: str) -> str:
        """Build the Webex authorize URL for one round trip."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self.authorize_endpoint}?{urlencode(params)}"

    async def exchange_code(self, code: str, code_verifier: str) -> UpstreamTokenResponse:
        """
        Exchange a Webex authorization code for tokens.

        Raises:
            UpstreamError: Transport failure, non-200 status or malformed body
        """
        return await self._post_token(
            {
                "grant_type": GRANT_AUTHORIZATION_CODE,
                "code": code,
                "redirect_uri": self.redirect_uri,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code_verifier": code_verifier,
            },
            "code exchange",
        )

    async def refresh(self, refresh_token: str) -> UpstreamTokenResponse:
        """
        Obtain new Webex tokens with a Webex refresh token.

        Raises:
            UpstreamError: Transport failure, non-200 status or malformed body
        """
        return await self._post_token(
            {
                "grant_type": GRANT_REFRESH_TOKEN,
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            "token refresh",
        )

    async def _post_token(self, data: dict[str, str], operation: str) -> UpstreamTokenResponse:
        try:
            response = await self._http.post(
                self.token_endpoint,
                data=data,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error("Webex %s request failed: %s", operation, type(e).__name__)
            msg = f"Webex {operation} request failed"
            raise UpstreamError(msg) from e

        if response.status_code != 200:
            # Body stays out of the exception so it never reaches a client
            logger.warning("Webex %s failed with status %d", operation, response.status_code)
            logger.debug("Webex %s error body: %s", operation, response.text[:200])
            msg = f"Webex {operation} failed (status {response.status_code})"
            raise UpstreamError(msg, status_code=response.status_code)

        try:
            return UpstreamTokenResponse.model_validate(response.json())
        except ValueError as e:  # includes pydantic.ValidationError
            logger.error("Webex %s returned an unparseable body", operation)
            msg = f"Webex {operation} returned an invalid response"
            raise UpstreamError(msg, status_code=response.status_code) from e

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()
