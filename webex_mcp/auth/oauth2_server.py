"""
OAuth 2.1 authorization server proxy for MCP.

MCP clients only ever talk to this server. Each authorization is bridged to
Webex with a second, server-generated PKCE pair, and the Webex tokens are
hidden behind an opaque bearer token:

    NONE --/authorize--> PENDING --/callback--> CODE_ISSUED --/token--> TOKEN_ISSUED

Supports Dynamic Client Registration (RFC 7591) and token revocation
(RFC 7009). The refresh grant takes the opaque token itself and returns it
unchanged; only the Webex tokens behind it rotate.
"""

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel

from webex_mcp.core.constants import (
    CODE_CHALLENGE_METHODS,
    SUPPORTED_GRANT_TYPES,
    SUPPORTED_RESPONSE_TYPES,
    TOKEN_ENDPOINT_AUTH_METHODS,
)
from webex_mcp.core.credentials import (
    generate_auth_code,
    generate_code_verifier,
    generate_s256_challenge,
    generate_state,
    redact,
    verify_code_challenge,
)
from webex_mcp.core.exceptions import (
    InvalidClientMetadataError,
    InvalidGrantError,
    InvalidRequestError,
    UnsupportedResponseTypeError,
    UpstreamError,
)
from webex_mcp.storage.base import TokenStore
from webex_mcp.storage.models import (
    AuthCodeRecord,
    PendingAuth,
    RegisteredClient,
    RegistrationRequest,
    TokenRecord,
)

from .upstream import WebexOAuthClient

logger = logging.getLogger(__name__)

# Error codes a client can receive from the authorization endpoint (RFC 6749 4.1.2.1)
AUTHORIZATION_ERROR_CODES = frozenset(
    {
        "access_denied",
        "invalid_request",
        "invalid_scope",
        "server_error",
        "temporarily_unavailable",
        "unauthorized_client",
        "unsupported_response_type",
    }
)


def _normalize_challenge_method(method: str | None) -> str:
    """Canonical spelling of a PKCE method: "S256" or "plain" (the default)."""
    if not method or method.lower() == "plain":
        return "plain"
    return "S256" if method.upper() == "S256" else method


class TokenResponse(BaseModel):
    """Token endpoint response."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: str | None = None


def append_query(url: str, params: dict[str, str | None]) -> str:
    """Add query parameters to ``url``, keeping any it already has."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v)
    return urlunsplit(parts._replace(query=urlencode(query)))


class OAuthProxyServer:
    """
    Authorization server that proxies every grant to Webex.

    Features:
    - Authorization code flow with PKCE towards Webex on every authorization
    - Optional PKCE verification on the downstream (MCP client) leg
    - Opaque bearer tokens with transparent upstream refresh
    - Dynamic Client Registration (RFC 7591)
    """

    def __init__(
        self,
        store: TokenStore,
        upstream: WebexOAuthClient,
        enforce_downstream_pkce: bool = False,
    ):
        """
        Initialize the proxy.

        Args:
            store: Token store shared with the auth middleware
            upstream: Client for the Webex OAuth endpoints
            enforce_downstream_pkce: Verify the client's code_verifier at /token.
                Off by default: the challenge is recorded but not checked.
        """
        self.store = store
        self.upstream = upstream
        self.enforce_downstream_pkce = enforce_downstream_pkce

    # ========================================
    # Client registration
    # ========================================

    async def register_client(self, request: RegistrationRequest) -> RegisteredClient:
        """
        Register a new OAuth client (Dynamic Client Registration - RFC 7591).

        Args:
            request: Parsed registration body

        Returns:
            Registered client, including a secret for confidential clients

        Raises:
            InvalidClientMetadataError: If the metadata is unusable
        """
        if not request.redirect_uris:
            msg = "redirect_uris is required"
            raise InvalidClientMetadataError(msg)
        for uri in request.redirect_uris:
            parts = urlsplit(uri)
            if not parts.scheme or not parts.netloc or parts.fragment:
                msg = f"Invalid redirect_uri: {uri}"
                raise InvalidClientMetadataError(msg)

        auth_method = request.token_endpoint_auth_method
        if auth_method and auth_method not in TOKEN_ENDPOINT_AUTH_METHODS:
            msg = f"Unsupported token_endpoint_auth_method: {auth_method}"
            raise InvalidClientMetadataError(msg)
        unsupported = set(request.grant_types or []) - set(SUPPORTED_GRANT_TYPES)
        if unsupported:
            msg = f"Unsupported grant_types: {', '.join(sorted(unsupported))}"
            raise InvalidClientMetadataError(msg)
        unsupported = set(request.response_types or []) - set(SUPPORTED_RESPONSE_TYPES)
        if unsupported:
            msg = f"Unsupported response_types: {', '.join(sorted(unsupported))}"
            raise InvalidClientMetadataError(msg)

        client = await self.store.register_client(request)
        logger.info(
            "Registered client %s (%s) redirect_uris=%s",
            client.client_id,
            client.client_name or "unnamed",
            client.redirect_uris,
        )
        return client

    # ========================================
    # /authorize
    # ========================================

    async def begin_authorization(
        self,
        response_type: str | None,
        client_id: str | None,
        redirect_uri: str | None,
        state: str | None = None,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
    ) -> str:
        """
        Start an authorization and return the Webex URL to redirect to.

        The client's own PKCE parameters are only recorded. Webex always
        receives a fresh server-side challenge whose verifier never leaves
        the store.

        Raises:
            UnsupportedResponseTypeError: response_type is not "code"
            InvalidRequestError: Missing parameters, unknown client or
                unregistered redirect_uri
        """
        if response_type not in SUPPORTED_RESPONSE_TYPES:
            msg = "Only response_type=code is supported"
            raise UnsupportedResponseTypeError(msg)
        if not client_id:
            msg = "client_id is required"
            raise InvalidRequestError(msg)
        if not redirect_uri:
            msg = "redirect_uri is required"
            raise InvalidRequestError(msg)
        if not await self.store.validate_redirect_uri(client_id, redirect_uri):
            logger.warning("Rejected /authorize for client %s: redirect_uri not registered", client_id)
            msg = "Unknown client_id or redirect_uri not registered"
            raise InvalidRequestError(msg)

        if code_challenge:
            code_challenge_method = _normalize_challenge_method(code_challenge_method)
            if code_challenge_method not in CODE_CHALLENGE_METHODS:
                msg = f"Unsupported code_challenge_method: {code_challenge_method}"
                raise InvalidRequestError(msg)
        elif self.enforce_downstream_pkce:
            msg = "code_challenge is required"
            raise InvalidRequestError(msg)

        internal_state = generate_state()
        webex_verifier = generate_code_verifier()

        await self.store.store_pending_auth(
            PendingAuth(
                state=internal_state,
                client_id=client_id,
                client_redirect_uri=redirect_uri,
                client_state=state,
                code_challenge=code_challenge,
                code_challenge_method=code_challenge_method if code_challenge else None,
                webex_code_verifier=webex_verifier,
            )
        )
        logger.info(
            "Authorization started for client %s (state %s)",
            client_id,
            redact(internal_state),
        )
        return self.upstream.authorize_url(internal_state, generate_s256_challenge(webex_verifier))

    # ========================================
    # /callback
    # ========================================

    async def complete_callback(
        self,
        code: str | None,
        state: str | None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> str:
        """
        Finish the Webex leg and return the client redirect URL.

        On success the URL carries a new downstream code and the client's
        original state. When Webex reports an error and the pending
        authorization is still valid, the error is passed back to the
        client's redirect URI instead.

        Raises:
            InvalidRequestError: Missing parameters or unknown/expired state
            UpstreamError: Webex rejected the code exchange
        """
        if error:
            logger.warning("Webex authorization error: %s (%s)", error, error_description or "")
            pending = await self.store.consume_pending_auth(state) if state else None
            if pending is None:
                msg = f"Webex authorization failed: {error}"
                raise InvalidRequestError(msg)
            return append_query(
                pending.client_redirect_uri,
                {
                    "error": error if error in AUTHORIZATION_ERROR_CODES else "access_denied",
                    "state": pending.client_state,
                },
            )

        if not code or not state:
            msg = "Missing code or state parameter"
            raise InvalidRequestError(msg)

        pending = await self.store.consume_pending_auth(state)
        if pending is None:
            logger.warning("Callback with unknown or expired state %s", redact(state))
            msg = "Invalid or expired state parameter"
            raise InvalidRequestError(msg)

        tokens = await self.upstream.exchange_code(code, pending.webex_code_verifier)

        our_code = generate_auth_code()
        await self.store.store_auth_code(
            AuthCodeRecord(
                code=our_code,
                client_id=pending.client_id,
                redirect_uri=pending.client_redirect_uri,
                code_challenge=pending.code_challenge,
                code_challenge_method=pending.code_challenge_method,
                webex_access_token=tokens.access_token,
                webex_refresh_token=tokens.refresh_token,
                webex_expires_in=tokens.expires_in,
            )
        )
        logger.info(
            "Issued authorization code %s to client %s",
            redact(our_code),
            pending.client_id,
        )
        return append_query(
            pending.client_redirect_uri,
            {"code": our_code, "state": pending.client_state},
        )

    # ========================================
    # /token
    # ========================================

    async def exchange_authorization_code(
        self,
        code: str | None,
        client_id: str | None,
        redirect_uri: str | None = None,
        code_verifier: str | None = None,
    ) -> TokenResponse:
        """
        Exchange a downstream authorization code for an opaque token.

        The code is consumed before any other check, so a failed exchange
        still burns it.

        Raises:
            InvalidRequestError: Missing code or client_id
            InvalidGrantError: Unknown, expired or mismatched code
        """
        if not code or not client_id:
            msg = "code and client_id are required"
            raise InvalidRequestError(msg)

        record = await self.store.consume_auth_code(code)
        if record is None:
            logger.warning("Token request with invalid or expired code %s", redact(code))
            msg = "Invalid or expired authorization code"
            raise InvalidGrantError(msg)
        if record.client_id != client_id:
            msg = "client_id mismatch"
            raise InvalidGrantError(msg)
        if redirect_uri and redirect_uri != record.redirect_uri:
            msg = "redirect_uri mismatch"
            raise InvalidGrantError(msg)

        if self.enforce_downstream_pkce and not verify_code_challenge(
            code_verifier or "", record.code_challenge or "", record.code_challenge_method
        ):
            msg = "Invalid code_verifier"
            raise InvalidGrantError(msg)

        opaque_token = await self.store.store_token(
            record.webex_access_token,
            record.webex_refresh_token,
            record.webex_expires_in,
        )
        logger.info("Issued token %s to client %s", redact(opaque_token), client_id)
        return TokenResponse(
            access_token=opaque_token,
            expires_in=record.webex_expires_in,
            refresh_token=opaque_token,
        )

    async def exchange_refresh_token(self, refresh_token: str | None) -> TokenResponse:
        """
        Refresh the Webex tokens behind an opaque token.

        ``refresh_token`` is the opaque token; the same value is returned.

        Raises:
            InvalidRequestError: Missing refresh_token
            InvalidGrantError: Unknown token or Webex refused the refresh
        """
        if not refresh_token:
            msg = "refresh_token is required"
            raise InvalidRequestError(msg)

        record = await self.store.lookup_token(refresh_token)
        if record is None:
            msg = "Invalid refresh token"
            raise InvalidGrantError(msg)

        try:
            record = await self.refresh_record(record)
        except UpstreamError as e:
            msg = "Failed to refresh token with Webex"
            raise InvalidGrantError(msg) from e

        return TokenResponse(
            access_token=record.opaque_token,
            expires_in=record.expires_in(),
            refresh_token=record.opaque_token,
        )

    async def refresh_record(self, record: TokenRecord) -> TokenRecord:
        """
        Rotate the Webex tokens behind ``record`` and persist them.

        Concurrent callers holding the same near-expiry record each refresh
        independently; no coalescing is done.

        Returns:
            Updated copy of the record

        Raises:
            UpstreamError: Webex refused the refresh
        """
        tokens = await self.upstream.refresh(record.webex_refresh_token)
        await self.store.update_webex_token(
            record.opaque_token,
            tokens.access_token,
            tokens.refresh_token,
            tokens.expires_in,
        )
        logger.info("Refreshed Webex token behind %s", redact(record.opaque_token))
        refreshed = await self.store.lookup_token(record.opaque_token)
        if refreshed is None:
            # Revoked between refresh and re-read
            msg = "Token was revoked during refresh"
            raise InvalidGrantError(msg)
        return refreshed

    # ========================================
    # /revoke
    # ========================================

    async def revoke(self, token: str | None) -> None:
        """Revoke an opaque token (RFC 7009). Unknown tokens are ignored."""
        if not token:
            msg = "token is required"
            raise InvalidRequestError(msg)
        await self.store.revoke_token(token)
        logger.info("Revoked token %s", redact(token))
