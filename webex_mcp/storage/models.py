"""Pydantic models for OAuth entity storage.

These models define the records every token store backend persists:
opaque token records, downstream authorization codes, pending upstream
authorizations and registered clients. Timestamps are Unix epoch seconds.
"""

import time

from pydantic import BaseModel, Field

from webex_mcp.core.constants import AUTH_CODE_TTL, PENDING_AUTH_TTL


class TokenRecord(BaseModel):
    """Webex tokens stored behind an opaque Bearer token."""

    opaque_token: str
    webex_access_token: str
    webex_refresh_token: str
    expires_at: float  # expiry of webex_access_token
    user_id: str | None = None
    created_at: float = Field(default_factory=time.time)

    def expires_within(self, seconds: float, now: float | None = None) -> bool:
        """True if the Webex access token expires within ``seconds``."""
        now = time.time() if now is None else now
        return now + seconds >= self.expires_at

    def expires_in(self, now: float | None = None) -> int:
        """Remaining Webex token lifetime in whole seconds (never negative)."""
        now = time.time() if now is None else now
        return max(0, int(self.expires_at - now))


class AuthCodeRecord(BaseModel):
    """Downstream authorization code carrying already-obtained Webex tokens."""

    code: str
    client_id: str
    redirect_uri: str
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    code_verifier: str | None = None
    webex_access_token: str
    webex_refresh_token: str
    webex_expires_in: int
    created_at: float = Field(default_factory=time.time)
    expires_at: float = Field(default_factory=lambda: time.time() + AUTH_CODE_TTL)

    def is_expired(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now > self.expires_at


class PendingAuth(BaseModel):
    """State of an in-flight /authorize -> Webex -> /callback round trip."""

    state: str  # internal correlation value sent upstream
    client_id: str
    client_redirect_uri: str
    client_state: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None
    webex_code_verifier: str
    created_at: float = Field(default_factory=time.time)

    def is_expired(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now - self.created_at > PENDING_AUTH_TTL


class RegisteredClient(BaseModel):
    """OAuth client registered dynamically (RFC 7591) or from configuration."""

    client_id: str
    client_secret: str | None = None
    redirect_uris: list[str] = Field(default_factory=list)
    client_name: str | None = None
    token_endpoint_auth_method: str = "none"
    grant_types: list[str] = Field(default_factory=lambda: ["authorization_code"])
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    created_at: float = Field(default_factory=time.time)

    def allows_redirect_uri(self, redirect_uri: str) -> bool:
        """Exact string match only: no prefix, wildcard or normalisation."""
        return redirect_uri in self.redirect_uris


class RegistrationRequest(BaseModel):
    """Dynamic Client Registration request body (RFC 7591)."""

    redirect_uris: list[str] = Field(default_factory=list)
    client_name: str | None = None
    token_endpoint_auth_method: str | None = None
    grant_types: list[str] | None = None
    response_types: list[str] | None = None
