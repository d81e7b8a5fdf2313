"""
Base protocol/interface for token store implementations.
All store backends must implement this protocol.
"""

from typing import Protocol, runtime_checkable

from .models import (
    AuthCodeRecord,
    PendingAuth,
    RegisteredClient,
    RegistrationRequest,
    TokenRecord,
)


@runtime_checkable
class TokenStore(Protocol):
    """
    Protocol defining the persistence contract for OAuth state.
    MemoryStore, SQLiteStore and PostgresStore must behave identically for
    every method, including the delete-then-check-expiry ordering of the
    consume operations.
    """

    async def initialize(self) -> None:
        """
        Create tables if needed and start the expiry sweeper.
        This should be called once when the application starts.
        """
        ...

    # ---- Token records ----

    async def store_token(
        self,
        webex_access_token: str,
        webex_refresh_token: str,
        expires_in: int,
    ) -> str:
        """
        Persist a new token record.

        Args:
            webex_access_token: Upstream access token
            webex_refresh_token: Upstream refresh token
            expires_in: Upstream access token lifetime in seconds

        Returns:
            The newly generated opaque token (64 hex characters)
        """
        ...

    async def lookup_token(self, opaque_token: str) -> TokenRecord | None:
        """Return the record behind an opaque token, or None."""
        ...

    async def update_webex_token(
        self,
        opaque_token: str,
        webex_access_token: str,
        webex_refresh_token: str,
        expires_in: int,
    ) -> None:
        """Replace the upstream tokens behind an opaque token after a refresh."""
        ...

    async def revoke_token(self, opaque_token: str) -> None:
        """Delete an opaque token. Unknown tokens are ignored."""
        ...

    # ---- Authorization codes ----

    async def store_auth_code(self, record: AuthCodeRecord) -> None:
        """Persist a downstream authorization code."""
        ...

    async def consume_auth_code(self, code: str) -> AuthCodeRecord | None:
        """
        Atomically delete and return an authorization code.

        The row is removed before its expiry is checked, so an expired code
        is destroyed too and reported as not found.
        """
        ...

    # ---- Pending authorizations ----

    async def store_pending_auth(self, pending: PendingAuth) -> None:
        """Persist an in-flight authorization keyed by its internal state."""
        ...

    async def consume_pending_auth(self, state: str) -> PendingAuth | None:
        """Atomically delete and return a pending authorization (10 minute TTL)."""
        ...

    # ---- Client registry ----

    async def register_client(self, request: RegistrationRequest) -> RegisteredClient:
        """Register a new client with a generated client_id (RFC 7591)."""
        ...

    async def register_client_with_id(self, client_id: str, redirect_uri: str) -> None:
        """Register a known client_id, or append redirect_uri to an existing one."""
        ...

    async def lookup_client(self, client_id: str) -> RegisteredClient | None:
        """Return a registered client, or None."""
        ...

    async def validate_redirect_uri(self, client_id: str, redirect_uri: str) -> bool:
        """True only if the client exists and lists redirect_uri verbatim."""
        ...

    # ---- Maintenance / lifecycle ----

    async def purge_expired(self) -> int:
        """
        Delete expired authorization codes and stale pending authorizations.

        Returns:
            Number of records removed
        """
        ...

    async def close(self) -> None:
        """Stop the sweeper, then release connections."""
        ...
