"""In-memory token store.

All state lives in plain dicts guarded by a single ``asyncio.Lock``, which
makes every consume operation linearizable. State is lost on restart.
"""

import asyncio
import logging
import time

from webex_mcp.core.constants import OPAQUE_TOKEN_BYTES, PENDING_AUTH_TTL
from webex_mcp.core.credentials import generate_secure_token

from .models import (
    AuthCodeRecord,
    PendingAuth,
    RegisteredClient,
    RegistrationRequest,
    TokenRecord,
)
from .registry import build_registered_client, build_static_client
from .sweeper import PeriodicSweeper

logger = logging.getLogger(__name__)


class MemoryStore:
    """
    In-memory implementation of the TokenStore protocol.

    Records are copied on the way in and out so callers never share a
    mutable record with the store.
    """

    def __init__(self, cleanup_interval: float = 60.0):
        self._lock = asyncio.Lock()
        self._tokens: dict[str, TokenRecord] = {}
        self._auth_codes: dict[str, AuthCodeRecord] = {}
        self._pending_auths: dict[str, PendingAuth] = {}
        self._clients: dict[str, RegisteredClient] = {}
        self._sweeper = PeriodicSweeper("memory-store", cleanup_interval, self.purge_expired)

    async def initialize(self) -> None:
        self._sweeper.start()
        logger.info("Initialized in-memory token store")

    # ---- Token records ----

    async def store_token(
        self,
        webex_access_token: str,
        webex_refresh_token: str,
        expires_in: int,
    ) -> str:
        opaque = generate_secure_token(OPAQUE_TOKEN_BYTES)
        now = time.time()
        record = TokenRecord(
            opaque_token=opaque,
            webex_access_token=webex_access_token,
            webex_refresh_token=webex_refresh_token,
            expires_at=now + expires_in,
            created_at=now,
        )
        async with self._lock:
            self._tokens[opaque] = record
        return opaque

    async def lookup_token(self, opaque_token: str) -> TokenRecord | None:
        async with self._lock:
            record = self._tokens.get(opaque_token)
            return record.model_copy() if record else None

    async def update_webex_token(
        self,
        opaque_token: str,
        webex_access_token: str,
        webex_refresh_token: str,
        expires_in: int,
    ) -> None:
        async with self._lock:
            record = self._tokens.get(opaque_token)
            if record is None:
                return
            self._tokens[opaque_token] = record.model_copy(
                update={
                    "webex_access_token": webex_access_token,
                    "webex_refresh_token": webex_refresh_token,
                    "expires_at": time.time() + expires_in,
                },
            )

    async def revoke_token(self, opaque_token: str) -> None:
        async with self._lock:
            self._tokens.pop(opaque_token, None)

    # ---- Authorization codes ----

    async def store_auth_code(self, record: AuthCodeRecord) -> None:
        async with self._lock:
            self._auth_codes[record.code] = record.model_copy()

    async def consume_auth_code(self, code: str) -> AuthCodeRecord | None:
        async with self._lock:
            record = self._auth_codes.pop(code, None)
        if record is None or record.is_expired():
            return None
        return record

    # ---- Pending authorizations ----

    async def store_pending_auth(self, pending: PendingAuth) -> None:
        async with self._lock:
            self._pending_auths[pending.state] = pending.model_copy()

    async def consume_pending_auth(self, state: str) -> PendingAuth | None:
        async with self._lock:
            pending = self._pending_auths.pop(state, None)
        if pending is None or pending.is_expired():
            return None
        return pending

    # ---- Client registry ----

    async def register_client(self, request: RegistrationRequest) -> RegisteredClient:
        client = build_registered_client(request)
        async with self._lock:
            self._clients[client.client_id] = client
        return client.model_copy(deep=True)

    async def register_client_with_id(self, client_id: str, redirect_uri: str) -> None:
        async with self._lock:
            existing = self._clients.get(client_id)
            if existing is None:
                self._clients[client_id] = build_static_client(client_id, redirect_uri)
            elif redirect_uri not in existing.redirect_uris:
                existing.redirect_uris.append(redirect_uri)

    async def lookup_client(self, client_id: str) -> RegisteredClient | None:
        async with self._lock:
            client = self._clients.get(client_id)
            return client.model_copy(deep=True) if client else None

    async def validate_redirect_uri(self, client_id: str, redirect_uri: str) -> bool:
        async with self._lock:
            client = self._clients.get(client_id)
            return client is not None and client.allows_redirect_uri(redirect_uri)

    # ---- Maintenance / lifecycle ----

    async def purge_expired(self) -> int:
        now = time.time()
        async with self._lock:
            expired_codes = [k for k, v in self._auth_codes.items() if v.is_expired(now)]
            for k in expired_codes:
                del self._auth_codes[k]
            stale_pending = [
                k
                for k, v in self._pending_auths.items()
                if now - v.created_at > PENDING_AUTH_TTL
            ]
            for k in stale_pending:
                del self._pending_auths[k]
        return len(expired_codes) + len(stale_pending)

    async def close(self) -> None:
        await self._sweeper.stop()
        logger.info("In-memory token store closed")
