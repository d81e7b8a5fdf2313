"""
Shared SQLAlchemy schema and store logic for the relational backends.

Tables:
  - tokens: opaque token -> Webex access/refresh tokens
  - auth_codes: downstream authorization codes awaiting exchange
  - pending_auths: in-flight authorizations keyed by internal state
  - clients: registered OAuth clients (list columns hold JSON arrays)

SQLAlchemy engines are synchronous, so every call runs in the event loop's
default executor. Backends differ only in how they build the engine and in
how a row is atomically consumed.
"""

import asyncio
import functools
import json
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy import (
    Column,
    Connection,
    Engine,
    Float,
    Index,
    Integer,
    MetaData,
    Row,
    String,
    Table,
    Text,
    delete,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError

from webex_mcp.core.constants import OPAQUE_TOKEN_BYTES, PENDING_AUTH_TTL
from webex_mcp.core.credentials import generate_secure_token
from webex_mcp.core.exceptions import StorageError

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

T = TypeVar("T")

metadata = MetaData()

tokens_table = Table(
    "tokens",
    metadata,
    Column("opaque_token", String(128), primary_key=True),
    Column("webex_access_token", Text, nullable=False),
    Column("webex_refresh_token", Text, nullable=False),
    Column("expires_at", Float, nullable=False),
    Column("user_id", Text),
    Column("created_at", Float, nullable=False),
)

auth_codes_table = Table(
    "auth_codes",
    metadata,
    Column("code", String(128), primary_key=True),
    Column("client_id", Text, nullable=False),
    Column("redirect_uri", Text, nullable=False),
    Column("code_challenge", Text),
    Column("code_challenge_method", String(16)),
    Column("code_verifier", Text),
    Column("webex_access_token", Text, nullable=False),
    Column("webex_refresh_token", Text, nullable=False),
    Column("webex_expires_in", Integer, nullable=False),
    Column("created_at", Float, nullable=False),
    Column("expires_at", Float, nullable=False),
    Index("ix_auth_codes_expires_at", "expires_at"),
)

pending_auths_table = Table(
    "pending_auths",
    metadata,
    Column("state", String(128), primary_key=True),
    Column("client_id", Text, nullable=False),
    Column("client_redirect_uri", Text, nullable=False),
    Column("client_state", Text),
    Column("code_challenge", Text),
    Column("code_challenge_method", String(16)),
    Column("webex_code_verifier", Text, nullable=False),
    Column("created_at", Float, nullable=False),
    Index("ix_pending_auths_created_at", "created_at"),
)

clients_table = Table(
    "clients",
    metadata,
    Column("client_id", String(128), primary_key=True),
    Column("client_secret", Text),
    Column("redirect_uris", Text, nullable=False),
    Column("client_name", Text),
    Column("token_endpoint_auth_method", String(64)),
    Column("grant_types", Text, nullable=False),
    Column("response_types", Text, nullable=False),
    Column("created_at", Float, nullable=False),
)

_CLIENT_LIST_COLUMNS = ("redirect_uris", "grant_types", "response_types")


def client_to_row(client: RegisteredClient) -> dict[str, Any]:
    row = client.model_dump()
    for column in _CLIENT_LIST_COLUMNS:
        row[column] = json.dumps(row[column])
    return row


def row_to_client(row: Row) -> RegisteredClient:
    data = dict(row._mapping)
    for column in _CLIENT_LIST_COLUMNS:
        data[column] = json.loads(data[column]) if data[column] else []
    if data.get("token_endpoint_auth_method") is None:
        data["token_endpoint_auth_method"] = "none"
    return RegisteredClient.model_validate(data)


class SQLStore:
    """
    TokenStore implementation on top of a SQLAlchemy engine.

    Subclasses provide the engine and ``_consume_row``, the single place
    where dialects differ in how a row is read and deleted atomically.
    """

    backend_name = "sql"

    def __init__(self, engine: Engine, cleanup_interval: float = 60.0):
        self._engine = engine
        self._sweeper = PeriodicSweeper(
            f"{self.backend_name}-store", cleanup_interval, self.purge_expired
        )

    # ---- Execution helpers ----

    def _call(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking store operation. Overridden to add locking."""
        return func(*args)

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, functools.partial(self._call, func, *args)
            )
        except SQLAlchemyError as e:
            # Statement parameters may hold tokens, so only the type is surfaced
            logger.error(
                "%s store operation %s failed: %s",
                self.backend_name,
                func.__name__,
                type(e).__name__,
            )
            msg = f"{self.backend_name} store operation {func.__name__} failed"
            raise StorageError(msg) from e

    def _consume_row(self, conn: Connection, table: Table, key_column: Column, key: str) -> Row | None:
        """Read and delete one row inside the caller's transaction."""
        raise NotImplementedError

    def _consume(self, table: Table, key_column: Column, key: str) -> Row | None:
        with self._engine.begin() as conn:
            return self._consume_row(conn, table, key_column, key)

    # ---- Lifecycle ----

    def _create_tables(self) -> None:
        metadata.create_all(self._engine)

    async def initialize(self) -> None:
        await self._run(self._create_tables)
        self._sweeper.start()
        logger.info("Initialized %s token store", self.backend_name)

    async def close(self) -> None:
        await self._sweeper.stop()
        self._engine.dispose()
        logger.info("%s token store closed", self.backend_name)

    # ---- Token records ----

    def _insert_token(self, record: TokenRecord) -> None:
        with self._engine.begin() as conn:
            conn.execute(tokens_table.insert().values(**record.model_dump()))

    async def store_token(
        self,
        webex_access_token: str,
        webex_refresh_token: str,
        expires_in: int,
    ) -> str:
        now = time.time()
        record = TokenRecord(
            opaque_token=generate_secure_token(OPAQUE_TOKEN_BYTES),
            webex_access_token=webex_access_token,
            webex_refresh_token=webex_refresh_token,
            expires_at=now + expires_in,
            created_at=now,
        )
        await self._run(self._insert_token, record)
        return record.opaque_token

    def _select_token(self, opaque_token: str) -> TokenRecord | None:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(tokens_table).where(tokens_table.c.opaque_token == opaque_token)
            ).first()
        return TokenRecord.model_validate(dict(row._mapping)) if row else None

    async def lookup_token(self, opaque_token: str) -> TokenRecord | None:
        return await self._run(self._select_token, opaque_token)

    def _update_token(
        self,
        opaque_token: str,
        webex_access_token: str,
        webex_refresh_token: str,
        expires_at: float,
    ) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(tokens_table)
                .where(tokens_table.c.opaque_token == opaque_token)
                .values(
                    webex_access_token=webex_access_token,
                    webex_refresh_token=webex_refresh_token,
                    expires_at=expires_at,
                )
            )

    async def update_webex_token(
        self,
        opaque_token: str,
        webex_access_token: str,
        webex_refresh_token: str,
        expires_in: int,
    ) -> None:
        await self._run(
            self._update_token,
            opaque_token,
            webex_access_token,
            webex_refresh_token,
            time.time() + expires_in,
        )

    def _delete_token(self, opaque_token: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                delete(tokens_table).where(tokens_table.c.opaque_token == opaque_token)
            )

    async def revoke_token(self, opaque_token: str) -> None:
        await self._run(self._delete_token, opaque_token)

    # ---- Authorization codes ----

    def _insert_auth_code(self, record: AuthCodeRecord) -> None:
        with self._engine.begin() as conn:
            conn.execute(auth_codes_table.insert().values(**record.model_dump()))

    async def store_auth_code(self, record: AuthCodeRecord) -> None:
        await self._run(self._insert_auth_code, record)

    async def consume_auth_code(self, code: str) -> AuthCodeRecord | None:
        row = await self._run(
            self._consume, auth_codes_table, auth_codes_table.c.code, code
        )
        if row is None:
            return None
        # Checked only after the delete has committed
        record = AuthCodeRecord.model_validate(dict(row._mapping))
        if record.is_expired():
            return None
        return record

    # ---- Pending authorizations ----

    def _insert_pending_auth(self, pending: PendingAuth) -> None:
        with self._engine.begin() as conn:
            conn.execute(pending_auths_table.insert().values(**pending.model_dump()))

    async def store_pending_auth(self, pending: PendingAuth) -> None:
        await self._run(self._insert_pending_auth, pending)

    async def consume_pending_auth(self, state: str) -> PendingAuth | None:
        row = await self._run(
            self._consume, pending_auths_table, pending_auths_table.c.state, state
        )
        if row is None:
            return None
        pending = PendingAuth.model_validate(dict(row._mapping))
        if pending.is_expired():
            return None
        return pending

    # ---- Client registry ----

    def _insert_client(self, client: RegisteredClient) -> None:
        with self._engine.begin() as conn:
            conn.execute(clients_table.insert().values(**client_to_row(client)))

    async def register_client(self, request: RegistrationRequest) -> RegisteredClient:
        client = build_registered_client(request)
        await self._run(self._insert_client, client)
        return client

    def _insert_client_ignore_conflict(self, conn: Connection, client: RegisteredClient) -> bool:
        """Insert a client unless the client_id already exists. True if inserted."""
        raise NotImplementedError

    def _upsert_client_redirect_uri(self, client_id: str, redirect_uri: str) -> None:
        with self._engine.begin() as conn:
            # Insert first: a concurrent first registration then conflicts and
            # falls through to the locked append below.
            if self._insert_client_ignore_conflict(
                conn, build_static_client(client_id, redirect_uri)
            ):
                return
            row = conn.execute(
                select(clients_table)
                .where(clients_table.c.client_id == client_id)
                .with_for_update()
            ).first()
            client = row_to_client(row)
            if client.allows_redirect_uri(redirect_uri):
                return
            client.redirect_uris.append(redirect_uri)
            conn.execute(
                update(clients_table)
                .where(clients_table.c.client_id == client_id)
                .values(redirect_uris=json.dumps(client.redirect_uris))
            )

    async def register_client_with_id(self, client_id: str, redirect_uri: str) -> None:
        await self._run(self._upsert_client_redirect_uri, client_id, redirect_uri)

    def _select_client(self, client_id: str) -> RegisteredClient | None:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(clients_table).where(clients_table.c.client_id == client_id)
            ).first()
        return row_to_client(row) if row else None

    async def lookup_client(self, client_id: str) -> RegisteredClient | None:
        return await self._run(self._select_client, client_id)

    async def validate_redirect_uri(self, client_id: str, redirect_uri: str) -> bool:
        client = await self.lookup_client(client_id)
        return client is not None and client.allows_redirect_uri(redirect_uri)

    # ---- Maintenance ----

    def _delete_expired(self, now: float) -> int:
        with self._engine.begin() as conn:
            codes = conn.execute(
                delete(auth_codes_table).where(auth_codes_table.c.expires_at < now)
            )
            pending = conn.execute(
                delete(pending_auths_table).where(
                    pending_auths_table.c.created_at < now - PENDING_AUTH_TTL
                )
            )
        return (codes.rowcount or 0) + (pending.rowcount or 0)

    async def purge_expired(self) -> int:
        return await self._run(self._delete_expired, time.time())
