"""
Factory for creating token store instances based on configuration.
"""

import logging
from pathlib import Path

from webex_mcp.core.constants import (
    STORE_CLEANUP_INTERVAL_DEFAULT,
    STORE_MEMORY,
    STORE_POSTGRES,
    STORE_SQLITE,
)
from webex_mcp.core.exceptions import ConfigurationError

from .base import TokenStore
from .memory import MemoryStore
from .postgres import PostgresStore
from .sqlite import SQLiteStore

logger = logging.getLogger(__name__)


def default_sqlite_path() -> str:
    """Default SQLite location: ~/mcps/webex-mcp/store.db"""
    return str(Path.home() / "mcps" / "webex-mcp" / "store.db")


def create_store(
    store_type: str | None = STORE_MEMORY,
    dsn: str | None = None,
    cleanup_interval: float = STORE_CLEANUP_INTERVAL_DEFAULT,
) -> TokenStore:
    """
    Create a token store for the requested backend.

    Args:
        store_type: "memory" (default), "sqlite" or "postgres"
        dsn: SQLite file path or PostgreSQL URL
        cleanup_interval: Seconds between expiry sweeps

    Returns:
        An uninitialized store (call ``initialize()`` before use)

    Raises:
        ConfigurationError: Unknown store type or missing PostgreSQL DSN
    """
    store_type = (store_type or STORE_MEMORY).lower()

    if store_type == STORE_MEMORY:
        return MemoryStore(cleanup_interval=cleanup_interval)
    if store_type == STORE_SQLITE:
        if not dsn:
            dsn = default_sqlite_path()
            logger.info("Using SQLite store at default path: %s", dsn)
        return SQLiteStore(dsn, cleanup_interval=cleanup_interval)
    if store_type == STORE_POSTGRES:
        return PostgresStore(dsn or "", cleanup_interval=cleanup_interval)

    msg = f"Unknown store type {store_type!r}: must be 'memory', 'sqlite', or 'postgres'"
    raise ConfigurationError(msg)


async def create_and_initialize_store(settings) -> TokenStore:
    """
    Create a store from settings, initialize it and register static clients.

    Args:
        settings: Application settings

    Returns:
        Initialized store with its expiry sweeper running
    """
    store = create_store(
        settings.store_type,
        settings.store_dsn,
        settings.store_cleanup_interval,
    )
    await store.initialize()

    for client_id, redirect_uri in settings.get_static_clients():
        await store.register_client_with_id(client_id, redirect_uri)
        logger.info("Registered static client %s -> %s", client_id, redirect_uri)

    return store
