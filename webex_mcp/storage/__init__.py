"""Token store package: records, the store protocol and its backends."""

from .base import TokenStore
from .factory import create_and_initialize_store, create_store, default_sqlite_path
from .memory import MemoryStore
from .models import (
    AuthCodeRecord,
    PendingAuth,
    RegisteredClient,
    RegistrationRequest,
    TokenRecord,
)
from .postgres import PostgresStore
from .sqlite import SQLiteStore

__all__ = [
    "AuthCodeRecord",
    "MemoryStore",
    "PendingAuth",
    "PostgresStore",
    "RegisteredClient",
    "RegistrationRequest",
    "SQLiteStore",
    "TokenRecord",
    "TokenStore",
    "create_and_initialize_store",
    "create_store",
    "default_sqlite_path",
]
