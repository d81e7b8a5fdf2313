"""SQLite token store (embedded, single file).

Consumption uses ``DELETE ... RETURNING`` so the read and the delete are a
single statement; this needs SQLite 3.35 or newer.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from sqlalchemy import Column, Connection, Row, Table, create_engine, delete, event
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.pool import StaticPool

from .models import RegisteredClient
from .sql import SQLStore, client_to_row, clients_table

logger = logging.getLogger(__name__)

T = TypeVar("T")

MEMORY_DSN = ":memory:"


def _create_sqlite_engine(path: str):
    if path == MEMORY_DSN:
        # One shared connection, otherwise every pooled connection gets its own database
        return create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    db_path = Path(path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


class SQLiteStore(SQLStore):
    """
    SQLite implementation of the TokenStore protocol.

    SQLite allows one writer at a time, so calls from executor threads are
    serialized on a process-local lock instead of contending for the file lock.
    """

    backend_name = "sqlite"

    def __init__(self, path: str, cleanup_interval: float = 60.0):
        self.path = path
        self._db_lock = threading.Lock()
        super().__init__(_create_sqlite_engine(path), cleanup_interval)
        logger.info("Using SQLite token store at %s", path)

    def _call(self, func: Callable[..., T], *args: Any) -> T:
        with self._db_lock:
            return func(*args)

    def _consume_row(self, conn: Connection, table: Table, key_column: Column, key: str) -> Row | None:
        stmt = delete(table).where(key_column == key).returning(*table.c)
        return conn.execute(stmt).first()

    def _insert_client_ignore_conflict(self, conn: Connection, client: RegisteredClient) -> bool:
        stmt = sqlite_insert(clients_table).values(**client_to_row(client))
        return conn.execute(stmt.on_conflict_do_nothing(index_elements=["client_id"])).rowcount == 1
