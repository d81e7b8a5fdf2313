"""Tests for the token store factory."""

from types import SimpleNamespace

import pytest

from webex_mcp.core.exceptions import ConfigurationError
from webex_mcp.storage import (
    MemoryStore,
    PostgresStore,
    SQLiteStore,
    create_and_initialize_store,
    create_store,
)
from webex_mcp.storage.factory import default_sqlite_path


class TestCreateStore:
    def test_default_is_memory(self):
        assert isinstance(create_store(), MemoryStore)
        assert isinstance(create_store(None), MemoryStore)

    def test_type_is_case_insensitive(self, tmp_path):
        assert isinstance(create_store("SQLite", str(tmp_path / "s.db")), SQLiteStore)

    def test_sqlite_default_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))

        store = create_store("sqlite")

        assert isinstance(store, SQLiteStore)
        assert store.path == default_sqlite_path()
        assert store.path == str(tmp_path / "mcps" / "webex-mcp" / "store.db")

    def test_postgres(self):
        store = create_store("postgres", "postgresql://u:p@localhost/db")

        assert isinstance(store, PostgresStore)

    def test_postgres_requires_dsn(self):
        with pytest.raises(ConfigurationError, match="DSN is required"):
            create_store("postgres")

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError, match="Unknown store type"):
            create_store("redis")


@pytest.mark.asyncio
async def test_create_and_initialize_registers_static_clients():
    settings = SimpleNamespace(
        store_type="memory",
        store_dsn=None,
        store_cleanup_interval=60,
        get_static_clients=lambda: [("cli", "http://localhost:3000/cb")],
    )

    store = await create_and_initialize_store(settings)
    try:
        client = await store.lookup_client("cli")
        assert client.redirect_uris == ["http://localhost:3000/cb"]
        assert await store.validate_redirect_uri("cli", "http://localhost:3000/cb")
    finally:
        await store.close()
