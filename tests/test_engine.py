# ==============================================================================
# ENGINE TESTS
# ==============================================================================
# Tests for engine construction and the database factory
# ==============================================================================

import pytest
from sqlalchemy import inspect

from aiserve.core.exceptions import DatabaseError
from aiserve.database.engine import build_engine, create_tables, normalize_url
from aiserve.database.factory import DatabaseFactory


class TestEngine:
    """Tests for build_engine and helpers."""

    def test_normalize_url_adds_async_driver(self):
        """Test sync URLs are rewritten to async drivers."""
        assert normalize_url("sqlite:///./a.db") == "sqlite+aiosqlite:///./a.db"
        assert normalize_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
        assert normalize_url("sqlite+aiosqlite:///./a.db") == "sqlite+aiosqlite:///./a.db"

    @pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:"])
    def test_in_memory_sqlite_rejected(self, url):
        """Test in-memory SQLite cannot back a pool."""
        with pytest.raises(ValueError):
            build_engine(url)

    @pytest.mark.asyncio
    async def test_pool_configuration(self, tmp_path):
        """Test pool size and timeout come from arguments."""
        engine = build_engine(
            f"sqlite:///{tmp_path / 'engine.db'}",
            pool_size=3,
            max_overflow=2,
            pool_timeout=1.5,
        )
        try:
            assert engine.sync_engine.pool.size() == 3
            assert engine.sync_engine.pool._timeout == 1.5
            assert engine.url.drivername == "sqlite+aiosqlite"
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_create_tables(self, tmp_path):
        """Test all model tables are created."""
        engine = build_engine(f"sqlite:///{tmp_path / 'tables.db'}")
        try:
            await create_tables(engine)
            async with engine.connect() as conn:
                tables = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
            assert {"model_endpoints", "predictions"} <= set(tables)
        finally:
            await engine.dispose()


class TestDatabaseFactory:
    """Tests for DatabaseFactory lifecycle."""

    @pytest.mark.asyncio
    async def test_get_manager_before_initialize(self):
        """Test get_manager requires initialize."""
        DatabaseFactory.reset()

        with pytest.raises(RuntimeError):
            DatabaseFactory.get_manager()
        assert await DatabaseFactory.health_check() is False

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, tmp_path):
        """Test a second initialize returns the cached manager."""
        DatabaseFactory.reset()
        url = f"sqlite+aiosqlite:///{tmp_path / 'factory.db'}"
        try:
            first = await DatabaseFactory.initialize(url)
            second = await DatabaseFactory.initialize(url)

            assert first is second
            assert DatabaseFactory.is_initialized()
            assert await DatabaseFactory.health_check() is True
        finally:
            await DatabaseFactory.shutdown()

        assert not DatabaseFactory.is_initialized()

    @pytest.mark.asyncio
    async def test_initialize_failure_wrapped(self):
        """Test setup errors surface as DatabaseError."""
        DatabaseFactory.reset()

        with pytest.raises(DatabaseError):
            await DatabaseFactory.initialize("sqlite:///:memory:")

        assert not DatabaseFactory.is_initialized()
