# ==============================================================================
# CONFTEST - Pytest Fixtures and Configuration
# ==============================================================================
# Shared fixtures for all tests
# ==============================================================================

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_TYPE"] = "sqlite"
os.environ["SQLITE_URL"] = "sqlite+aiosqlite:///./test_aiserve.db"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-32chars!"
os.environ["DB_POOL_SIZE"] = "5"
os.environ["DB_MAX_OVERFLOW"] = "0"
os.environ["DB_POOL_TIMEOUT"] = "2"
os.environ["LOG_LEVEL"] = "WARNING"

TEST_DB_PATH = "./test_aiserve.db"


def _remove_test_db() -> None:
    if os.path.exists(TEST_DB_PATH):
        try:
            os.remove(TEST_DB_PATH)
        except OSError:
            pass


# ==============================================================================
# HTTP CLIENT FIXTURES
# ==============================================================================

@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    from aiserve.database.factory import DatabaseFactory

    # Reset factory to ensure clean state
    DatabaseFactory.reset()
    _remove_test_db()

    # Import app after environment is set
    from aiserve.main import app

    # ASGITransport does not run lifespan events
    await DatabaseFactory.initialize()

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        timeout=30.0,
    ) as async_client:
        yield async_client

    await DatabaseFactory.shutdown()
    _remove_test_db()


@pytest.fixture
def make_token() -> Callable[[str], str]:
    """Issue access tokens for arbitrary client IDs."""
    from aiserve.core.security import create_access_token

    def _make(client_id: str) -> str:
        return create_access_token(subject=client_id)

    return _make


@pytest.fixture
def client_id() -> str:
    return f"client_{uuid4().hex[:8]}"


@pytest_asyncio.fixture
async def auth_client(
    client: AsyncClient,
    client_id: str,
    make_token: Callable[[str], str],
) -> AsyncGenerator[tuple[AsyncClient, str], None]:
    """
    Create authenticated client.

    Returns:
        Tuple of (client, client_id)
    """
    client.headers["Authorization"] = f"Bearer {make_token(client_id)}"

    yield client, client_id

    if "Authorization" in client.headers:
        del client.headers["Authorization"]


# ==============================================================================
# UNIT OF WORK FIXTURES
# ==============================================================================

@pytest_asyncio.fixture
async def manager_factory(
    tmp_path: Path,
) -> AsyncGenerator[Callable[..., Awaitable], None]:
    """
    Build UnitOfWorkManagers over a temporary SQLite file.

    Every manager created through the factory is disposed at teardown.
    """
    from aiserve.database.engine import build_engine, create_tables
    from aiserve.database.repositories import REPOSITORIES
    from aiserve.database.unit_of_work import UnitOfWorkManager

    managers = []

    async def _build(
        pool_size: int = 1,
        max_overflow: int = 0,
        pool_timeout: float = 0.2,
    ) -> UnitOfWorkManager:
        engine = build_engine(
            f"sqlite+aiosqlite:///{tmp_path / f'uow_{len(managers)}.db'}",
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
        )
        await create_tables(engine)
        manager = UnitOfWorkManager(engine, repositories=REPOSITORIES)
        managers.append(manager)
        return manager

    yield _build

    for manager in managers:
        await manager.dispose()


@pytest_asyncio.fixture
async def manager(manager_factory):
    """Single-connection manager with a short pool timeout."""
    return await manager_factory()


# ==============================================================================
# HELPER FIXTURES
# ==============================================================================

@pytest.fixture
def sample_model_data() -> dict:
    """Generate sample model endpoint registration data."""
    return {
        "name": f"sentiment-{uuid4().hex[:6]}",
        "version": "2",
        "framework": "ONNX",
        "description": "Binary sentiment classifier",
    }


@pytest.fixture
def sample_prediction_data() -> dict:
    """Generate sample prediction data (model_id filled in by the test)."""
    return {
        "input_text": "The service was excellent",
        "output_text": "positive",
        "score": 0.93,
        "latency_ms": 42,
        "status": "succeeded",
    }
