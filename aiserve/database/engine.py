# ==============================================================================
# ENGINE - Async Engine & Connection Pool Construction
# ==============================================================================
# SQLAlchemy async engine backed by a bounded AsyncAdaptedQueuePool
# ==============================================================================

from __future__ import annotations

import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from aiserve.domain_models.base import SQLBase

logger = logging.getLogger(__name__)


def normalize_url(database_url: str) -> str:
    """
    Ensure an async driver is named in the URL.

    ``sqlite://`` becomes ``sqlite+aiosqlite://`` and ``postgresql://``
    becomes ``postgresql+asyncpg://``; URLs naming a driver are kept.
    """
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def build_engine(
    database_url: str,
    *,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: float = 5.0,
    pool_recycle: int = 3600,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create an async engine with a bounded, loop-safe connection pool.

    Args:
        database_url: Database URL (sync or async driver form)
        pool_size: Connections kept in the pool
        max_overflow: Extra connections allowed beyond pool_size
        pool_timeout: Seconds acquire() waits for a free connection
        pool_recycle: Seconds after which a connection is replaced
        echo: Log every SQL statement

    Returns:
        Configured AsyncEngine

    Raises:
        ValueError: For in-memory SQLite, which cannot be shared by a pool
    """
    url = make_url(normalize_url(database_url))
    connect_args = {}

    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            raise ValueError(
                "In-memory SQLite cannot back a connection pool; use a file path"
            )
        connect_args["check_same_thread"] = False

    engine = create_async_engine(
        url,
        echo=echo,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        connect_args=connect_args,
    )
    logger.info(
        f"Created {url.get_backend_name()} engine "
        f"(pool_size={pool_size}, max_overflow={max_overflow}, timeout={pool_timeout}s)"
    )
    return engine


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables registered on SQLBase.metadata if missing."""
    # Register models with the metadata
    from aiserve import domain_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLBase.metadata.create_all)
