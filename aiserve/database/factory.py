# ==============================================================================
# DATABASE FACTORY - Engine & Unit of Work Manager Lifecycle
# ==============================================================================
# Builds the pooled engine from settings and caches one manager per process
# ==============================================================================

from __future__ import annotations

import logging
from typing import Optional

from aiserve.core.settings import settings
from aiserve.core.exceptions import DatabaseError
from aiserve.database.engine import build_engine, create_tables
from aiserve.database.repositories import REPOSITORIES
from aiserve.database.unit_of_work.manager import UnitOfWorkManager

logger = logging.getLogger(__name__)


class DatabaseFactory:
    """
    Factory managing the application's UnitOfWorkManager.

    Class Attributes:
        _manager: Cached manager (None until initialize())

    Example:
        >>> # Initialize at application startup
        >>> await DatabaseFactory.initialize()
        >>>
        >>> manager = DatabaseFactory.get_manager()
        >>> async with manager.scope() as uow:
        ...     ...
        >>>
        >>> # Shutdown at application exit
        >>> await DatabaseFactory.shutdown()
    """

    _manager: Optional[UnitOfWorkManager] = None

    @classmethod
    async def initialize(
        cls,
        database_url: Optional[str] = None,
    ) -> UnitOfWorkManager:
        """
        Build the engine, create tables and cache the manager.

        Returns the existing manager if already initialized.

        Args:
            database_url: Override for settings.database_url

        Raises:
            DatabaseError: If the engine or schema cannot be set up
        """
        if cls._manager is not None:
            return cls._manager

        try:
            engine = build_engine(
                database_url or settings.database_url,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
                echo=settings.DB_ECHO,
            )
            await create_tables(engine)
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise DatabaseError(f"Failed to initialize database: {e}") from e

        cls._manager = UnitOfWorkManager(
            engine,
            repositories=REPOSITORIES,
        )
        logger.info(f"Database initialized: {settings.DATABASE_TYPE.value}")
        return cls._manager

    @classmethod
    def get_manager(cls) -> UnitOfWorkManager:
        """
        Get the initialized manager.

        Raises:
            RuntimeError: If initialize() has not run
        """
        if cls._manager is None:
            raise RuntimeError(
                "Database not initialized. "
                "Call DatabaseFactory.initialize() first."
            )
        return cls._manager

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._manager is not None

    @classmethod
    async def health_check(cls) -> bool:
        """Check database health; False when not initialized."""
        if cls._manager is None:
            return False
        return await cls._manager.health_check()

    @classmethod
    async def shutdown(cls) -> None:
        """
        Close all pooled connections and forget the manager.

        Should be called at application shutdown.
        """
        if cls._manager is not None:
            await cls._manager.dispose()
        cls._manager = None
        logger.info("All database connections closed")

    @classmethod
    def reset(cls) -> None:
        """
        Reset factory state without disposing.

        Primarily for testing purposes.
        """
        cls._manager = None
