# ==============================================================================
# ALEMBIC ENVIRONMENT - Migration Configuration
# ==============================================================================
# Database migration environment for SQLAlchemy models
# ==============================================================================

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

# Import models and settings
from aiserve.core.settings import settings, DatabaseType
from aiserve.domain_models.base import SQLBase

# Import all models to register with metadata
from aiserve.domain_models import serving  # noqa

# Alembic Config object
config = context.config

# Configure logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Set target metadata
target_metadata = SQLBase.metadata


def get_url() -> str:
    """Get sync database URL for offline SQL generation."""
    if settings.DATABASE_TYPE == DatabaseType.SQLITE:
        return settings.SQLITE_URL.replace("+aiosqlite", "")
    elif settings.DATABASE_TYPE == DatabaseType.POSTGRESQL:
        return settings.postgres_sync_url
    raise ValueError(f"Unsupported database type: {settings.DATABASE_TYPE}")


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Generates SQL script without connecting to database.
    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=settings.DATABASE_TYPE == DatabaseType.SQLITE,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Run migrations with active connection."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """
    Run migrations in 'online' mode with async engine.
    """
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = settings.database_url

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode.
    """
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
