# ==============================================================================
# ALEMBIC ENVIRONMENT - Migration Configuration
# ==============================================================================
# Migration environment for the ledger tables (SQL backends only)
# ==============================================================================

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

from walletwise.core.settings import settings, DatabaseType
from walletwise.domain_models import SQLBase, Transaction, User  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLBase.metadata


def get_url(async_driver: bool = True) -> str:
    """Database URL for the configured SQL backend."""
    if settings.DATABASE_TYPE == DatabaseType.SQLITE:
        return settings.sqlite_async_url if async_driver else settings.SQLITE_URL
    if settings.DATABASE_TYPE == DatabaseType.POSTGRESQL:
        return settings.postgres_url if async_driver else settings.postgres_sync_url
    raise ValueError(f"Alembic only supports SQL databases, not {settings.DATABASE_TYPE}")


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Generates SQL script without connecting to database.
    """
    context.configure(
        url=get_url(async_driver=False),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=settings.DATABASE_TYPE == DatabaseType.SQLITE,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode with the async engine."""
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
