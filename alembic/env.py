"""
Alembic Migration Environment
===============================

What:  Configures Alembic to work with the async SQLAlchemy store.
How:   Overrides default sync Alembic with an async engine built from
       DIARY_KV_URL.
Who:   Called by `alembic` CLI commands (upgrade, downgrade, revision).
When:  During deployment, before the first request reaches an empty store.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from diary_api.config import settings
from diary_api.database import Base

# Alembic only sees models that are imported and registered with Base
from diary_api.models.kv_entry import KVEntry  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

if not settings.store_configured:
    raise RuntimeError("DIARY_KV_URL is not set; nothing to migrate.")

# The store URL comes from settings, never from alembic.ini
config.set_main_option("sqlalchemy.url", settings.diary_kv_url)


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting to the store."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """
    Connect to the store and apply pending migrations.

    The async engine runs the sync Alembic steps through connection.run_sync().
    """
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
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
