"""Alembic environment for the predictions database.

Uses the same URL preparation as the app (``predictions.utils.db_async``), so
``DATABASE_URL`` from the environment or ``.env`` works unchanged, libpq
``sslmode`` included.
"""
import asyncio
import logging
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

# settings are read at import time, so .env must be loaded first
load_dotenv(Path(__file__).resolve().parent.parent / ".env", override=False)

from predictions.utils.db_async import (  # noqa: E402
    CONNECT_ARGS,
    DATABASE_URL,
    describe_database_url,
    register_schemas,
)

register_schemas()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))
target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    logging.getLogger("alembic.env").info("Migrating %s", describe_database_url(DATABASE_URL))
    connectable = create_async_engine(
        DATABASE_URL, poolclass=pool.NullPool, connect_args=CONNECT_ARGS
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
