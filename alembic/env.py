"""Alembic environment for the CoursePay schema.

The database URL comes from the application settings (DATABASE_URL in the
environment or .env). Online migrations run on the async aiomysql engine;
offline SQL generation uses the pymysql dialect.
"""

import asyncio
from logging.config import fileConfig

from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel

from alembic import context

load_dotenv()

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Register payment tables on SQLModel.metadata for autogenerate
import coursepay.models  # noqa: F401, E402
from coursepay.core.config import get_settings  # noqa: E402

target_metadata = SQLModel.metadata


def get_database_url(sync: bool = False) -> str:
    """Database URL; the sync variant swaps aiomysql for pymysql."""
    url = str(get_settings().database_url)
    return url.replace("+aiomysql", "+pymysql") if sync else url


def run_migrations_offline() -> None:
    """Emit migration SQL without a database connection."""
    context.configure(
        url=get_database_url(sync=True),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations against the async engine."""
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = get_database_url()

    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
