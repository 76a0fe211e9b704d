"""
Alembic Migration Environment
===============================

What:  Migrates the world state table (`produce_state`).
How:   Always targets settings.database_url, so the API and `alembic upgrade`
       agree on the database. Online runs open a throwaway async engine;
       offline runs print SQL.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from farmtrace.config import settings
from farmtrace.database import Base
from farmtrace.models import produce  # noqa: F401

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _configure(**options) -> None:
    context.configure(target_metadata=Base.metadata, **options)


def _migrate(connection: Connection) -> None:
    # SQLite cannot ALTER most columns in place
    _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online() -> None:
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure(url=settings.database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    asyncio.run(_migrate_online())
