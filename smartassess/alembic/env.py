"""
Alembic migration environment for the SmartAssess schema.

The database URL comes from the Alembic config when set (see
``smartassess.database.init_db.run_migrations``), otherwise from settings.
"""

import asyncio

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from smartassess.config import settings
from smartassess.database.base import metadata
from smartassess.database import models  # noqa: F401  (registers the tables)

config = context.config
target_metadata = metadata


def get_url() -> str:
    return config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL


def run_migrations_offline() -> None:
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(get_url())
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
