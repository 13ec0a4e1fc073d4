"""
Alembic environment for the harvester schema.

The database URL comes from settings; ``alembic -x database_url=...``
overrides it (e.g. to migrate a staging database from a dev shell).
"""

import asyncio
from logging.config import fileConfig
from alembic import context

import models
from core.config import settings
from core.database import build_engine

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Importing the models package registers every table on this metadata
target_metadata = models.Base.metadata


def database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("database_url") or settings.DATABASE_URL


def configure(**kwargs):
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


def run_migrations_offline():
    configure(url=database_url(), literal_binds=True)

    with context.begin_transaction():
        context.run_migrations()


def apply_migrations(connection):
    configure(connection=connection)

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    engine = build_engine(database_url())

    async with engine.connect() as connection:
        await connection.run_sync(apply_migrations)

    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
