"""Alembic environment for the purchasing schema.

The URL comes from ``Settings``: DATABASE_SYNC_URL when set, otherwise the
async DATABASE_URL rewritten to the psycopg2 driver, since migrations run
synchronously.
"""

from logging.config import fileConfig
import os
import sys

from alembic import context
from sqlalchemy import engine_from_config, pool

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pharmacy_api.models  # noqa: E402,F401
from pharmacy_api.config import settings  # noqa: E402
from pharmacy_api.database import Base  # noqa: E402

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _migration_url() -> str:
    if settings.DATABASE_SYNC_URL:
        return settings.DATABASE_SYNC_URL
    return settings.DATABASE_URL.replace("+asyncpg", "+psycopg2")


config.set_main_option("sqlalchemy.url", _migration_url())


def run_migrations_offline():
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
