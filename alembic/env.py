"""
Clipvault · Alembic environment

- Target URL comes from `settings.ASYNC_DATABASE_URL` (asyncpg in
  deployments, aiosqlite for local demos); `DATABASE_URL_OVERRIDE` wins there.
- Metadata is `app.db.base.Base`, which imports every model module.
- sqlite runs in batch mode so ALTERs on the folder/video tables work.
- Autogenerate never writes an empty revision file.
"""

import asyncio
import logging
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.db.base import Base
from app.core.config import settings

config = context.config

if config.config_file_name:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

DATABASE_URL = settings.ASYNC_DATABASE_URL
if config.config_ini_section:
    config.set_main_option("sqlalchemy.url", DATABASE_URL)

target_metadata = Base.metadata


def _configure_kwargs(dialect_name: str) -> dict:
    return dict(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        render_as_batch=dialect_name == "sqlite",
        process_revision_directives=_skip_empty_autogenerate,
    )


def _skip_empty_autogenerate(context_, revision, directives) -> None:
    if getattr(config.cmd_opts, "autogenerate", False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []
        logger.info("No schema changes detected; no revision written")


def run_migrations_offline() -> None:
    """Emit the migration SQL for `DATABASE_URL` without connecting."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(DATABASE_URL.split(":", 1)[0].split("+", 1)[0]),
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(connection=connection, **_configure_kwargs(connection.dialect.name))
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Migrate the live database through a throwaway async engine."""
    connectable = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with connectable.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
