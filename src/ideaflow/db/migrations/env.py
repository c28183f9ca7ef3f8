"""Alembic environment for the IdeaFlow schema.

Runs against the same URL the app resolves from settings. SQLite needs
batch mode for ALTER TABLE, so it is switched on whenever the target is
a SQLite file (local mode).
"""

import asyncio
from logging.config import fileConfig

from alembic import context

import ideaflow.db.models  # noqa: F401
from ideaflow.config import settings
from ideaflow.db.base import Base
from ideaflow.db.engine import create_db_engine

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

DATABASE_URL = settings.effective_database_url
CONFIGURE_OPTS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "render_as_batch": DATABASE_URL.startswith("sqlite"),
}


def _migrate(connection) -> None:
    context.configure(connection=connection, **CONFIGURE_OPTS)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online() -> None:
    engine = create_db_engine(DATABASE_URL)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    context.configure(url=DATABASE_URL, literal_binds=True, **CONFIGURE_OPTS)
    with context.begin_transaction():
        context.run_migrations()
else:
    asyncio.run(_migrate_online())
