import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlmodel import SQLModel

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# run from a checkout without installing the package
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from inkpost.models.cache_entry import CacheEntryRow  # noqa: E402,F401  (registers cache_entries)
# the engine is built from CACHE_DB_URL; sqlalchemy.url in alembic.ini is not read
from inkpost.services.database import engine  # noqa: E402

target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Emit SQL for the cache database without connecting."""
    context.configure(url=str(engine.url), target_metadata=target_metadata, literal_binds=True)

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations to the cache database."""
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata,
                          render_as_batch=engine.dialect.name == "sqlite")

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
