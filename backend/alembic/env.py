"""Alembic environment for the studybot schema."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from studybot.config import get_settings
from studybot.db import models  # noqa: F401 - registers every table on Base.metadata
from studybot.db.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    """Sync URL (psycopg2 or plain sqlite) derived from the app settings."""
    return config.get_main_option("sqlalchemy.url") or get_settings().database_url_sync


def configure_options(url: str) -> dict:
    # SQLite can only ALTER through table rebuilds
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    url = get_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **configure_options(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_url()
    connectable = create_engine(url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **configure_options(url))

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
