"""
Alembic environment for the Study Buddy schema.

Migrations always run against PostgreSQL through psycopg2, using the sync
URL from studybuddy.config. SSL for hosted databases comes from the same
setting the application engine uses.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from studybuddy.config import get_settings
from studybuddy.db import models  # noqa: F401 - registers the tables on Base.metadata
from studybuddy.db.base import Base
from studybuddy.db.session import ssl_connect_args

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = get_settings()
target_metadata = Base.metadata

# Shared by online and offline runs. compare_type catches JSON -> JSONB and
# String length drift in autogenerate.
CONFIGURE_OPTIONS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def _skip_empty_autogenerate(context, revision, directives) -> None:
    """Do not write a revision file when autogenerate finds no changes."""
    if getattr(config.cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []


def run_migrations_offline() -> None:
    """Emit SQL for `alembic upgrade --sql` without connecting."""
    context.configure(
        url=settings.database_url_sync,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a single psycopg2 connection."""
    connectable = create_engine(
        settings.database_url_sync,
        poolclass=pool.NullPool,
        connect_args=ssl_connect_args(settings, sync=True),
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            process_revision_directives=_skip_empty_autogenerate,
            **CONFIGURE_OPTIONS,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
