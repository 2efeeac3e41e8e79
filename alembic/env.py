"""Alembic environment for the truck repair schema.

The database URL is taken from ``truck_assistant.config.settings``
(``DB_HOST``/``DB_PORT``/``DB_NAME``/``DB_USER``/``DB_PASSWORD``), never
from ``alembic.ini``.
"""

from logging.config import fileConfig

import structlog
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

from alembic import context

from truck_assistant.config import settings
from truck_assistant.db.base import Base
from truck_assistant.db import models_db  # noqa: F401  (registers tables)

config = context.config
# configparser interpolates "%", which URL-encoded passwords contain.
config.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = structlog.get_logger()

target_metadata = Base.metadata

# Column type changes (e.g. JSON -> JSONB) show up in autogenerate.
_CONFIGURE_OPTIONS = {"target_metadata": target_metadata, "compare_type": True}


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without a database connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = make_url(config.get_main_option("sqlalchemy.url"))
    logger.info("migration_target", url=url.render_as_string(hide_password=True))

    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_CONFIGURE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
