from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from mmg_procurement.db_migrations import APP_DB_URL_ATTRIBUTE, to_sqlalchemy_url


config = context.config

if config.config_file_name is not None and APP_DB_URL_ATTRIBUTE not in config.attributes:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# Schema is plain SQL from mmg_procurement.db, no ORM metadata to compare.
target_metadata = None


def _database_url() -> str:
    app_url = config.attributes.get(APP_DB_URL_ATTRIBUTE)
    if app_url:
        return app_url
    return to_sqlalchemy_url(os.environ.get("DATABASE_URL") or config.get_main_option("sqlalchemy.url"))


def _migrate_offline(url: str) -> None:
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def _migrate_online(url: str) -> None:
    engine = engine_from_config({"sqlalchemy.url": url}, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    _migrate_offline(_database_url())
else:
    _migrate_online(_database_url())
