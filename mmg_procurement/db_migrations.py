"""Alembic wiring for the procurement schema.

``flask db ...`` runs migrations against the database configured on the Flask
app. Running ``alembic`` directly falls back to ``DATABASE_URL`` and then to
``alembic.ini``.
"""

from __future__ import annotations

from pathlib import Path

import click
from alembic import command
from alembic.config import Config as AlembicConfig
from flask import Flask


APP_DB_URL_ATTRIBUTE = "mmg_procurement_db_url"

_PASSTHROUGH_SCHEMES = ("postgresql://", "postgresql+", "sqlite://", "sqlite+pysqlite://")


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def to_sqlalchemy_url(raw_db_path: str | None) -> str:
    """Turn a ``DB_PATH`` / ``DATABASE_URL`` value into a SQLAlchemy URL.

    Plain filesystem paths become absolute ``sqlite:///`` URLs and the legacy
    ``postgres://`` scheme is renamed.
    """
    value = (raw_db_path or "").strip()
    if not value:
        raise RuntimeError("DB_PATH is not configured for migrations.")
    if value.startswith("postgres://"):
        value = "postgresql://" + value.removeprefix("postgres://")
    if value.startswith(_PASSTHROUGH_SCHEMES):
        return value
    return "sqlite:///" + Path(value).expanduser().resolve().as_posix()


def build_alembic_config(app: Flask) -> AlembicConfig:
    root = _project_root()
    ini_path = root / "alembic.ini"
    if not ini_path.exists():
        raise RuntimeError(f"alembic.ini not found in {root}.")

    url = to_sqlalchemy_url(app.config["DB_PATH"])
    alembic_cfg = AlembicConfig(str(ini_path))
    alembic_cfg.set_main_option("script_location", (root / "migrations").as_posix())
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    alembic_cfg.attributes[APP_DB_URL_ATTRIBUTE] = url
    return alembic_cfg


def register_db_cli(app: Flask) -> None:
    @app.cli.group("db")
    def db_group() -> None:
        """Procurement schema migrations."""

    @db_group.command("upgrade")
    @click.argument("revision", required=False, default="head")
    def db_upgrade(revision: str) -> None:
        command.upgrade(build_alembic_config(app), revision)
        click.echo(f"Procurement schema upgraded to {revision}.")

    @db_group.command("downgrade")
    @click.argument("revision", required=False, default="-1")
    def db_downgrade(revision: str) -> None:
        command.downgrade(build_alembic_config(app), revision)
        click.echo(f"Procurement schema downgraded to {revision}.")

    @db_group.command("current")
    def db_current() -> None:
        command.current(build_alembic_config(app), verbose=True)
