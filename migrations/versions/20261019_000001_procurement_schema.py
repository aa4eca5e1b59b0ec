"""Procurement lifecycle schema baseline from mmg_procurement.db

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from __future__ import annotations

from typing import Iterable, Sequence, Union

from alembic import op
from sqlalchemy.engine import Connection

from mmg_procurement.db import _convert_qmark_to_pg, _init_db_postgres, _init_db_sqlite


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


class _AlembicDbAdapter:
    """Lets the schema functions in db.py run on Alembic's connection."""

    def __init__(self, connection: Connection, backend: str):
        self._connection = connection
        self.backend = backend

    def execute(self, sql: str, params: Iterable | None = None):
        if params is None:
            return self._connection.exec_driver_sql(sql)
        statement = _convert_qmark_to_pg(sql) if self.backend == "postgres" else sql
        return self._connection.exec_driver_sql(statement, tuple(params))

    def executescript(self, sql: str):
        # sqlite3 refuses multi-statement strings in execute(); triggers contain
        # semicolons, so split on statement boundaries outside BEGIN ... END.
        for statement in _sqlite_statements(sql):
            self._connection.exec_driver_sql(statement)

    def commit(self):
        # Alembic owns the migration transaction.
        return None


def _sqlite_statements(sql: str) -> list[str]:
    statements = []
    current: list[str] = []
    in_trigger = False
    for line in sql.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        current.append(line)
        upper = stripped.upper()
        if upper.startswith("CREATE TRIGGER"):
            in_trigger = True
        if in_trigger:
            if upper == "END;":
                statements.append("\n".join(current).rstrip().rstrip(";"))
                current = []
                in_trigger = False
            continue
        if stripped.endswith(";"):
            statements.append("\n".join(current).rstrip().rstrip(";"))
            current = []
    if current:
        statements.append("\n".join(current))
    return statements


def _resolve_backend(connection: Connection) -> str:
    dialect = (connection.dialect.name or "").lower()
    if dialect.startswith("postgres"):
        return "postgres"
    return "sqlite"


def upgrade() -> None:
    connection = op.get_bind()
    backend = _resolve_backend(connection)
    adapter = _AlembicDbAdapter(connection, backend)

    if backend == "postgres":
        _init_db_postgres(adapter)
        return

    _init_db_sqlite(adapter)


def downgrade() -> None:
    connection = op.get_bind()
    backend = _resolve_backend(connection)

    if backend == "postgres":
        op.execute("DROP FUNCTION IF EXISTS reject_procurement_history_update() CASCADE")

    for table in (
        "procurement_history",
        "purchase_orders",
        "procurement_bids",
        "procurement_items",
        "procurements",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table}")
