import contextlib
import logging
import sqlite3
from typing import Iterable

try:
    import psycopg2
    import psycopg2.extras
    import psycopg2.pool
except ImportError:  # pragma: no cover - optional dependency for postgres
    psycopg2 = None

from flask import current_app, g

from mmg_procurement.domain.statuses import PO_STATUSES, SOURCING_METHODS, all_statuses


logger = logging.getLogger(__name__)

POOL_EXTENSION_KEY = "mmg_procurement_pool"


def driver_error_types() -> tuple:
    errors: tuple = (sqlite3.Error,)
    if psycopg2 is not None:
        errors = (*errors, psycopg2.Error)
    return errors


class Database:
    def __init__(self, backend: str, connection):
        self.backend = backend
        self._conn = connection

    @property
    def raw_connection(self):
        return self._conn

    @property
    def driver_errors(self) -> tuple:
        return driver_error_types()

    def execute(self, sql: str, params: Iterable | None = None):
        if self.backend == "postgres":
            cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            if params:
                sql = _convert_qmark_to_pg(sql)
                cursor.execute(sql, list(params))
            else:
                cursor.execute(sql)
            return cursor
        return self._conn.execute(sql, params or ())

    def executescript(self, sql: str):
        return self._conn.executescript(sql)

    def begin(self) -> None:
        # SQLite takes the database write lock up front so the status re-read
        # inside the transaction cannot go stale before the write.
        if self.backend == "postgres":
            self.execute("BEGIN")
        else:
            self._conn.execute("BEGIN IMMEDIATE")

    def commit(self):
        if self.backend == "postgres":
            self.execute("COMMIT")
            return
        if self._conn.in_transaction:
            self._conn.execute("COMMIT")

    def rollback(self):
        if self.backend == "postgres":
            self.execute("ROLLBACK")
            return
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    @contextlib.contextmanager
    def transaction(self):
        self.begin()
        try:
            yield self
            self.commit()
        except BaseException:
            try:
                self.rollback()
            except self.driver_errors:
                logger.exception("transaction_rollback_failed", extra={"db_backend": self.backend})
            raise

    def close(self):
        self._conn.close()

    @staticmethod
    def is_unique_violation(exc: Exception, marker: str | None = None) -> bool:
        pg_code = str(getattr(exc, "pgcode", "") or "").strip()
        message = str(exc or "").lower()
        if marker and marker.lower() not in message and pg_code != "23505":
            return False
        if pg_code == "23505":
            return True
        if "unique constraint failed" in message:
            return True
        return "duplicate key value violates unique constraint" in message


def _convert_qmark_to_pg(sql: str) -> str:
    return sql.replace("?", "%s")


def is_postgres_url(db_path: str | None) -> bool:
    return str(db_path or "").lower().startswith("postgres")


def _connect_sqlite(db_path: str, busy_timeout_seconds: int) -> Database:
    conn = sqlite3.connect(
        db_path,
        timeout=float(busy_timeout_seconds),
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return Database("sqlite", conn)


class ConnectionPool:
    """Hands out one connection per unit of work.

    PostgreSQL connections come from a psycopg2 ``ThreadedConnectionPool``;
    SQLite gets a fresh connection per acquisition since its connections are
    cheap and must not be shared across concurrent transactions.
    """

    def __init__(
        self,
        db_path: str,
        *,
        min_connections: int = 1,
        max_connections: int = 10,
        busy_timeout_seconds: int = 30,
    ) -> None:
        if not str(db_path or "").strip():
            raise RuntimeError("DB_PATH is not configured.")
        self.db_path = db_path
        self.busy_timeout_seconds = int(busy_timeout_seconds)
        self.backend = "postgres" if is_postgres_url(db_path) else "sqlite"
        self._pg_pool = None
        if self.backend == "postgres":
            if psycopg2 is None:
                raise RuntimeError("psycopg2 is not installed.")
            self._pg_pool = psycopg2.pool.ThreadedConnectionPool(
                max(1, int(min_connections)),
                max(1, int(max_connections)),
                db_path,
            )

    @classmethod
    def from_config(cls, config) -> "ConnectionPool":
        return cls(
            config["DB_PATH"],
            min_connections=int(config.get("DB_POOL_MIN_CONNECTIONS", 1)),
            max_connections=int(config.get("DB_POOL_MAX_CONNECTIONS", 10)),
            busy_timeout_seconds=int(config.get("DB_BUSY_TIMEOUT_SECONDS", 30)),
        )

    def acquire(self) -> Database:
        if self._pg_pool is not None:
            conn = self._pg_pool.getconn()
            conn.autocommit = True
            return Database("postgres", conn)
        return _connect_sqlite(self.db_path, self.busy_timeout_seconds)

    def release(self, db: Database) -> None:
        if self._pg_pool is not None:
            self._pg_pool.putconn(db.raw_connection)
            return
        db.close()

    @contextlib.contextmanager
    def connection(self):
        db = self.acquire()
        try:
            yield db
        finally:
            self.release(db)

    def close(self) -> None:
        if self._pg_pool is not None:
            self._pg_pool.closeall()


def get_pool() -> ConnectionPool:
    pool = current_app.extensions.get(POOL_EXTENSION_KEY)
    if pool is None:
        pool = ConnectionPool.from_config(current_app.config)
        current_app.extensions[POOL_EXTENSION_KEY] = pool
    return pool


def get_db() -> Database:
    if "db" not in g:
        g.db = get_pool().acquire()
    return g.db


def close_db(_error=None):
    db = g.pop("db", None)
    if db is not None:
        get_pool().release(db)


def init_db():
    init_schema(get_db())


def init_schema(db: Database) -> None:
    if db.backend == "postgres":
        _init_db_postgres(db)
        return
    _init_db_sqlite(db)


def _quoted_list(values: Iterable[str]) -> str:
    return ", ".join(f"'{value}'" for value in values)


def _status_check_values() -> str:
    return _quoted_list(status.label for status in all_statuses())


def _init_db_sqlite(db: Database):
    db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS procurements (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            indent_number TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            project_id INTEGER,
            indentor_id INTEGER,
            group_id INTEGER NOT NULL,
            purchase_type TEXT NOT NULL,
            delivery_place TEXT NOT NULL,
            estimated_cost REAL,
            status TEXT NOT NULL DEFAULT 'Indent Received' CHECK (
                status IN ({_status_check_values()})
            ),
            sourcing_method TEXT CHECK (
                sourcing_method IS NULL OR sourcing_method IN ({_quoted_list(SOURCING_METHODS)})
            ),
            indent_date TEXT NOT NULL,
            mmg_acceptance_date TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS procurement_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            procurement_id INTEGER NOT NULL REFERENCES procurements (id) ON DELETE CASCADE,
            item_name TEXT NOT NULL,
            quantity REAL NOT NULL,
            specifications TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS procurement_bids (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            procurement_id INTEGER NOT NULL REFERENCES procurements (id) ON DELETE CASCADE,
            vendor_name TEXT NOT NULL,
            bid_amount REAL NOT NULL,
            number_of_bids INTEGER NOT NULL DEFAULT 1,
            notes TEXT,
            created_at TEXT NOT NULL
        )
        """
    )

    db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS purchase_orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            procurement_id INTEGER NOT NULL REFERENCES procurements (id) ON DELETE CASCADE,
            po_number TEXT NOT NULL,
            po_date TEXT NOT NULL,
            vendor_name TEXT NOT NULL,
            po_value REAL NOT NULL,
            status TEXT NOT NULL DEFAULT 'Pending' CHECK (
                status IN ({_quoted_list(PO_STATUSES)})
            ),
            payment_completion_date TEXT,
            status_update_date TEXT,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS procurement_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            procurement_id INTEGER NOT NULL REFERENCES procurements (id) ON DELETE CASCADE,
            old_status TEXT,
            new_status TEXT NOT NULL CHECK (
                new_status IN ({_status_check_values()})
            ),
            remarks TEXT,
            status_date TEXT NOT NULL,
            changed_by INTEGER,
            recorded_at TEXT NOT NULL
        )
        """
    )

    db.executescript(
        """
        CREATE INDEX IF NOT EXISTS idx_procurement_items_procurement
        ON procurement_items (procurement_id);

        CREATE INDEX IF NOT EXISTS idx_procurement_bids_procurement
        ON procurement_bids (procurement_id, created_at);

        CREATE INDEX IF NOT EXISTS idx_purchase_orders_procurement
        ON purchase_orders (procurement_id);

        CREATE INDEX IF NOT EXISTS idx_procurement_history_procurement
        ON procurement_history (procurement_id, recorded_at);

        CREATE TRIGGER IF NOT EXISTS trg_procurement_history_append_only
        BEFORE UPDATE ON procurement_history
        FOR EACH ROW
        BEGIN
            SELECT RAISE(ABORT, 'procurement_history is append-only');
        END;
        """
    )
    db.commit()


def _init_db_postgres(db: Database) -> None:
    db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS procurements (
            id SERIAL PRIMARY KEY,
            indent_number TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            project_id INTEGER,
            indentor_id INTEGER,
            group_id INTEGER NOT NULL,
            purchase_type TEXT NOT NULL,
            delivery_place TEXT NOT NULL,
            estimated_cost DOUBLE PRECISION,
            status TEXT NOT NULL DEFAULT 'Indent Received' CHECK (
                status IN ({_status_check_values()})
            ),
            sourcing_method TEXT CHECK (
                sourcing_method IS NULL OR sourcing_method IN ({_quoted_list(SOURCING_METHODS)})
            ),
            indent_date TEXT NOT NULL,
            mmg_acceptance_date TEXT,
            created_at TEXT NOT NULL DEFAULT to_char(now() AT TIME ZONE 'utc', 'YYYY-MM-DD HH24:MI:SS'),
            updated_at TEXT NOT NULL DEFAULT to_char(now() AT TIME ZONE 'utc', 'YYYY-MM-DD HH24:MI:SS')
        )
        """
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS procurement_items (
            id SERIAL PRIMARY KEY,
            procurement_id INTEGER NOT NULL REFERENCES procurements (id) ON DELETE CASCADE,
            item_name TEXT NOT NULL,
            quantity DOUBLE PRECISION NOT NULL,
            specifications TEXT,
            created_at TEXT NOT NULL DEFAULT to_char(now() AT TIME ZONE 'utc', 'YYYY-MM-DD HH24:MI:SS')
        )
        """
    )

    db.execute(
        """
        CREATE TABLE IF NOT EXISTS procurement_bids (
            id SERIAL PRIMARY KEY,
            procurement_id INTEGER NOT NULL REFERENCES procurements (id) ON DELETE CASCADE,
            vendor_name TEXT NOT NULL,
            bid_amount DOUBLE PRECISION NOT NULL,
            number_of_bids INTEGER NOT NULL DEFAULT 1,
            notes TEXT,
            created_at TEXT NOT NULL
        )
        """
    )

    db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS purchase_orders (
            id SERIAL PRIMARY KEY,
            procurement_id INTEGER NOT NULL REFERENCES procurements (id) ON DELETE CASCADE,
            po_number TEXT NOT NULL,
            po_date TEXT NOT NULL,
            vendor_name TEXT NOT NULL,
            po_value DOUBLE PRECISION NOT NULL,
            status TEXT NOT NULL DEFAULT 'Pending' CHECK (
                status IN ({_quoted_list(PO_STATUSES)})
            ),
            payment_completion_date TEXT,
            status_update_date TEXT,
            created_at TEXT NOT NULL DEFAULT to_char(now() AT TIME ZONE 'utc', 'YYYY-MM-DD HH24:MI:SS'),
            updated_at TEXT NOT NULL DEFAULT to_char(now() AT TIME ZONE 'utc', 'YYYY-MM-DD HH24:MI:SS')
        )
        """
    )

    db.execute(
        f"""
        CREATE TABLE IF NOT EXISTS procurement_history (
            id SERIAL PRIMARY KEY,
            procurement_id INTEGER NOT NULL REFERENCES procurements (id) ON DELETE CASCADE,
            old_status TEXT,
            new_status TEXT NOT NULL CHECK (
                new_status IN ({_status_check_values()})
            ),
            remarks TEXT,
            status_date TEXT NOT NULL,
            changed_by INTEGER,
            recorded_at TEXT NOT NULL
        )
        """
    )

    for statement in (
        "CREATE INDEX IF NOT EXISTS idx_procurement_items_procurement ON procurement_items (procurement_id)",
        "CREATE INDEX IF NOT EXISTS idx_procurement_bids_procurement ON procurement_bids (procurement_id, created_at)",
        "CREATE INDEX IF NOT EXISTS idx_purchase_orders_procurement ON purchase_orders (procurement_id)",
        "CREATE INDEX IF NOT EXISTS idx_procurement_history_procurement ON procurement_history (procurement_id, recorded_at)",
    ):
        db.execute(statement)

    db.execute(
        """
        CREATE OR REPLACE FUNCTION reject_procurement_history_update()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'procurement_history is append-only';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    db.execute("DROP TRIGGER IF EXISTS trg_procurement_history_append_only ON procurement_history")
    db.execute(
        """
        CREATE TRIGGER trg_procurement_history_append_only
        BEFORE UPDATE ON procurement_history
        FOR EACH ROW
        EXECUTE FUNCTION reject_procurement_history_update();
        """
    )
