import os
import unittest

from mmg_procurement import create_app
from mmg_procurement.config import Config
from mmg_procurement.db import close_db
from mmg_procurement.db_migrations import to_sqlalchemy_url
from tests.helpers.temp_db import TempDbSandbox


def _table_exists(temp_db: TempDbSandbox, table_name: str) -> bool:
    conn = temp_db.connect()
    try:
        row = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
            (table_name,),
        ).fetchone()
        return row is not None
    finally:
        conn.close()


class DbMigrationsTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="mmg_migrations")
        self._prev_env = os.environ.get("FLASK_ENV")
        os.environ["FLASK_ENV"] = "development"

    def tearDown(self) -> None:
        if self._prev_env is None:
            os.environ.pop("FLASK_ENV", None)
        else:
            os.environ["FLASK_ENV"] = self._prev_env
        self._temp_db.cleanup()

    def _build_app(self, *, testing: bool, db_auto_init: bool):
        return create_app(self._temp_db.make_config(Config, TESTING=testing, DB_AUTO_INIT=db_auto_init))

    def test_schema_not_created_by_default(self) -> None:
        app = self._build_app(testing=False, db_auto_init=False)
        with app.app_context():
            close_db()

        self.assertFalse(_table_exists(self._temp_db, "procurements"))

    def test_schema_created_with_explicit_dev_flag(self) -> None:
        app = self._build_app(testing=False, db_auto_init=True)
        with app.app_context():
            close_db()

        for table in ("procurements", "procurement_items", "procurement_bids", "purchase_orders", "procurement_history"):
            self.assertTrue(_table_exists(self._temp_db, table), msg=table)

    def test_auto_init_ignored_outside_development(self) -> None:
        os.environ["FLASK_ENV"] = "staging"
        self._build_app(testing=False, db_auto_init=True)

        self.assertFalse(_table_exists(self._temp_db, "procurements"))

    def test_flask_db_upgrade_and_downgrade(self) -> None:
        app = self._build_app(testing=False, db_auto_init=False)
        runner = app.test_cli_runner()

        upgrade_result = runner.invoke(args=["db", "upgrade"])
        self.assertEqual(upgrade_result.exit_code, 0, msg=upgrade_result.output)
        self.assertTrue(_table_exists(self._temp_db, "procurement_history"))

        conn = self._temp_db.connect()
        try:
            trigger = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='trigger' AND name = 'trg_procurement_history_append_only'"
            ).fetchone()
        finally:
            conn.close()
        self.assertIsNotNone(trigger)

        downgrade_result = runner.invoke(args=["db", "downgrade", "base"])
        self.assertEqual(downgrade_result.exit_code, 0, msg=downgrade_result.output)
        self.assertFalse(_table_exists(self._temp_db, "procurements"))

        reupgrade_result = runner.invoke(args=["db", "upgrade"])
        self.assertEqual(reupgrade_result.exit_code, 0, msg=reupgrade_result.output)
        self.assertTrue(_table_exists(self._temp_db, "procurements"))

    def test_sqlalchemy_url_normalization(self) -> None:
        self.assertEqual(to_sqlalchemy_url("postgres://u:p@db/mmg"), "postgresql://u:p@db/mmg")
        self.assertEqual(to_sqlalchemy_url("sqlite:///tmp/x.db"), "sqlite:///tmp/x.db")
        self.assertTrue(to_sqlalchemy_url(self._temp_db.db_path).startswith("sqlite:///"))
        with self.assertRaises(RuntimeError):
            to_sqlalchemy_url("  ")


if __name__ == "__main__":
    unittest.main()
