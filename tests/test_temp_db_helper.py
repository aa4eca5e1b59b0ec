import os
import tempfile
import unittest

from tests.helpers.temp_db import TempDbSandbox, assert_safe_temp_db_path


class TempDbHelperTest(unittest.TestCase):
    def test_sandbox_pool_creates_schema_and_cleans_up(self) -> None:
        sandbox = TempDbSandbox(prefix="temp_db_sanity")
        temp_dir = sandbox.temp_dir
        self.assertTrue(sandbox.db_path.startswith(tempfile.gettempdir()))

        pool = sandbox.make_pool()
        with pool.connection() as db:
            row = db.execute("SELECT COUNT(*) AS total FROM procurements").fetchone()
            self.assertEqual(row["total"], 0)

        sandbox.cleanup()
        self.assertFalse(os.path.exists(sandbox.db_path))
        self.assertFalse(os.path.exists(temp_dir))

    def test_disallow_workspace_paths(self) -> None:
        workspace_db = os.path.join(os.getcwd(), "mmg_procurement_test.db")
        with self.assertRaises(ValueError):
            assert_safe_temp_db_path(workspace_db)


if __name__ == "__main__":
    unittest.main()
