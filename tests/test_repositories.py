import sqlite3
import unittest

from mmg_procurement.db import init_schema
from mmg_procurement.infrastructure.repositories import (
    BidRepository,
    HistoryRepository,
    ProcurementItemRepository,
    ProcurementRepository,
    PurchaseOrderRepository,
)
from tests.helpers.temp_db import TempDbSandbox


class RepositoryTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="mmg_repositories")
        self.pool = self._temp_db.make_pool()
        self.db = self.pool.acquire()
        self.procurements = ProcurementRepository()
        self.items = ProcurementItemRepository()
        self.bids = BidRepository()
        self.purchase_orders = PurchaseOrderRepository()
        self.history = HistoryRepository()

    def tearDown(self) -> None:
        self.pool.release(self.db)
        self._temp_db.cleanup()

    def _create_procurement(self, indent_number: str = "IND-100", status: str = "Indent Received") -> int:
        return self.procurements.create(
            self.db,
            indent_number=indent_number,
            title="Spectrum analyser",
            project_id=3,
            indentor_id=102345,
            group_id=2,
            purchase_type="Capital Equipment",
            delivery_place="CDAC EC2",
            estimated_cost=90000.0,
            status=status,
            indent_date="2024-03-01",
            mmg_acceptance_date="2024-03-02",
        )


class ProcurementRepositoryTest(RepositoryTestCase):
    def test_create_and_lookup(self) -> None:
        procurement_id = self._create_procurement()

        row = self.procurements.get_by_id(self.db, procurement_id)
        self.assertEqual(row["indent_number"], "IND-100")
        self.assertEqual(row["status"], "Indent Received")
        self.assertIsNone(row["sourcing_method"])
        self.assertEqual(self.procurements.get_by_indent_number(self.db, "IND-100")["id"], procurement_id)
        self.assertIsNone(self.procurements.get_by_id(self.db, procurement_id + 99))

    def test_indent_number_is_unique(self) -> None:
        self._create_procurement("IND-DUP")
        with self.assertRaises(sqlite3.IntegrityError) as ctx:
            self._create_procurement("IND-DUP")
        self.assertTrue(self.db.is_unique_violation(ctx.exception, "indent_number"))

    def test_status_column_rejects_unknown_labels(self) -> None:
        procurement_id = self._create_procurement()
        with self.assertRaises(sqlite3.IntegrityError):
            self.procurements.update_status(self.db, procurement_id, "Pending Approval")

    def test_update_status_with_extra_fields(self) -> None:
        procurement_id = self._create_procurement()
        self.procurements.update_status(
            self.db,
            procurement_id,
            "Sourcing Method Selected",
            {"sourcing_method": "GEM"},
        )

        row = self.procurements.get_for_update(self.db, procurement_id)
        self.assertEqual(row["status"], "Sourcing Method Selected")
        self.assertEqual(row["sourcing_method"], "GEM")

    def test_list_summary_newest_first_with_status_filter(self) -> None:
        first = self._create_procurement("IND-A")
        second = self._create_procurement("IND-B", status="Tender Called")

        rows = self.procurements.list_summary(self.db)
        self.assertEqual([row["id"] for row in rows], [second, first])

        filtered = self.procurements.list_summary(self.db, status="Tender Called")
        self.assertEqual([row["indent_number"] for row in filtered], ["IND-B"])

    def test_delete_cascades_to_children(self) -> None:
        procurement_id = self._create_procurement()
        self.items.create(self.db, procurement_id=procurement_id, item_name="Probe", quantity=4, specifications=None)
        self.bids.create(
            self.db,
            procurement_id=procurement_id,
            vendor_name="Acme",
            bid_amount=1000.0,
            number_of_bids=1,
            notes=None,
        )
        self.history.append(
            self.db,
            procurement_id=procurement_id,
            old_status=None,
            new_status="Indent Received",
            remarks="created",
        )

        self.procurements.delete_by_id(self.db, procurement_id)

        for table in ("procurement_items", "procurement_bids", "procurement_history"):
            row = self.db.execute(
                f"SELECT COUNT(*) AS total FROM {table} WHERE procurement_id = ?",
                (procurement_id,),
            ).fetchone()
            self.assertEqual(row["total"], 0, msg=table)


class ChildRepositoryTest(RepositoryTestCase):
    def test_latest_bid_is_most_recently_created(self) -> None:
        procurement_id = self._create_procurement()
        for vendor in ("Acme", "Globex", "Initech"):
            self.bids.create(
                self.db,
                procurement_id=procurement_id,
                vendor_name=vendor,
                bid_amount=500.0,
                number_of_bids=1,
                notes=None,
            )

        self.assertEqual(self.bids.latest_for_procurement(self.db, procurement_id)["vendor_name"], "Initech")
        self.assertEqual(self.bids.count_for_procurement(self.db, procurement_id), 3)
        self.assertEqual(
            [bid["vendor_name"] for bid in self.bids.list_by_procurement(self.db, procurement_id)],
            ["Acme", "Globex", "Initech"],
        )

    def test_bid_lookup_is_scoped_to_procurement(self) -> None:
        first = self._create_procurement("IND-1")
        second = self._create_procurement("IND-2")
        bid_id = self.bids.create(
            self.db,
            procurement_id=first,
            vendor_name="Acme",
            bid_amount=500.0,
            number_of_bids=2,
            notes="sealed",
        )

        self.assertIsNotNone(self.bids.get_for_procurement(self.db, first, bid_id))
        self.assertIsNone(self.bids.get_for_procurement(self.db, second, bid_id))

    def test_purchase_order_status_update(self) -> None:
        procurement_id = self._create_procurement()
        po_id = self.purchase_orders.create(
            self.db,
            procurement_id=procurement_id,
            po_number="PO-9",
            po_date="2024-04-01",
            vendor_name="Acme",
            po_value=1000.0,
            status="Pending",
        )

        self.purchase_orders.update_status(
            self.db,
            po_id,
            status="Payment Processed",
            status_update_date="2024-05-01",
            payment_completion_date="2024-05-02",
        )

        order = self.purchase_orders.get_by_id(self.db, po_id)
        self.assertEqual(order["status"], "Payment Processed")
        self.assertEqual(order["status_update_date"], "2024-05-01")
        self.assertEqual(order["payment_completion_date"], "2024-05-02")


class HistoryLedgerTest(RepositoryTestCase):
    def test_entries_listed_in_append_order(self) -> None:
        procurement_id = self._create_procurement()
        sequence = [None, "Indent Received", "Approved by ED", "Tender Called"]
        for old, new in zip(sequence, sequence[1:]):
            self.history.append(
                self.db,
                procurement_id=procurement_id,
                old_status=old,
                new_status=new,
                remarks=f"to {new}",
                status_date="2024-03-05",
                changed_by=102347,
            )

        entries = self.history.list_by_procurement(self.db, procurement_id)
        self.assertEqual([entry["new_status"] for entry in entries], sequence[1:])
        self.assertIsNone(entries[0]["old_status"])
        self.assertEqual(entries[-1]["changed_by"], 102347)
        self.assertEqual(entries[-1]["status_date"], "2024-03-05")

    def test_ledger_rows_cannot_be_updated(self) -> None:
        procurement_id = self._create_procurement()
        entry_id = self.history.append(
            self.db,
            procurement_id=procurement_id,
            old_status=None,
            new_status="Indent Received",
            remarks="created",
        )

        with self.assertRaises(sqlite3.IntegrityError) as ctx:
            self.db.execute("UPDATE procurement_history SET remarks = 'edited' WHERE id = ?", (entry_id,))
        self.assertIn("append-only", str(ctx.exception))


class SchemaScriptTest(RepositoryTestCase):
    def test_schema_script_is_rerunnable_and_keeps_trigger(self) -> None:
        init_schema(self.db)
        init_schema(self.db)

        names = {
            row["name"]
            for row in self.db.execute(
                "SELECT name FROM sqlite_master WHERE type IN ('index', 'trigger') AND name NOT LIKE 'sqlite_%'"
            ).fetchall()
        }
        self.assertIn("trg_procurement_history_append_only", names)
        self.assertIn("idx_procurement_history_procurement", names)


if __name__ == "__main__":
    unittest.main()
