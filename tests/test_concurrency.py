import threading
import unittest

from mmg_procurement.application import WorkflowService
from mmg_procurement.core import EventBus
from mmg_procurement.domain.contracts import ApprovalInput, BidInput, StatusChangeInput
from tests.helpers.factories import make_create_input
from tests.helpers.temp_db import TempDbSandbox


def _run_in_threads(*targets) -> list:
    barrier = threading.Barrier(len(targets))
    errors: list = []

    def _wrap(target):
        def _runner():
            barrier.wait()
            try:
                target()
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        return _runner

    threads = [threading.Thread(target=_wrap(target)) for target in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return errors


class ConcurrentTransitionTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="mmg_concurrency")
        self.pool = self._temp_db.make_pool()
        self.service = WorkflowService(self.pool, event_bus=EventBus())

    def tearDown(self) -> None:
        self._temp_db.cleanup()

    def _create(self, indent_number: str) -> int:
        return int(self.service.create_procurement(make_create_input(indent_number)).payload["procurement"]["id"])

    def test_concurrent_approvals_are_both_recorded_without_lost_update(self) -> None:
        procurement_id = self._create("IND-RACE")

        errors = _run_in_threads(
            lambda: self.service.approve(procurement_id, ApprovalInput(role="Group Head", decision="Approved")),
            lambda: self.service.approve(procurement_id, ApprovalInput(role="Finance", decision="Approved")),
        )
        self.assertEqual(errors, [])

        history = self.service.list_history(procurement_id).payload["items"]
        self.assertEqual(len(history), 3)
        self.assertEqual(history[1]["old_status"], "Indent Received")
        self.assertEqual(history[2]["old_status"], history[1]["new_status"])
        self.assertEqual(
            {history[1]["new_status"], history[2]["new_status"]},
            {"Approved by Group Head", "Approved by Finance"},
        )
        final = self.service.get_procurement(procurement_id).payload["procurement"]
        self.assertEqual(final["status"], history[2]["new_status"])

    def test_concurrent_bids_on_one_procurement_are_all_kept(self) -> None:
        procurement_id = self._create("IND-BIDS")
        self.service.set_status(procurement_id, StatusChangeInput(status="Tender Called"))

        errors = _run_in_threads(
            *[
                (lambda vendor=vendor: self.service.add_bid(procurement_id, BidInput(vendor_name=vendor, bid_amount=100)))
                for vendor in ("Acme", "Globex", "Initech", "Umbrella")
            ]
        )
        self.assertEqual(errors, [])
        self.assertEqual(self.service.list_bids(procurement_id).payload["count"], 4)

    def test_unrelated_procurements_progress_independently(self) -> None:
        first = self._create("IND-ONE")
        second = self._create("IND-TWO")

        errors = _run_in_threads(
            lambda: self.service.set_status(first, StatusChangeInput(status="Accepted by MMG")),
            lambda: self.service.set_status(second, StatusChangeInput(status="Tender Called")),
        )
        self.assertEqual(errors, [])
        self.assertEqual(self.service.get_procurement(first).payload["procurement"]["status"], "Accepted by MMG")
        self.assertEqual(self.service.get_procurement(second).payload["procurement"]["status"], "Tender Called")


if __name__ == "__main__":
    unittest.main()
