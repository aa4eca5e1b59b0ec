import unittest

from mmg_procurement.domain.statuses import ProcurementStatus, all_statuses
from mmg_procurement.errors import InvalidTransitionError, ValidationError
from mmg_procurement.workflow import state_machine
from mmg_procurement.workflow.state_machine import (
    OP_ADD_BID,
    OP_CREATE_PURCHASE_ORDER,
    OP_DELETE,
    OP_FINALIZE_VENDOR,
    allowed_operations,
    operation_allowed,
)


class GuardTableTest(unittest.TestCase):
    def test_add_bid_allowed_only_while_collecting_bids(self) -> None:
        allowed = {"Order Placed in GeM", "Tender Called", "Bids Received"}
        for status in all_statuses():
            with self.subTest(status=status.label):
                self.assertEqual(operation_allowed(OP_ADD_BID, status), status.label in allowed)

    def test_finalize_vendor_sources(self) -> None:
        allowed = {"Bids Received", "Tender Called"}
        for status in all_statuses():
            with self.subTest(status=status.label):
                self.assertEqual(operation_allowed(OP_FINALIZE_VENDOR, status), status.label in allowed)

    def test_purchase_order_sources(self) -> None:
        allowed = {"Vendor Finalized", "Accepted by MMG"}
        for status in all_statuses():
            with self.subTest(status=status.label):
                self.assertEqual(operation_allowed(OP_CREATE_PURCHASE_ORDER, status), status.label in allowed)

    def test_delete_allowed_for_new_or_rejected_indents(self) -> None:
        for status in all_statuses():
            expected = status.label == "Indent Received" or status.label.startswith("Rejected by ")
            with self.subTest(status=status.label):
                self.assertEqual(operation_allowed(OP_DELETE, status), expected)

    def test_allowed_operations_lists_unguarded_and_open_guards(self) -> None:
        self.assertEqual(
            allowed_operations("Tender Called"),
            sorted(["approve", "select_sourcing", "set_status", "add_bid", "finalize_vendor"]),
        )
        self.assertEqual(
            allowed_operations("Rejected by Finance"),
            sorted(["approve", "select_sourcing", "set_status", "delete_procurement"]),
        )

    def test_unknown_operation_is_never_allowed(self) -> None:
        self.assertFalse(operation_allowed("archive", "Indent Received"))


class TransitionTest(unittest.TestCase):
    def test_approve_renders_role_decision_from_any_state(self) -> None:
        transition = state_machine.approve("PO Created", "Finance", "Rejected")

        self.assertEqual(transition.old.label, "PO Created")
        self.assertEqual(transition.new.label, "Rejected by Finance")
        self.assertTrue(transition.changed)

    def test_approve_validates_role_and_decision(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            state_machine.approve("Indent Received", "Director", "Approved")
        self.assertEqual(ctx.exception.code, "role_invalid")

        with self.assertRaises(ValidationError) as ctx:
            state_machine.approve("Indent Received", "ED", "Maybe")
        self.assertEqual(ctx.exception.code, "decision_invalid")

    def test_select_sourcing_validates_method(self) -> None:
        transition = state_machine.select_sourcing("Approved by ED", "GEM")
        self.assertEqual(transition.new.label, "Sourcing Method Selected")

        with self.assertRaises(ValidationError):
            state_machine.select_sourcing("Approved by ED", "AUCTION")

    def test_add_bid_rejects_with_status_and_operation(self) -> None:
        with self.assertRaises(InvalidTransitionError) as ctx:
            state_machine.add_bid("Sourcing Method Selected")

        self.assertEqual(ctx.exception.status, "Sourcing Method Selected")
        self.assertEqual(ctx.exception.operation, OP_ADD_BID)
        self.assertEqual(ctx.exception.http_status, 409)
        self.assertEqual(ctx.exception.payload["operation"], OP_ADD_BID)

    def test_create_purchase_order_requires_a_bid_even_from_accepted(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            state_machine.create_purchase_order("Accepted by MMG", bid_count=0)
        self.assertEqual(ctx.exception.code, "bid_required")

        transition = state_machine.create_purchase_order("Accepted by MMG", bid_count=1)
        self.assertEqual(transition.new.label, "PO Created")

    def test_create_purchase_order_checks_status_before_bids(self) -> None:
        with self.assertRaises(InvalidTransitionError):
            state_machine.create_purchase_order("Indent Received", bid_count=0)

    def test_set_status_is_unguarded_and_detects_no_change(self) -> None:
        forward = state_machine.set_status("Indent Received", "Successful")
        self.assertTrue(forward.changed)

        same = state_machine.set_status("Tender Called", ProcurementStatus.of("Tender Called"))
        self.assertFalse(same.changed)

        with self.assertRaises(ValidationError):
            state_machine.set_status("Tender Called", "Closed")

    def test_delete_guard(self) -> None:
        state_machine.delete("Indent Received")
        state_machine.delete("Rejected by Group Head")
        with self.assertRaises(InvalidTransitionError):
            state_machine.delete("Approved by Group Head")


if __name__ == "__main__":
    unittest.main()
