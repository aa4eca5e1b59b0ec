from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List

from mmg_procurement.application.orchestrator import ExecutionOutcome, TransactionalOrchestrator
from mmg_procurement.core import (
    BidAdded,
    EventBus,
    ProcurementCreated,
    ProcurementDeleted,
    ProcurementStatusChanged,
    PurchaseOrderCreated,
    PurchaseOrderStatusUpdated,
    get_event_bus,
)
from mmg_procurement.db import ConnectionPool, Database
from mmg_procurement.domain.contracts import (
    Actor,
    ApprovalInput,
    BidInput,
    ProcurementCreateInput,
    PurchaseOrderCreateInput,
    PurchaseOrderStatusInput,
    ServiceOutput,
    SourcingInput,
    StatusChangeInput,
    StepResult,
    VendorFinalizationInput,
)
from mmg_procurement.domain.directory import MasterDataDirectory
from mmg_procurement.domain.statuses import (
    INDENT_RECEIVED,
    PO_PAYMENT_PROCESSED,
    PO_PENDING,
    PO_STATUSES,
    ProcurementStatus,
    parse_status,
)
from mmg_procurement.errors import (
    DuplicateIndentNumberError,
    NotFoundError,
    ValidationError,
)
from mmg_procurement.observability import observe_transition
from mmg_procurement.ui_strings import success_message
from mmg_procurement.workflow import state_machine


logger = logging.getLogger("mmg_procurement.workflow")


def _text(value) -> str:
    return str(value or "").strip()


def _optional_text(value) -> str | None:
    return _text(value) or None


def _positive_number(value, *, message_key: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        parsed = 0.0
    if parsed <= 0:
        raise ValidationError(code=message_key, message_key=message_key, payload={"value": value})
    return parsed


def _iso_date(value, *, required_key: str = "required_fields_missing") -> str:
    raw = _text(value)
    if not raw:
        raise ValidationError(code=required_key, message_key=required_key)
    try:
        return date.fromisoformat(raw[:10]).isoformat()
    except ValueError as exc:
        raise ValidationError(code="date_invalid", message_key="date_invalid", payload={"value": raw}) from exc


def _optional_iso_date(value, default: str) -> str:
    if not _text(value):
        return default
    return _iso_date(value)


def _record_id(value, *, message_key: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(code=message_key, message_key=message_key, payload={"value": value})


class WorkflowService:
    """Entry points for the MMG procurement lifecycle.

    Writes are delegated to the orchestrator so each one commits or rolls back
    as a unit; domain events are published only after a successful commit.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        directory: MasterDataDirectory | None = None,
        event_bus: EventBus | None = None,
        orchestrator: TransactionalOrchestrator | None = None,
    ) -> None:
        self.orchestrator = orchestrator or TransactionalOrchestrator(pool, directory=directory)
        self.directory = self.orchestrator.directory
        self.event_bus = event_bus or get_event_bus()

    @property
    def procurements(self):
        return self.orchestrator.procurements

    def _publish(self, event) -> None:
        self.event_bus.publish(event)

    def _publish_transition(self, procurement_id: int, outcome: ExecutionOutcome, actor: Actor | None) -> None:
        transition = outcome.transition
        if transition is None:
            return
        self._publish(
            ProcurementStatusChanged(
                procurement_id=procurement_id,
                operation=transition.operation,
                old_status=transition.old.label if transition.old else None,
                new_status=transition.new.label,
                changed_by=actor.employee_id if actor else None,
            )
        )

    @staticmethod
    def _changed_output(message_key: str, outcome: ExecutionOutcome, status_code: int = 200) -> ServiceOutput:
        payload: Dict[str, Any] = {"message": success_message(message_key), "procurement": outcome.view}
        payload.update(outcome.payload)
        return ServiceOutput(payload=payload, status_code=status_code)

    def _validate_master_data(self, create_input: ProcurementCreateInput, actor: Actor | None) -> None:
        if create_input.project_id is not None and not self.directory.project_exists(create_input.project_id):
            raise ValidationError(
                code="project_not_found",
                message_key="project_not_found",
                payload={"project_id": create_input.project_id},
            )
        if not self.directory.group_exists(create_input.group_id):
            raise ValidationError(
                code="group_not_found",
                message_key="group_not_found",
                payload={"group_id": create_input.group_id},
            )
        if actor is not None and actor.employee_id is not None and not self.directory.employee_exists(actor.employee_id):
            raise ValidationError(
                code="indentor_not_found",
                message_key="indentor_not_found",
                payload={"indentor_id": actor.employee_id},
            )

    @staticmethod
    def _normalized_items(create_input: ProcurementCreateInput) -> List[Dict[str, Any]]:
        items = list(create_input.items or [])
        if not items:
            raise ValidationError(code="items_required", message_key="items_required")
        normalized = []
        for index, item in enumerate(items, start=1):
            item_name = _text(item.item_name)
            if not item_name:
                raise ValidationError(code="item_name_required", message_key="item_name_required", payload={"line": index})
            quantity = _positive_number(item.quantity, message_key="quantity_invalid")
            normalized.append(
                {
                    "item_name": item_name,
                    "quantity": quantity,
                    "specifications": _optional_text(item.specifications),
                }
            )
        return normalized

    def create_procurement(self, create_input: ProcurementCreateInput, *, actor: Actor | None = None) -> ServiceOutput:
        indent_number = _text(create_input.indent_number)
        title = _text(create_input.title)
        purchase_type = _text(create_input.purchase_type)
        delivery_place = _text(create_input.delivery_place)
        if not indent_number or not title or not purchase_type or not delivery_place or create_input.group_id is None:
            raise ValidationError(payload={"indent_number": indent_number or None})

        items = self._normalized_items(create_input)
        estimated_cost = create_input.estimated_cost
        if estimated_cost is not None:
            try:
                estimated_cost = float(estimated_cost)
            except (TypeError, ValueError):
                estimated_cost = -1.0
            if estimated_cost < 0:
                raise ValidationError(code="estimated_cost_invalid", message_key="estimated_cost_invalid")

        today = date.today().isoformat()
        indent_date = _optional_iso_date(create_input.indent_date, today)
        acceptance_date = _optional_iso_date(create_input.mmg_acceptance_date, today)
        self._validate_master_data(create_input, actor)

        indentor_id = actor.employee_id if actor else None
        indentor_label = (actor.display_name if actor else None) or "user"
        orchestrator = self.orchestrator

        def _create(db: Database) -> Dict[str, Any]:
            if orchestrator.procurements.get_by_indent_number(db, indent_number):
                raise DuplicateIndentNumberError(payload={"indent_number": indent_number})
            try:
                procurement_id = orchestrator.procurements.create(
                    db,
                    indent_number=indent_number,
                    title=title,
                    project_id=create_input.project_id,
                    indentor_id=indentor_id,
                    group_id=create_input.group_id,
                    purchase_type=purchase_type,
                    delivery_place=delivery_place,
                    estimated_cost=estimated_cost,
                    status=INDENT_RECEIVED,
                    indent_date=indent_date,
                    mmg_acceptance_date=acceptance_date,
                )
            except db.driver_errors as exc:
                if Database.is_unique_violation(exc, "indent_number"):
                    raise DuplicateIndentNumberError(payload={"indent_number": indent_number}) from exc
                raise
            for item in items:
                orchestrator.items.create(db, procurement_id=procurement_id, **item)
            orchestrator.history.append(
                db,
                procurement_id=procurement_id,
                old_status=None,
                new_status=INDENT_RECEIVED,
                remarks=f"Indent created by {indentor_label} on {indent_date}",
                status_date=indent_date,
                changed_by=indentor_id,
            )
            return orchestrator.aggregate_view(db, procurement_id)

        view = self.orchestrator.with_transaction(_create, operation=state_machine.OP_CREATE)
        observe_transition(INDENT_RECEIVED)
        logger.info(
            "workflow_transition_applied",
            extra={
                "operation": state_machine.OP_CREATE,
                "procurement_id": view["id"],
                "old_status": None,
                "new_status": INDENT_RECEIVED,
                "changed_by": indentor_id,
            },
        )
        self._publish(
            ProcurementCreated(
                procurement_id=int(view["id"]),
                indent_number=indent_number,
                status=INDENT_RECEIVED,
                items_created=len(items),
            )
        )
        return ServiceOutput(
            payload={"message": success_message("procurement_created"), "procurement": view},
            status_code=201,
        )

    def approve(self, procurement_id: int, approval: ApprovalInput, *, actor: Actor | None = None) -> ServiceOutput:
        def _step(db: Database, current: Dict[str, Any], status: ProcurementStatus) -> StepResult:
            transition = state_machine.approve(status, approval.role, approval.decision)
            return StepResult(
                new_status=transition.new,
                remarks=_optional_text(approval.remarks) or transition.new.label,
            )

        outcome = self.orchestrator.execute(procurement_id, _step, operation=state_machine.OP_APPROVE, actor=actor)
        self._publish_transition(procurement_id, outcome, actor)
        return self._changed_output("status_updated", outcome)

    def select_sourcing(self, procurement_id: int, sourcing: SourcingInput, *, actor: Actor | None = None) -> ServiceOutput:
        method = _text(sourcing.method).upper()

        def _step(db: Database, current: Dict[str, Any], status: ProcurementStatus) -> StepResult:
            transition = state_machine.select_sourcing(status, method)
            return StepResult(
                new_status=transition.new,
                remarks=_optional_text(sourcing.remarks) or f"Sourcing method set to {method}",
                fields={"sourcing_method": method},
            )

        outcome = self.orchestrator.execute(
            procurement_id, _step, operation=state_machine.OP_SELECT_SOURCING, actor=actor
        )
        self._publish_transition(procurement_id, outcome, actor)
        return self._changed_output("sourcing_updated", outcome)

    def add_bid(self, procurement_id: int, bid: BidInput, *, actor: Actor | None = None) -> ServiceOutput:
        vendor_name = _text(bid.vendor_name)
        if not vendor_name:
            raise ValidationError(code="vendor_name_required", message_key="vendor_name_required")
        bid_amount = _positive_number(bid.bid_amount, message_key="amount_invalid")
        try:
            number_of_bids = 1 if bid.number_of_bids is None else int(bid.number_of_bids)
        except (TypeError, ValueError):
            number_of_bids = 0
        if number_of_bids < 1:
            raise ValidationError(payload={"number_of_bids": number_of_bids})
        notes = _optional_text(bid.notes)
        bids = self.orchestrator.bids

        def _step(db: Database, current: Dict[str, Any], status: ProcurementStatus) -> StepResult:
            state_machine.add_bid(status)
            bid_id = bids.create(
                db,
                procurement_id=procurement_id,
                vendor_name=vendor_name,
                bid_amount=bid_amount,
                number_of_bids=number_of_bids,
                notes=notes,
            )
            return StepResult(payload={"bid_id": bid_id})

        outcome = self.orchestrator.execute(procurement_id, _step, operation=state_machine.OP_ADD_BID, actor=actor)
        self._publish(
            BidAdded(
                procurement_id=procurement_id,
                bid_id=int(outcome.payload["bid_id"]),
                vendor_name=vendor_name,
                bid_amount=bid_amount,
            )
        )
        return self._changed_output("bid_added", outcome, status_code=201)

    def finalize_vendor(
        self,
        procurement_id: int,
        finalization: VendorFinalizationInput,
        *,
        actor: Actor | None = None,
    ) -> ServiceOutput:
        if finalization.bid_id is None:
            raise ValidationError(code="bid_id_required", message_key="bid_id_required")
        bid_id = _record_id(finalization.bid_id, message_key="bid_id_invalid")
        finalization_date = _iso_date(finalization.finalization_date, required_key="finalization_date_required")
        bids = self.orchestrator.bids

        def _step(db: Database, current: Dict[str, Any], status: ProcurementStatus) -> StepResult:
            transition = state_machine.finalize_vendor(status)
            selected = bids.get_for_procurement(db, procurement_id, bid_id)
            if selected is None:
                raise NotFoundError(
                    code="bid_not_found",
                    message_key="bid_not_found",
                    payload={"procurement_id": procurement_id, "bid_id": bid_id},
                )
            return StepResult(
                new_status=transition.new,
                remarks=f"Vendor {selected['vendor_name']} selected",
                status_date=finalization_date,
                payload={"bid_id": int(selected["id"]), "vendor_name": selected["vendor_name"]},
            )

        outcome = self.orchestrator.execute(
            procurement_id, _step, operation=state_machine.OP_FINALIZE_VENDOR, actor=actor
        )
        self._publish_transition(procurement_id, outcome, actor)
        return self._changed_output("vendor_finalized", outcome)

    def create_purchase_order(
        self,
        procurement_id: int,
        order: PurchaseOrderCreateInput,
        *,
        actor: Actor | None = None,
    ) -> ServiceOutput:
        po_number = _text(order.po_number)
        if not po_number or order.po_value is None:
            raise ValidationError(code="po_fields_required", message_key="po_fields_required")
        po_date = _iso_date(order.po_date, required_key="po_fields_required")
        creation_date = _iso_date(order.po_creation_date, required_key="po_fields_required")
        po_value = _positive_number(order.po_value, message_key="po_value_invalid")
        bids = self.orchestrator.bids
        purchase_orders = self.orchestrator.purchase_orders

        def _step(db: Database, current: Dict[str, Any], status: ProcurementStatus) -> StepResult:
            transition = state_machine.create_purchase_order(
                status,
                bid_count=bids.count_for_procurement(db, procurement_id),
            )
            latest_bid = bids.latest_for_procurement(db, procurement_id)
            purchase_order_id = purchase_orders.create(
                db,
                procurement_id=procurement_id,
                po_number=po_number,
                po_date=po_date,
                vendor_name=latest_bid["vendor_name"],
                po_value=po_value,
                status=PO_PENDING,
            )
            return StepResult(
                new_status=transition.new,
                remarks=f"Purchase order {po_number} created",
                status_date=creation_date,
                payload={"purchase_order_id": purchase_order_id, "vendor_name": latest_bid["vendor_name"]},
            )

        outcome = self.orchestrator.execute(
            procurement_id, _step, operation=state_machine.OP_CREATE_PURCHASE_ORDER, actor=actor
        )
        self._publish(
            PurchaseOrderCreated(
                procurement_id=procurement_id,
                purchase_order_id=int(outcome.payload["purchase_order_id"]),
                po_number=po_number,
                vendor_name=str(outcome.payload["vendor_name"]),
            )
        )
        self._publish_transition(procurement_id, outcome, actor)
        return self._changed_output("purchase_order_created", outcome, status_code=201)

    def update_po_status(
        self,
        procurement_id: int,
        update: PurchaseOrderStatusInput,
        *,
        actor: Actor | None = None,
    ) -> ServiceOutput:
        new_status = _text(update.status)
        if new_status not in PO_STATUSES:
            raise ValidationError(code="po_status_invalid", message_key="po_status_invalid", payload={"status": new_status})
        status_update_date = _iso_date(update.status_update_date, required_key="status_update_date_required")
        payment_date = None
        if new_status == PO_PAYMENT_PROCESSED:
            payment_date = _iso_date(update.payment_completion_date, required_key="payment_date_required")
        purchase_orders = self.orchestrator.purchase_orders

        def _step(db: Database, current: Dict[str, Any], status: ProcurementStatus) -> StepResult:
            order = purchase_orders.get_by_id(db, update.purchase_order_id)
            if order is None or int(order["procurement_id"]) != int(procurement_id):
                raise NotFoundError(
                    code="purchase_order_not_found",
                    message_key="purchase_order_not_found",
                    payload={"procurement_id": procurement_id, "purchase_order_id": update.purchase_order_id},
                )
            purchase_orders.update_status(
                db,
                int(order["id"]),
                status=new_status,
                status_update_date=status_update_date,
                payment_completion_date=payment_date,
            )
            return StepResult(payload={"purchase_order_id": int(order["id"])})

        outcome = self.orchestrator.execute(
            procurement_id, _step, operation=state_machine.OP_UPDATE_PO_STATUS, actor=actor
        )
        self._publish(
            PurchaseOrderStatusUpdated(
                procurement_id=procurement_id,
                purchase_order_id=int(outcome.payload["purchase_order_id"]),
                status=new_status,
            )
        )
        return self._changed_output("purchase_order_status_updated", outcome)

    def set_status(self, procurement_id: int, change: StatusChangeInput, *, actor: Actor | None = None) -> ServiceOutput:
        target = parse_status(change.status)
        status_date = None
        if _text(change.status_date):
            status_date = _iso_date(change.status_date)

        def _step(db: Database, current: Dict[str, Any], status: ProcurementStatus) -> StepResult:
            transition = state_machine.set_status(status, target)
            return StepResult(
                new_status=transition.new,
                remarks=_optional_text(change.remarks) or f"Status updated to {target.label} by MMG user",
                status_date=status_date,
            )

        outcome = self.orchestrator.execute(procurement_id, _step, operation=state_machine.OP_SET_STATUS, actor=actor)
        self._publish_transition(procurement_id, outcome, actor)
        return self._changed_output("status_updated", outcome)

    def delete_procurement(self, procurement_id: int, *, actor: Actor | None = None) -> ServiceOutput:
        procurements = self.orchestrator.procurements

        def _delete(db: Database) -> Dict[str, Any]:
            current = procurements.get_for_update(db, procurement_id)
            if current is None:
                raise NotFoundError(payload={"procurement_id": procurement_id})
            state_machine.delete(current["status"])
            procurements.delete_by_id(db, procurement_id)
            return current

        deleted = self.orchestrator.with_transaction(_delete, operation=state_machine.OP_DELETE)
        logger.info(
            "procurement_deleted",
            extra={
                "procurement_id": procurement_id,
                "indent_number": deleted["indent_number"],
                "status": deleted["status"],
                "deleted_by": actor.employee_id if actor else None,
            },
        )
        self._publish(ProcurementDeleted(procurement_id=procurement_id, indent_number=deleted["indent_number"]))
        return ServiceOutput(
            payload={"message": success_message("procurement_deleted"), "id": procurement_id},
            status_code=200,
        )

    def get_procurement(self, procurement_id: int) -> ServiceOutput:
        def _load(db: Database) -> Dict[str, Any]:
            view = self.orchestrator.aggregate_view(db, procurement_id)
            if view is None:
                raise NotFoundError(payload={"procurement_id": procurement_id})
            return view

        view = self.orchestrator.read(_load, operation="get_procurement")
        return ServiceOutput(payload={"procurement": view})

    def list_procurements(self, *, status: str | None = None, limit: int = 200) -> ServiceOutput:
        status_filter = parse_status(status).label if _text(status) else None
        rows = self.orchestrator.read(
            lambda db: self.procurements.list_summary(db, status=status_filter, limit=limit),
            operation="list_procurements",
        )
        for row in rows:
            row["indentor_name"] = self.directory.employee_name(row.get("indentor_id"))
            row["project_name"] = self.directory.project_name(row.get("project_id"))
            row["group_name"] = self.directory.group_name(row.get("group_id"))
        return ServiceOutput(payload={"items": rows, "count": len(rows)})

    def _list_children(self, procurement_id: int, repository, operation: str) -> ServiceOutput:
        def _load(db: Database) -> List[Dict[str, Any]]:
            if self.procurements.get_by_id(db, procurement_id) is None:
                raise NotFoundError(payload={"procurement_id": procurement_id})
            return repository.list_by_procurement(db, procurement_id)

        rows = self.orchestrator.read(_load, operation=operation)
        return ServiceOutput(payload={"procurement_id": procurement_id, "items": rows, "count": len(rows)})

    def list_bids(self, procurement_id: int) -> ServiceOutput:
        return self._list_children(procurement_id, self.orchestrator.bids, "list_bids")

    def list_purchase_orders(self, procurement_id: int) -> ServiceOutput:
        return self._list_children(procurement_id, self.orchestrator.purchase_orders, "list_purchase_orders")

    def list_history(self, procurement_id: int) -> ServiceOutput:
        return self._list_children(procurement_id, self.orchestrator.history, "list_history")
