"""Pure transition decisions for the procurement lifecycle.

Only five operations carry a guard on the source status (bid intake, vendor
finalization, purchase-order creation, deletion, plus role approvals which
validate their inputs). Everything else goes through ``set_status``, which
accepts any known status from any status. That permissiveness mirrors how MMG
users advance the indent by hand and is kept as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from mmg_procurement.domain.statuses import (
    ACCEPTED_BY_MMG,
    APPROVAL_ROLES,
    BIDS_RECEIVED,
    DECISIONS,
    INDENT_RECEIVED,
    ORDER_PLACED_IN_GEM,
    PO_CREATED,
    SOURCING_METHOD_SELECTED,
    SOURCING_METHODS,
    TENDER_CALLED,
    VENDOR_FINALIZED,
    ProcurementStatus,
    parse_status,
)
from mmg_procurement.errors import InvalidTransitionError, ValidationError


OP_CREATE = "create_procurement"
OP_APPROVE = "approve"
OP_SELECT_SOURCING = "select_sourcing"
OP_ADD_BID = "add_bid"
OP_FINALIZE_VENDOR = "finalize_vendor"
OP_CREATE_PURCHASE_ORDER = "create_purchase_order"
OP_UPDATE_PO_STATUS = "update_po_status"
OP_SET_STATUS = "set_status"
OP_DELETE = "delete_procurement"


FLOW_GUARDS: Dict[str, Dict[str, object]] = {
    OP_ADD_BID: {
        "allowed_from": (ORDER_PLACED_IN_GEM, TENDER_CALLED, BIDS_RECEIVED),
        "target": None,
    },
    OP_FINALIZE_VENDOR: {
        "allowed_from": (BIDS_RECEIVED, TENDER_CALLED),
        "target": VENDOR_FINALIZED,
    },
    OP_CREATE_PURCHASE_ORDER: {
        "allowed_from": (VENDOR_FINALIZED, ACCEPTED_BY_MMG),
        "target": PO_CREATED,
    },
    OP_DELETE: {
        "allowed_from": (INDENT_RECEIVED,),
        "allow_rejections": True,
        "target": None,
    },
}

UNGUARDED_OPERATIONS: Tuple[str, ...] = (OP_APPROVE, OP_SELECT_SOURCING, OP_SET_STATUS)


@dataclass(frozen=True)
class Transition:
    operation: str
    old: ProcurementStatus | None
    new: ProcurementStatus

    @property
    def changed(self) -> bool:
        return self.old != self.new


def _as_status(value: ProcurementStatus | str) -> ProcurementStatus:
    if isinstance(value, ProcurementStatus):
        return value
    return parse_status(value)


def operation_allowed(operation: str, status: ProcurementStatus | str) -> bool:
    if operation in UNGUARDED_OPERATIONS:
        return True
    guard = FLOW_GUARDS.get(operation)
    if guard is None:
        return False
    current = _as_status(status)
    if current.label in guard["allowed_from"]:
        return True
    return bool(guard.get("allow_rejections")) and current.is_rejection


def require_allowed(operation: str, status: ProcurementStatus | str) -> ProcurementStatus:
    current = _as_status(status)
    if not operation_allowed(operation, current):
        raise InvalidTransitionError(operation, current.label)
    return current


def allowed_operations(status: ProcurementStatus | str) -> List[str]:
    current = _as_status(status)
    operations = [op for op in FLOW_GUARDS if operation_allowed(op, current)]
    return sorted([*UNGUARDED_OPERATIONS, *operations])


def approve(current: ProcurementStatus | str, role: str, decision: str) -> Transition:
    normalized_role = str(role or "").strip()
    normalized_decision = str(decision or "").strip()
    if normalized_decision not in DECISIONS:
        raise ValidationError(
            code="decision_invalid",
            message_key="decision_invalid",
            payload={"decision": normalized_decision},
        )
    if normalized_role not in APPROVAL_ROLES:
        raise ValidationError(
            code="role_invalid",
            message_key="role_invalid",
            payload={"role": normalized_role},
        )
    return Transition(
        operation=OP_APPROVE,
        old=_as_status(current),
        new=ProcurementStatus.role_decision(normalized_decision, normalized_role),
    )


def select_sourcing(current: ProcurementStatus | str, method: str) -> Transition:
    if str(method or "").strip() not in SOURCING_METHODS:
        raise ValidationError(
            code="sourcing_method_invalid",
            message_key="sourcing_method_invalid",
            payload={"sourcing_method": method},
        )
    return Transition(
        operation=OP_SELECT_SOURCING,
        old=_as_status(current),
        new=ProcurementStatus.of(SOURCING_METHOD_SELECTED),
    )


def add_bid(current: ProcurementStatus | str) -> None:
    require_allowed(OP_ADD_BID, current)


def finalize_vendor(current: ProcurementStatus | str) -> Transition:
    old = require_allowed(OP_FINALIZE_VENDOR, current)
    return Transition(operation=OP_FINALIZE_VENDOR, old=old, new=ProcurementStatus.of(VENDOR_FINALIZED))


def create_purchase_order(current: ProcurementStatus | str, *, bid_count: int) -> Transition:
    old = require_allowed(OP_CREATE_PURCHASE_ORDER, current)
    if int(bid_count) <= 0:
        raise ValidationError(
            code="bid_required",
            message_key="bid_required",
            payload={"status": old.label},
        )
    return Transition(operation=OP_CREATE_PURCHASE_ORDER, old=old, new=ProcurementStatus.of(PO_CREATED))


def set_status(current: ProcurementStatus | str, new_status: ProcurementStatus | str) -> Transition:
    return Transition(operation=OP_SET_STATUS, old=_as_status(current), new=_as_status(new_status))


def delete(current: ProcurementStatus | str) -> None:
    require_allowed(OP_DELETE, current)
