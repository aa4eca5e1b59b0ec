from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class ServiceOutput:
    payload: Dict[str, Any]
    status_code: int = 200


@dataclass(frozen=True)
class Actor:
    employee_id: int | None
    role: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class ProcurementItemInput:
    item_name: str
    quantity: float
    specifications: str | None = None


@dataclass(frozen=True)
class ProcurementCreateInput:
    indent_number: str
    title: str
    group_id: int
    purchase_type: str
    delivery_place: str
    items: List[ProcurementItemInput]
    project_id: int | None = None
    estimated_cost: float | None = None
    indent_date: str | None = None
    mmg_acceptance_date: str | None = None


@dataclass(frozen=True)
class ApprovalInput:
    role: str
    decision: str
    remarks: str | None = None


@dataclass(frozen=True)
class SourcingInput:
    method: str
    remarks: str | None = None


@dataclass(frozen=True)
class BidInput:
    vendor_name: str
    bid_amount: float
    number_of_bids: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class VendorFinalizationInput:
    bid_id: int
    finalization_date: str


@dataclass(frozen=True)
class PurchaseOrderCreateInput:
    po_number: str
    po_date: str
    po_value: float
    po_creation_date: str


@dataclass(frozen=True)
class PurchaseOrderStatusInput:
    purchase_order_id: int
    status: str
    status_update_date: str
    payment_completion_date: str | None = None


@dataclass(frozen=True)
class StatusChangeInput:
    status: str
    remarks: str | None = None
    status_date: str | None = None


@dataclass(frozen=True)
class StepResult:
    """What an orchestrated operation asks the orchestrator to persist."""

    new_status: Any = None
    remarks: str | None = None
    status_date: str | None = None
    fields: Dict[str, Any] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)
