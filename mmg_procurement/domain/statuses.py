"""Closed procurement status model.

Plain lifecycle stages are stored and rendered as their display label. Role
decisions ("Approved by Finance", "Rejected by ED") are a tagged variant of a
decision kind and an approving role, so the set of legal statuses stays closed
while the stored text matches what users see.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from mmg_procurement.errors import ValidationError


INDENT_RECEIVED = "Indent Received"
ACCEPTED_BY_MMG = "Accepted by MMG"
ITEM_FOUND_IN_GEM = "Item Found in GeM"
ORDER_PLACED_IN_GEM = "Order Placed in GeM"
TENDER_CALLED = "Tender Called"
SOURCING_METHOD_SELECTED = "Sourcing Method Selected"
BIDS_RECEIVED = "Bids Received"
VENDOR_FINALIZED = "Vendor Finalized"
PO_CREATED = "PO Created"
PAYMENT_PROCESSED = "Payment Processed"
ITEM_RECEIVED = "Item Received"
SUCCESSFUL = "Successful"
FAILED = "Failed"

STAGES: Tuple[str, ...] = (
    INDENT_RECEIVED,
    ACCEPTED_BY_MMG,
    ITEM_FOUND_IN_GEM,
    ORDER_PLACED_IN_GEM,
    TENDER_CALLED,
    SOURCING_METHOD_SELECTED,
    BIDS_RECEIVED,
    VENDOR_FINALIZED,
    PO_CREATED,
    PAYMENT_PROCESSED,
    ITEM_RECEIVED,
    SUCCESSFUL,
    FAILED,
)

ROLE_GROUP_HEAD = "Group Head"
ROLE_FINANCE = "Finance"
ROLE_ED = "ED"
APPROVAL_ROLES: Tuple[str, ...] = (ROLE_GROUP_HEAD, ROLE_FINANCE, ROLE_ED)

DECISION_APPROVED = "Approved"
DECISION_REJECTED = "Rejected"
DECISIONS: Tuple[str, ...] = (DECISION_APPROVED, DECISION_REJECTED)

SOURCING_TENDER = "TENDER"
SOURCING_GEM = "GEM"
SOURCING_METHODS: Tuple[str, ...] = (SOURCING_TENDER, SOURCING_GEM)

PO_PENDING = "Pending"
PO_PAYMENT_PROCESSED = "Payment Processed"
PO_STATUSES: Tuple[str, ...] = (PO_PENDING, PO_PAYMENT_PROCESSED)


@dataclass(frozen=True)
class ProcurementStatus:
    """A lifecycle stage, or a decision taken by an approving role."""

    stage: str | None = None
    decision: str | None = None
    role: str | None = None

    def __post_init__(self) -> None:
        if self.stage is not None:
            if self.decision is not None or self.role is not None:
                raise ValueError("a stage status cannot carry a role decision")
            if self.stage not in STAGES:
                raise ValueError(f"unknown stage {self.stage!r}")
            return
        if self.decision not in DECISIONS:
            raise ValueError(f"unknown decision {self.decision!r}")
        if self.role not in APPROVAL_ROLES:
            raise ValueError(f"unknown approval role {self.role!r}")

    @classmethod
    def of(cls, stage: str) -> "ProcurementStatus":
        return cls(stage=stage)

    @classmethod
    def role_decision(cls, decision: str, role: str) -> "ProcurementStatus":
        return cls(decision=decision, role=role)

    @property
    def is_role_decision(self) -> bool:
        return self.stage is None

    @property
    def is_rejection(self) -> bool:
        return self.decision == DECISION_REJECTED

    @property
    def label(self) -> str:
        if self.stage is not None:
            return self.stage
        return f"{self.decision} by {self.role}"

    def __str__(self) -> str:
        return self.label


def _build_label_index() -> Dict[str, ProcurementStatus]:
    index: Dict[str, ProcurementStatus] = {stage: ProcurementStatus.of(stage) for stage in STAGES}
    for decision in DECISIONS:
        for role in APPROVAL_ROLES:
            status = ProcurementStatus.role_decision(decision, role)
            index[status.label] = status
    return index


_STATUS_BY_LABEL = _build_label_index()


def all_statuses() -> List[ProcurementStatus]:
    return list(_STATUS_BY_LABEL.values())


def is_known_status(label: str | None) -> bool:
    return str(label or "").strip() in _STATUS_BY_LABEL


def parse_status(label: str | None) -> ProcurementStatus:
    normalized = str(label or "").strip()
    status = _STATUS_BY_LABEL.get(normalized)
    if status is None:
        raise ValidationError(
            code="status_invalid",
            message_key="status_invalid",
            details=f"unknown procurement status {normalized!r}",
            payload={"status": normalized},
        )
    return status
