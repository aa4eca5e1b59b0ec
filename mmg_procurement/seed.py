from __future__ import annotations

import logging
from typing import Any, Dict, List

import click
from flask import Flask

from mmg_procurement.domain.contracts import (
    Actor,
    ApprovalInput,
    BidInput,
    ProcurementCreateInput,
    ProcurementItemInput,
    SourcingInput,
    StatusChangeInput,
)
from mmg_procurement.domain.statuses import TENDER_CALLED
from mmg_procurement.errors import DuplicateIndentNumberError


logger = logging.getLogger("mmg_procurement.seed")


SAMPLE_INDENTS: List[Dict[str, Any]] = [
    {
        "indent_number": "IND-2024-001",
        "title": "Laptop Procurement for Development Team",
        "project_id": 1,
        "group_id": 1,
        "purchase_type": "Capital Equipment",
        "delivery_place": "CDAC KP",
        "estimated_cost": 250000.00,
        "indent_date": "2024-01-15",
        "items": [("Laptop, 16 GB RAM", 10, "14 inch, 512 GB SSD")],
        "approvals": [("Group Head", "Approved")],
    },
    {
        "indent_number": "IND-2024-002",
        "title": "Office Supplies and Stationery",
        "project_id": 2,
        "group_id": 2,
        "purchase_type": "Consumables",
        "delivery_place": "CDAC EC1",
        "estimated_cost": 50000.00,
        "indent_date": "2024-02-20",
        "items": [("A4 paper ream", 200, None), ("Whiteboard marker", 50, "Assorted colours")],
        "approvals": [("Group Head", "Approved"), ("Finance", "Approved")],
        "sourcing": "GEM",
    },
    {
        "indent_number": "IND-2024-003",
        "title": "Server Hardware for Data Center",
        "project_id": 3,
        "group_id": 3,
        "purchase_type": "Capital Equipment",
        "delivery_place": "CDAC EC2",
        "estimated_cost": 500000.00,
        "indent_date": "2024-03-10",
        "items": [("Rack server", 2, "2x 32 core, 256 GB RAM")],
        "approvals": [("Group Head", "Approved"), ("Finance", "Approved"), ("ED", "Approved")],
        "sourcing": "TENDER",
        "advance_to": TENDER_CALLED,
        "bids": [("Server Systems Inc", 480000.00, 7)],
    },
    {
        "indent_number": "IND-2024-004",
        "title": "Software Licenses",
        "project_id": 4,
        "group_id": 4,
        "purchase_type": "Stock & Sale",
        "delivery_place": "CDAC KP",
        "estimated_cost": 150000.00,
        "indent_date": "2024-04-05",
        "items": [("Office suite licence", 25, "Annual subscription")],
        "approvals": [("Finance", "Rejected")],
    },
]


def seed_sample_procurements(service, *, actor: Actor | None = None) -> Dict[str, int]:
    created = 0
    skipped = 0
    for sample in SAMPLE_INDENTS:
        create_input = ProcurementCreateInput(
            indent_number=sample["indent_number"],
            title=sample["title"],
            project_id=sample["project_id"],
            group_id=sample["group_id"],
            purchase_type=sample["purchase_type"],
            delivery_place=sample["delivery_place"],
            estimated_cost=sample["estimated_cost"],
            indent_date=sample["indent_date"],
            mmg_acceptance_date=sample["indent_date"],
            items=[
                ProcurementItemInput(item_name=name, quantity=quantity, specifications=specs)
                for name, quantity, specs in sample["items"]
            ],
        )
        try:
            result = service.create_procurement(create_input, actor=actor)
        except DuplicateIndentNumberError:
            skipped += 1
            continue
        procurement_id = int(result.payload["procurement"]["id"])

        for role, decision in sample.get("approvals", []):
            service.approve(procurement_id, ApprovalInput(role=role, decision=decision), actor=actor)
        if sample.get("sourcing"):
            service.select_sourcing(procurement_id, SourcingInput(method=sample["sourcing"]), actor=actor)
        if sample.get("advance_to"):
            service.set_status(procurement_id, StatusChangeInput(status=sample["advance_to"]), actor=actor)
        for vendor_name, amount, count in sample.get("bids", []):
            service.add_bid(
                procurement_id,
                BidInput(vendor_name=vendor_name, bid_amount=amount, number_of_bids=count),
                actor=actor,
            )
        created += 1

    logger.info("sample_procurements_seeded", extra={"created": created, "skipped": skipped})
    return {"created": created, "skipped": skipped}


def register_seed_cli(app: Flask) -> None:
    @app.cli.group("procurement")
    def procurement_group() -> None:
        """Procurement maintenance commands."""

    @procurement_group.command("seed")
    @click.option("--employee-id", type=int, default=None, help="Employee id recorded as indentor.")
    def seed_command(employee_id: int | None) -> None:
        from mmg_procurement import get_workflow_service

        actor = Actor(employee_id=employee_id, role="MMG", display_name="MMG seed") if employee_id else None
        summary = seed_sample_procurements(get_workflow_service(), actor=actor)
        click.echo(f"Seeded {summary['created']} procurements ({summary['skipped']} already present).")
