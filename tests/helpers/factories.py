from __future__ import annotations

from mmg_procurement.domain.contracts import Actor, ProcurementCreateInput, ProcurementItemInput


MMG_USER = Actor(employee_id=102347, role="MMG", display_name="Asha Menon")


def make_create_input(indent_number: str = "IND-001", **overrides) -> ProcurementCreateInput:
    values = {
        "indent_number": indent_number,
        "title": "Oscilloscope for signal lab",
        "project_id": 1,
        "group_id": 1,
        "purchase_type": "Capital Equipment",
        "delivery_place": "CDAC KP",
        "estimated_cost": 12000.0,
        "indent_date": "2024-01-15",
        "mmg_acceptance_date": "2024-01-16",
        "items": [ProcurementItemInput(item_name="Digital oscilloscope", quantity=1, specifications="200 MHz, 4 channel")],
    }
    values.update(overrides)
    return ProcurementCreateInput(**values)
