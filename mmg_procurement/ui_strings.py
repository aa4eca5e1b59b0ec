from __future__ import annotations

from typing import Dict


MESSAGES: Dict[str, Dict[str, str]] = {
    "success": {
        "procurement_created": "Procurement created successfully.",
        "procurement_deleted": "Procurement deleted successfully.",
        "status_updated": "Status updated successfully.",
        "sourcing_updated": "Sourcing method updated successfully.",
        "bid_added": "Bid added successfully.",
        "vendor_finalized": "Vendor finalized successfully.",
        "purchase_order_created": "Purchase order created successfully.",
        "purchase_order_status_updated": "PO status updated successfully.",
    },
    "error": {
        "action_not_allowed_for_status": "This operation is not allowed for the current status.",
        "amount_invalid": "Bid amount must be a positive number.",
        "bid_id_invalid": "Bid ID must be a whole number.",
        "bid_id_required": "Bid ID is required.",
        "bid_not_found": "Bid not found for this procurement.",
        "bid_required": "No vendor selected for this procurement.",
        "date_invalid": "Date is not a valid ISO date.",
        "decision_invalid": "Decision must be Approved or Rejected.",
        "estimated_cost_invalid": "Estimated cost must be a non-negative number.",
        "finalization_date_required": "Finalization date is required.",
        "group_not_found": "Group not found.",
        "indent_number_exists": "Indent number already exists.",
        "indentor_not_found": "Indentor not found.",
        "items_required": "At least one valid item is required.",
        "item_name_required": "Item name is required.",
        "payment_date_required": "Payment completion date is required when marking as Payment Processed.",
        "po_fields_required": "PO number, date, amount, and creation date are required.",
        "po_status_invalid": "Invalid purchase order status provided.",
        "po_value_invalid": "PO value must be a positive number.",
        "procurement_not_found": "Procurement not found.",
        "project_not_found": "Project not found.",
        "purchase_order_not_found": "Purchase order not found.",
        "quantity_invalid": "Quantity must be a positive number.",
        "required_fields_missing": "Missing required fields or items.",
        "role_invalid": "Invalid role for approval.",
        "sourcing_method_invalid": "Invalid sourcing method.",
        "status_invalid": "Status is not a known procurement status.",
        "status_update_date_required": "Status update date is required.",
        "storage_failure": "The operation could not be saved. No changes were applied.",
        "unexpected_error": "The operation could not be completed. Try again shortly.",
        "vendor_name_required": "Vendor name is required.",
    },
}


def get_message(category: str, key: str, default: str | None = None) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if message:
        return message
    if default is not None:
        return default
    return key


def error_message(key: str, default: str | None = None) -> str:
    return get_message("error", key, default)


def success_message(key: str, default: str | None = None) -> str:
    return get_message("success", key, default)
