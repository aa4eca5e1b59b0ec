from mmg_procurement.core.event_bus import (
    BidAdded,
    DomainEvent,
    EventBus,
    ProcurementCreated,
    ProcurementDeleted,
    ProcurementEvent,
    ProcurementStatusChanged,
    PurchaseOrderCreated,
    PurchaseOrderStatusUpdated,
    get_event_bus,
    reset_event_bus_for_tests,
)

__all__ = [
    "DomainEvent",
    "EventBus",
    "ProcurementEvent",
    "ProcurementCreated",
    "ProcurementStatusChanged",
    "BidAdded",
    "PurchaseOrderCreated",
    "PurchaseOrderStatusUpdated",
    "ProcurementDeleted",
    "get_event_bus",
    "reset_event_bus_for_tests",
]
