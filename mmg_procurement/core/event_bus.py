"""In-process domain events for the procurement lifecycle.

Events are published by the workflow service after the owning transaction has
committed. Handlers run synchronously in subscription order; a handler
subscribed to ``ProcurementEvent`` receives every procurement event.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Callable, Dict, List, Type

from mmg_procurement.observability import observe_domain_event_emitted


logger = logging.getLogger("mmg_procurement")

EventHandler = Callable[["DomainEvent"], None]


def _as_utc(value) -> datetime:
    if not isinstance(value, datetime):
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: str = ""
    occurred_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_id", str(self.event_id or "").strip() or uuid.uuid4().hex)
        object.__setattr__(self, "occurred_at", _as_utc(self.occurred_at))

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"event_type": self.event_type}
        payload.update(asdict(self))
        payload["occurred_at"] = self.occurred_at.isoformat().replace("+00:00", "Z")
        return payload


@dataclass(frozen=True, kw_only=True)
class ProcurementEvent(DomainEvent):
    procurement_id: int


@dataclass(frozen=True, kw_only=True)
class ProcurementCreated(ProcurementEvent):
    indent_number: str
    status: str
    items_created: int = 0


@dataclass(frozen=True, kw_only=True)
class ProcurementStatusChanged(ProcurementEvent):
    operation: str
    old_status: str | None
    new_status: str
    changed_by: int | None = None


@dataclass(frozen=True, kw_only=True)
class BidAdded(ProcurementEvent):
    bid_id: int
    vendor_name: str
    bid_amount: float


@dataclass(frozen=True, kw_only=True)
class PurchaseOrderCreated(ProcurementEvent):
    purchase_order_id: int
    po_number: str
    vendor_name: str


@dataclass(frozen=True, kw_only=True)
class PurchaseOrderStatusUpdated(ProcurementEvent):
    purchase_order_id: int
    status: str


@dataclass(frozen=True, kw_only=True)
class ProcurementDeleted(ProcurementEvent):
    indent_number: str


class EventBus:
    def __init__(self) -> None:
        self._lock = RLock()
        self._subscriptions: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        with self._lock:
            self._subscriptions.setdefault(event_type, []).append(handler)

    def _handlers_for(self, event: DomainEvent) -> List[EventHandler]:
        with self._lock:
            handlers: List[EventHandler] = []
            for event_type in type(event).__mro__:
                handlers.extend(self._subscriptions.get(event_type, ()))
            return handlers

    def publish(self, event: DomainEvent) -> None:
        observe_domain_event_emitted(event.event_type)
        for handler in self._handlers_for(event):
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "event_handler_failed",
                    extra={
                        "event_type": event.event_type,
                        "event_id": event.event_id,
                        "procurement_id": getattr(event, "procurement_id", None),
                    },
                )

    def clear(self) -> None:
        with self._lock:
            self._subscriptions.clear()


_default_bus = EventBus()


def get_event_bus() -> EventBus:
    return _default_bus


def reset_event_bus_for_tests() -> None:
    _default_bus.clear()
