"""Transactional write path for procurement operations.

Every write runs inside ``with_transaction``: one pooled connection, one
database transaction, rollback on any exception. ``execute`` adds the locked
re-read of the procurement and keeps the status column and the history ledger
moving together.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, TypeVar

from mmg_procurement.db import ConnectionPool, Database, driver_error_types
from mmg_procurement.domain.contracts import Actor, StepResult
from mmg_procurement.domain.directory import MasterDataDirectory, OpenMasterDataDirectory
from mmg_procurement.domain.statuses import ProcurementStatus, parse_status
from mmg_procurement.errors import AppError, NotFoundError, StorageError
from mmg_procurement.infrastructure.repositories import (
    BidRepository,
    HistoryRepository,
    ProcurementItemRepository,
    ProcurementRepository,
    PurchaseOrderRepository,
)
from mmg_procurement.observability import observe_transition, observe_workflow_operation
from mmg_procurement.workflow.state_machine import Transition, allowed_operations


logger = logging.getLogger("mmg_procurement.workflow")

T = TypeVar("T")
Step = Callable[[Database, Dict[str, Any], ProcurementStatus], StepResult]


@dataclass(frozen=True)
class ExecutionOutcome:
    view: Dict[str, Any]
    transition: Transition | None = None
    payload: Dict[str, Any] = field(default_factory=dict)


class TransactionalOrchestrator:
    def __init__(
        self,
        pool: ConnectionPool,
        *,
        procurements: ProcurementRepository | None = None,
        items: ProcurementItemRepository | None = None,
        bids: BidRepository | None = None,
        purchase_orders: PurchaseOrderRepository | None = None,
        history: HistoryRepository | None = None,
        directory: MasterDataDirectory | None = None,
    ) -> None:
        self.pool = pool
        self.procurements = procurements or ProcurementRepository()
        self.items = items or ProcurementItemRepository()
        self.bids = bids or BidRepository()
        self.purchase_orders = purchase_orders or PurchaseOrderRepository()
        self.history = history or HistoryRepository()
        self.directory = directory or OpenMasterDataDirectory()

    def with_transaction(self, fn: Callable[[Database], T], *, operation: str) -> T:
        return self._run(fn, operation=operation, transactional=True)

    def read(self, fn: Callable[[Database], T], *, operation: str) -> T:
        return self._run(fn, operation=operation, transactional=False)

    def _run(self, fn: Callable[[Database], T], *, operation: str, transactional: bool) -> T:
        started = time.perf_counter()
        try:
            with self.pool.connection() as db:
                if transactional:
                    with db.transaction():
                        result = fn(db)
                else:
                    result = fn(db)
        except AppError as exc:
            self._observe(operation, exc.code, started)
            logger.log(
                logging.ERROR if exc.critical else logging.WARNING,
                "workflow_operation_rejected",
                extra={"operation": operation, "error_code": exc.code, "error_payload": exc.payload},
            )
            raise
        except driver_error_types() as exc:
            self._observe(operation, "storage_error", started)
            logger.exception(
                "workflow_storage_failure",
                extra={"operation": operation, "db_backend": self.pool.backend},
            )
            raise StorageError(details=str(exc), payload={"operation": operation}) from exc
        self._observe(operation, "ok", started)
        return result

    @staticmethod
    def _observe(operation: str, outcome: str, started: float) -> None:
        observe_workflow_operation(operation, outcome, (time.perf_counter() - started) * 1000.0)

    def execute(
        self,
        procurement_id: int,
        step: Step,
        *,
        operation: str,
        actor: Actor | None = None,
    ) -> ExecutionOutcome:
        changed_by = actor.employee_id if actor else None

        def _apply(db: Database) -> ExecutionOutcome:
            current = self.procurements.get_for_update(db, procurement_id)
            if current is None:
                raise NotFoundError(payload={"procurement_id": procurement_id})
            old_status = parse_status(current["status"])
            result = step(db, current, old_status)

            transition = None
            new_status = result.new_status
            if new_status is not None and new_status != old_status:
                self.procurements.update_status(db, procurement_id, new_status.label, result.fields)
                self.history.append(
                    db,
                    procurement_id=procurement_id,
                    old_status=old_status.label,
                    new_status=new_status.label,
                    remarks=result.remarks,
                    status_date=result.status_date,
                    changed_by=changed_by,
                )
                transition = Transition(operation=operation, old=old_status, new=new_status)
            elif result.fields:
                self.procurements.update_fields(db, procurement_id, result.fields)

            return ExecutionOutcome(
                view=self.aggregate_view(db, procurement_id),
                transition=transition,
                payload=dict(result.payload),
            )

        outcome = self.with_transaction(_apply, operation=operation)
        if outcome.transition is not None:
            observe_transition(outcome.transition.new.label)
            logger.info(
                "workflow_transition_applied",
                extra={
                    "operation": operation,
                    "procurement_id": procurement_id,
                    "old_status": outcome.transition.old.label,
                    "new_status": outcome.transition.new.label,
                    "changed_by": changed_by,
                },
            )
        return outcome

    def aggregate_view(self, db: Database, procurement_id: int) -> Dict[str, Any] | None:
        row = self.procurements.get_by_id(db, procurement_id)
        if row is None:
            return None
        view = dict(row)
        view["project_name"] = self.directory.project_name(row.get("project_id"))
        view["group_name"] = self.directory.group_name(row.get("group_id"))
        view["indentor_name"] = self.directory.employee_name(row.get("indentor_id"))
        view["items"] = self.items.list_by_procurement(db, procurement_id)
        view["bids"] = self.bids.list_by_procurement(db, procurement_id)
        view["purchase_orders"] = self.purchase_orders.list_by_procurement(db, procurement_id)
        view["history"] = self.history.list_by_procurement(db, procurement_id)
        view["allowed_operations"] = allowed_operations(row["status"])
        return view
