from mmg_procurement.application.orchestrator import ExecutionOutcome, TransactionalOrchestrator
from mmg_procurement.application.workflow_service import WorkflowService

__all__ = ["ExecutionOutcome", "TransactionalOrchestrator", "WorkflowService"]
