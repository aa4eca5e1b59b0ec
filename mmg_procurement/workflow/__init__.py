from mmg_procurement.workflow.state_machine import (
    FLOW_GUARDS,
    Transition,
    allowed_operations,
    operation_allowed,
)

__all__ = ["FLOW_GUARDS", "Transition", "allowed_operations", "operation_allowed"]
