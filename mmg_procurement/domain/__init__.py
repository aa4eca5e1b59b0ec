from mmg_procurement.domain.contracts import (
    Actor,
    ApprovalInput,
    BidInput,
    ProcurementCreateInput,
    ProcurementItemInput,
    PurchaseOrderCreateInput,
    PurchaseOrderStatusInput,
    ServiceOutput,
    SourcingInput,
    StatusChangeInput,
    StepResult,
    VendorFinalizationInput,
)
from mmg_procurement.domain.directory import (
    MasterDataDirectory,
    OpenMasterDataDirectory,
    StaticMasterDataDirectory,
)
from mmg_procurement.domain.statuses import ProcurementStatus, parse_status

__all__ = [
    "Actor",
    "ApprovalInput",
    "BidInput",
    "MasterDataDirectory",
    "OpenMasterDataDirectory",
    "ProcurementCreateInput",
    "ProcurementItemInput",
    "ProcurementStatus",
    "PurchaseOrderCreateInput",
    "PurchaseOrderStatusInput",
    "ServiceOutput",
    "SourcingInput",
    "StaticMasterDataDirectory",
    "StatusChangeInput",
    "StepResult",
    "VendorFinalizationInput",
    "parse_status",
]
