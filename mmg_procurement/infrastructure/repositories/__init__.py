from mmg_procurement.infrastructure.repositories.base import BaseRepository, utc_timestamp
from mmg_procurement.infrastructure.repositories.bid_repository import BidRepository
from mmg_procurement.infrastructure.repositories.history_repository import HistoryRepository
from mmg_procurement.infrastructure.repositories.item_repository import ProcurementItemRepository
from mmg_procurement.infrastructure.repositories.procurement_repository import ProcurementRepository
from mmg_procurement.infrastructure.repositories.purchase_order_repository import PurchaseOrderRepository

__all__ = [
    "BaseRepository",
    "BidRepository",
    "HistoryRepository",
    "ProcurementItemRepository",
    "ProcurementRepository",
    "PurchaseOrderRepository",
    "utc_timestamp",
]
