from filmflow.models.order import Order, OrderStatus, SourceType
from filmflow.models.stock_item import StockItem, StockCategory
from filmflow.models.stock_movement import (
    StockMovement,
    MovementDirection,
    MovementReason,
    ReferenceType,
)
from filmflow.models.cutting import CuttingPlan, CuttingPlanStatus, CuttingEntry
from filmflow.models.production import (
    ProductionBobin,
    BobinStatus,
    OrderStockEntry,
)
from filmflow.models.audit_log import AuditLog, AuditActionType

__all__ = [
    "Order",
    "OrderStatus",
    "SourceType",
    "StockItem",
    "StockCategory",
    "StockMovement",
    "MovementDirection",
    "MovementReason",
    "ReferenceType",
    "CuttingPlan",
    "CuttingPlanStatus",
    "CuttingEntry",
    "ProductionBobin",
    "BobinStatus",
    "OrderStockEntry",
    "AuditLog",
    "AuditActionType",
]
