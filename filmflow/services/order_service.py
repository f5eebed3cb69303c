"""
Order Service

Order creation, readiness reads and operator reconciliation. The cached
readiness totals are never written here directly except by reconcile(),
which recomputes both sides from their detail rows.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from filmflow.core.exceptions import NotFoundError, ValidationError
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.models import AuditActionType, Order, OrderStatus, SourceType
from filmflow.services.audit_service import AuditService
from filmflow.services.readiness import ReadinessAggregator, calculate_ready_metrics
from filmflow.services.saga import SagaResult
from filmflow.store import Store
from filmflow.utils.validation import optional_text, require_positive, require_text, to_number

logger = logging.getLogger(__name__)


def generate_order_number() -> str:
    """Generate unique order number"""
    return f"FF-{uuid.uuid4().hex[:8].upper()}"


class OrderService:

    def __init__(self, store: Store):
        self.store = store
        self.readiness = ReadinessAggregator(store)
        self.audit = AuditService(store)

    async def get_order(self, actor: Actor, order_id: int) -> Order:
        require_permission(actor, Permission.ORDERS_READ)
        order = await self.store.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", resource="order", resource_id=order_id)
        return order

    async def list_orders(self, actor: Actor, status: Optional[str] = None) -> List[Order]:
        require_permission(actor, Permission.ORDERS_READ)
        filters: Dict[str, Any] = {}
        if status:
            filters["status"] = status
        return await self.store.select(Order, filters=filters, order_by="created_at", descending=True)

    async def create_order(
        self,
        actor: Actor,
        customer: Any,
        product_type: Any,
        quantity: Any,
        source_type: str = SourceType.STOCK,
        micron: Any = None,
        width: Any = None,
        unit: str = "kg",
        status: str = OrderStatus.CONFIRMED,
        notes: Optional[str] = None,
    ) -> SagaResult:
        require_permission(actor, Permission.ORDERS_CREATE)

        if source_type not in SourceType.ALL:
            raise ValidationError(
                f"Invalid source_type '{source_type}'. Allowed: {', '.join(SourceType.ALL)}",
                field="source_type",
            )
        if status not in (OrderStatus.DRAFT, OrderStatus.CONFIRMED):
            raise ValidationError("New orders start as draft or confirmed", field="status")

        order = await self.store.insert(Order, {
            "order_no": generate_order_number(),
            "customer": require_text("customer", customer),
            "product_type": require_text("product_type", product_type),
            "quantity": require_positive("quantity", quantity),
            "unit": unit,
            "source_type": source_type,
            "micron": to_number("micron", micron) if micron is not None else None,
            "width": to_number("width", width) if width is not None else None,
            "status": status,
            "notes": optional_text("notes", notes),
            "created_by": actor.user_id,
        })

        warnings: List[str] = []
        record = order.to_json_dict()
        warning = await self.audit.record(actor, AuditActionType.INSERT, Order.__tablename__, order.id, new_data=record)
        if warning:
            warnings.append(warning)

        logger.info("ORDER_METRIC: created id=%s order_no=%s quantity=%s", order.id, order.order_no, order.quantity)
        return SagaResult(record=record, warnings=warnings)

    async def get_readiness(self, actor: Actor, order_id: int) -> Dict[str, Any]:
        order = await self.get_order(actor, order_id)
        metrics = calculate_ready_metrics(order.quantity, order.stock_ready_kg, order.production_ready_kg)
        return {
            "order_id": order.id,
            "status": order.status,
            "source_type": order.source_type,
            **metrics.to_dict(),
        }

    async def reconcile_order(self, actor: Actor, order_id: int) -> Dict[str, Any]:
        """Recompute cached readiness from source rows (after a warning)."""
        require_permission(actor, Permission.ORDERS_RECONCILE)

        before = await self.store.get(Order, order_id)
        if before is None:
            raise NotFoundError(f"Order {order_id} not found", resource="order", resource_id=order_id)

        await self.readiness.reconcile(order_id)
        after = await self.store.get(Order, order_id)

        old_data = {
            "stock_ready_kg": before.stock_ready_kg,
            "production_ready_kg": before.production_ready_kg,
            "status": before.status,
        }
        new_data = {
            "stock_ready_kg": after.stock_ready_kg,
            "production_ready_kg": after.production_ready_kg,
            "status": after.status,
        }
        warnings: List[str] = []
        warning = await self.audit.record(
            actor, AuditActionType.UPDATE, Order.__tablename__, order_id, old_data=old_data, new_data=new_data,
        )
        if warning:
            warnings.append(warning)

        if old_data != new_data:
            logger.warning("ORDER_METRIC: reconcile_corrected order_id=%s before=%s after=%s", order_id, old_data, new_data)

        metrics = calculate_ready_metrics(after.quantity, after.stock_ready_kg, after.production_ready_kg)
        return {
            "order_id": order_id,
            "status": after.status,
            "source_type": after.source_type,
            **metrics.to_dict(),
            "changed": old_data != new_data,
            "warnings": warnings,
        }
