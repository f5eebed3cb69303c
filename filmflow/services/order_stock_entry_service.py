"""
Order Stock Entry Service

Warehouse staff book finished bobbins from stock straight against an order.
stock_ready_kg on the order always equals the sum of its live entries, so
both create and delete recompute the stock side; if that recompute fails
the entry write is undone.
"""
import logging
from typing import Any, Dict, List, Optional

from filmflow.core.exceptions import NotFoundError
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.models import AuditActionType, Order, OrderStockEntry
from filmflow.services.audit_service import AuditService
from filmflow.services.readiness import ReadinessAggregator
from filmflow.services.saga import Saga, SagaResult
from filmflow.store import Store
from filmflow.utils.validation import optional_text, require_positive, require_text

logger = logging.getLogger(__name__)


class OrderStockEntryService:

    def __init__(self, store: Store):
        self.store = store
        self.readiness = ReadinessAggregator(store)
        self.audit = AuditService(store)

    async def _delete(self, entry_id: int) -> None:
        await self.store.delete(OrderStockEntry, entry_id)

    async def _reinsert(self, row: Dict[str, Any]) -> None:
        await self.store.insert(OrderStockEntry, row)

    async def create_entry(
        self,
        actor: Actor,
        order_id: int,
        bobbin_label: Any,
        kg: Any,
        notes: Optional[str] = None,
    ) -> SagaResult:
        require_permission(actor, Permission.ORDER_STOCK_ENTRIES_CREATE)

        label = require_text("bobbin_label", bobbin_label)
        kg = require_positive("kg", kg)
        notes = optional_text("notes", notes)

        order = await self.store.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", resource="order", resource_id=order_id)

        saga = Saga("order_stock_entry.create", order_id=order_id, kg=kg)
        async with saga:
            entry = await self.store.insert(OrderStockEntry, {
                "order_id": order_id,
                "bobbin_label": label,
                "kg": kg,
                "notes": notes,
                "entered_by": actor.user_id,
            })
            saga.on_rollback("delete order stock entry", self._delete, entry.id)

            await self.readiness.recompute_stock_readiness(order_id)

        record = entry.to_json_dict()
        warning = await self.audit.record(
            actor, AuditActionType.INSERT, OrderStockEntry.__tablename__, entry.id, new_data=record,
        )
        if warning:
            saga.warn(warning)

        logger.info(
            "STOCK_ENTRY_METRIC: created id=%s order_id=%s kg=%s",
            entry.id, order_id, kg,
        )
        return saga.result(record)

    async def delete_entry(self, actor: Actor, entry_id: int) -> SagaResult:
        require_permission(actor, Permission.ORDER_STOCK_ENTRIES_DELETE)

        entry = await self.store.get(OrderStockEntry, entry_id)
        if entry is None:
            raise NotFoundError(
                f"Order stock entry {entry_id} not found",
                resource="order_stock_entry",
                resource_id=entry_id,
            )
        captured = entry.to_dict()

        saga = Saga("order_stock_entry.delete", entry_id=entry_id, order_id=entry.order_id)
        async with saga:
            deleted = await self.store.delete(OrderStockEntry, entry_id)
            if deleted is None:
                raise NotFoundError(
                    f"Order stock entry {entry_id} not found",
                    resource="order_stock_entry",
                    resource_id=entry_id,
                )
            saga.on_rollback("re-insert order stock entry", self._reinsert, captured)

            await self.readiness.recompute_stock_readiness(entry.order_id)

        warning = await self.audit.record(
            actor, AuditActionType.DELETE, OrderStockEntry.__tablename__, entry_id, old_data=entry.to_json_dict(),
        )
        if warning:
            saga.warn(warning)

        logger.info(
            "STOCK_ENTRY_METRIC: deleted id=%s order_id=%s kg=%s",
            entry_id, entry.order_id, entry.kg,
        )
        return saga.result({"success": True, "id": entry_id})

    async def list_entries(self, order_id: int) -> List[OrderStockEntry]:
        return await self.store.select(
            OrderStockEntry,
            filters={"order_id": order_id},
            order_by="created_at",
            descending=True,
        )
