"""
Stock Service

Manual stock writes by warehouse staff. Each kg change is paired with a
ledger movement; a movement that cannot be written undoes the change.
"""
import logging
from typing import Any, List, Optional

from filmflow.core.config import settings
from filmflow.core.exceptions import ValidationError
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.models import (
    AuditActionType,
    MovementDirection,
    MovementReason,
    ReferenceType,
    StockCategory,
    StockItem,
    StockMovement,
)
from filmflow.services.audit_service import AuditService, clamp_limit
from filmflow.services.concurrency_guard import ConcurrencyGuard
from filmflow.services.saga import Saga, SagaResult
from filmflow.services.stock_ledger import StockLedger
from filmflow.store import Store
from filmflow.utils.validation import (
    optional_text,
    require_non_negative,
    require_text,
    to_number,
)

logger = logging.getLogger(__name__)


class StockService:

    def __init__(self, store: Store):
        self.store = store
        self.ledger = StockLedger(store)
        self.guard = ConcurrencyGuard(self.ledger)
        self.audit = AuditService(store)

    async def create_stock_item(
        self,
        actor: Actor,
        category: str,
        product: Any,
        kg: Any = 0,
        quantity: Any = 0,
        micron: Any = None,
        width: Any = None,
        lot_no: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SagaResult:
        require_permission(actor, Permission.STOCK_WRITE)

        if category not in StockCategory.ALL:
            raise ValidationError(
                f"Invalid category '{category}'. Allowed: {', '.join(StockCategory.ALL)}",
                field="category",
            )
        product = require_text("product", product)
        kg = require_non_negative("kg", kg if kg is not None else 0)
        quantity = require_non_negative("quantity", quantity if quantity is not None else 0)
        if quantity and not float(quantity).is_integer():
            raise ValidationError("quantity must be a whole number", field="quantity")

        saga = Saga("stock_item.create", product=product, kg=kg)
        async with saga:
            item = await self.ledger.create_stock_item({
                "category": category,
                "product": product,
                "micron": to_number("micron", micron) if micron is not None else None,
                "width": to_number("width", width) if width is not None else None,
                "kg": kg,
                "quantity": int(quantity),
                "lot_no": lot_no,
                "notes": optional_text("notes", notes),
            })
            saga.on_rollback("delete stock item", self.ledger.delete_stock_item, item.id)

            if kg > 0:
                await self.ledger.record_movement(
                    stock_item_id=item.id,
                    direction=MovementDirection.IN,
                    kg=kg,
                    quantity=int(quantity),
                    reason=MovementReason.MANUAL_ENTRY,
                    reference_type=ReferenceType.STOCK_ITEM,
                    reference_id=item.id,
                    previous_kg=0.0,
                    new_kg=kg,
                    created_by=actor.user_id,
                )

        record = item.to_json_dict()
        warning = await self.audit.record(
            actor, AuditActionType.INSERT, StockItem.__tablename__, item.id, new_data=record,
        )
        if warning:
            saga.warn(warning)
        return saga.result(record)

    async def adjust_stock_item(
        self,
        actor: Actor,
        stock_item_id: int,
        kg_delta: Any,
        notes: Optional[str] = None,
    ) -> SagaResult:
        """
        Manual correction. Removals go through the concurrency guard and
        are rejected on underflow; additions are a compare-and-swap on the
        current value.
        """
        require_permission(actor, Permission.STOCK_WRITE)

        delta = to_number("kg_delta", kg_delta)
        if delta == 0:
            raise ValidationError("kg_delta must not be 0", field="kg_delta")

        saga = Saga("stock_item.adjust", stock_item_id=stock_item_id, kg_delta=delta)
        async with saga:
            if delta < 0:
                change = await self.guard.take(stock_item_id, -delta)
            else:
                snapshot = await self.ledger.snapshot(stock_item_id)
                change = await self.ledger.increment_stock(snapshot, delta)
            saga.on_rollback("revert stock adjustment", self.ledger.revert, change)

            await self.ledger.record_movement(
                stock_item_id=stock_item_id,
                direction=MovementDirection.IN if delta > 0 else MovementDirection.OUT,
                kg=abs(delta),
                reason=MovementReason.ADJUSTMENT,
                reference_type=ReferenceType.STOCK_ITEM,
                reference_id=stock_item_id,
                previous_kg=change.previous_kg,
                new_kg=change.new_kg,
                notes=optional_text("notes", notes),
                created_by=actor.user_id,
            )

        item = await self.store.get(StockItem, stock_item_id)
        record = item.to_json_dict() if item is not None else {"id": stock_item_id, "kg": change.new_kg}
        warning = await self.audit.record(
            actor,
            AuditActionType.UPDATE,
            StockItem.__tablename__,
            stock_item_id,
            old_data={"kg": change.previous_kg, "quantity": change.previous_quantity},
            new_data={"kg": change.new_kg, "quantity": change.new_quantity},
        )
        if warning:
            saga.warn(warning)

        logger.info(
            "STOCK_METRIC: adjusted stock_item_id=%s delta=%s kg=%s->%s",
            stock_item_id, delta, change.previous_kg, change.new_kg,
        )
        return saga.result(record)

    async def list_stock_items(
        self,
        actor: Actor,
        category: Optional[str] = None,
        product: Optional[str] = None,
    ) -> List[StockItem]:
        require_permission(actor, Permission.STOCK_READ)
        if category is not None and category not in StockCategory.ALL:
            raise ValidationError(f"Invalid category '{category}'", field="category")
        return await self.ledger.list_items(category=category, product=product)

    async def list_movements(
        self,
        actor: Actor,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[StockMovement]:
        require_permission(actor, Permission.STOCK_READ)
        limit = clamp_limit(limit, settings.STOCK_MOVEMENTS_DEFAULT_LIMIT, settings.STOCK_MOVEMENTS_MAX_LIMIT)

        stock_item_ids = None
        if category:
            if category not in StockCategory.ALL:
                raise ValidationError(f"Invalid category '{category}'", field="category")
            items = await self.ledger.list_items(category=category)
            stock_item_ids = [item.id for item in items]
            if not stock_item_ids:
                return []
        return await self.ledger.list_movements(stock_item_ids=stock_item_ids, limit=limit)
