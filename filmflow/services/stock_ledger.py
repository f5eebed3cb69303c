"""
Stock Ledger

Owns StockItem kg/quantity and the append-only StockMovement log.

Every kg change goes through a conditional write: the row is only touched
if it still holds the kg value this process last read. The caller learns
about a lost race as ConflictError and decides what to do; nothing here
retries a user action.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from filmflow.core.exceptions import ConflictError, NotFoundError
from filmflow.models import StockItem, StockMovement
from filmflow.store import Store
from filmflow.utils.validation import round_kg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockSnapshot:
    stock_item_id: int
    kg: float
    quantity: int


@dataclass(frozen=True)
class StockChange:
    """Before/after values of one applied kg change."""
    stock_item_id: int
    previous_kg: float
    previous_quantity: int
    new_kg: float
    new_quantity: int

    @property
    def delta_kg(self) -> float:
        return round_kg(self.new_kg - self.previous_kg)


class StockLedger:

    def __init__(self, store: Store):
        self.store = store

    async def snapshot(self, stock_item_id: int) -> StockSnapshot:
        item = await self.store.get(StockItem, stock_item_id)
        if item is None:
            raise NotFoundError(
                f"Stock item {stock_item_id} not found",
                resource="stock_item",
                resource_id=stock_item_id,
            )
        return StockSnapshot(stock_item_id=item.id, kg=float(item.kg or 0), quantity=int(item.quantity or 0))

    async def _conflict_or_missing(self, stock_item_id: int, message: str) -> Exception:
        current = await self.store.get(StockItem, stock_item_id)
        if current is None:
            return NotFoundError(
                f"Stock item {stock_item_id} not found",
                resource="stock_item",
                resource_id=stock_item_id,
            )
        return ConflictError(
            message,
            details={"stock_item_id": stock_item_id, "current_kg": current.kg},
        )

    async def decrement_stock(self, snapshot: StockSnapshot, kg: float) -> StockChange:
        """
        Subtract kg from the item in one conditional write.

        The write lands only if the row still holds snapshot.kg and that is
        at least kg. Quantity is zeroed once kg is exhausted.

        Raises:
            ConflictError: the row changed since the snapshot
            NotFoundError: the row is gone
        """
        new_kg = max(round_kg(snapshot.kg - kg), 0.0)
        new_quantity = 0 if new_kg <= 0 else snapshot.quantity

        updated = await self.store.update(
            StockItem,
            snapshot.stock_item_id,
            {"kg": new_kg, "quantity": new_quantity},
            expected={"kg": snapshot.kg},
            at_least={"kg": kg},
        )
        if updated is None:
            raise await self._conflict_or_missing(
                snapshot.stock_item_id,
                "Stock changed while the cut was being recorded; reload and try again",
            )

        return StockChange(
            stock_item_id=snapshot.stock_item_id,
            previous_kg=snapshot.kg,
            previous_quantity=snapshot.quantity,
            new_kg=new_kg,
            new_quantity=new_quantity,
        )

    async def increment_stock(self, snapshot: StockSnapshot, kg: float) -> StockChange:
        """
        Add kg back to the item in one conditional write.

        A unit count of zero becomes 1 once the item holds mass again.
        """
        new_kg = round_kg(snapshot.kg + kg)
        new_quantity = snapshot.quantity if snapshot.quantity > 0 else (1 if new_kg > 0 else 0)

        updated = await self.store.update(
            StockItem,
            snapshot.stock_item_id,
            {"kg": new_kg, "quantity": new_quantity},
            expected={"kg": snapshot.kg},
        )
        if updated is None:
            raise await self._conflict_or_missing(
                snapshot.stock_item_id,
                "Stock changed while it was being restored; reload and try again",
            )

        return StockChange(
            stock_item_id=snapshot.stock_item_id,
            previous_kg=snapshot.kg,
            previous_quantity=snapshot.quantity,
            new_kg=new_kg,
            new_quantity=new_quantity,
        )

    async def revert(self, change: StockChange) -> None:
        """
        Undo an applied change (compensation step).

        Puts the exact previous values back when the row still holds what the
        change wrote. If another writer touched the row in between, the
        change's delta is backed out of the current value instead, so that
        writer's effect survives.
        """
        restored = await self.store.update(
            StockItem,
            change.stock_item_id,
            {"kg": change.previous_kg, "quantity": change.previous_quantity},
            expected={"kg": change.new_kg},
        )
        if restored is not None:
            return

        current = await self.snapshot(change.stock_item_id)
        target_kg = round_kg(current.kg - change.delta_kg)
        if target_kg < 0:
            raise ConflictError(
                f"Cannot revert stock item {change.stock_item_id}: only {current.kg} kg left",
                details={"stock_item_id": change.stock_item_id, "delta_kg": change.delta_kg},
            )
        target_quantity = current.quantity
        if target_kg <= 0:
            target_quantity = 0
        elif target_quantity == 0:
            target_quantity = max(change.previous_quantity, 1)

        restored = await self.store.update(
            StockItem,
            change.stock_item_id,
            {"kg": target_kg, "quantity": target_quantity},
            expected={"kg": current.kg},
        )
        if restored is None:
            raise ConflictError(
                f"Stock item {change.stock_item_id} kept changing while being reverted",
                details={"stock_item_id": change.stock_item_id},
            )
        logger.info(
            "STOCK_METRIC: reverted_relative stock_item_id=%s delta_kg=%s new_kg=%s",
            change.stock_item_id, -change.delta_kg, target_kg,
        )

    async def record_movement(
        self,
        stock_item_id: Optional[int],
        direction: str,
        kg: float,
        reason: str,
        quantity: float = 0,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        previous_kg: Optional[float] = None,
        new_kg: Optional[float] = None,
        notes: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> StockMovement:
        movement = await self.store.insert(StockMovement, {
            "stock_item_id": stock_item_id,
            "movement_type": direction,
            "kg": abs(kg),
            "quantity": abs(quantity or 0),
            "previous_kg": previous_kg,
            "new_kg": new_kg,
            "reason": reason,
            "reference_type": reference_type,
            "reference_id": reference_id,
            "notes": notes,
            "created_by": created_by,
        })
        logger.info(
            "STOCK_METRIC: movement_recorded id=%s stock_item_id=%s type=%s kg=%s reason=%s",
            movement.id, stock_item_id, direction, kg, reason,
        )
        return movement

    async def delete_movement(self, movement_id: int) -> None:
        await self.store.delete(StockMovement, movement_id)

    async def create_stock_item(self, fields: Dict[str, Any]) -> StockItem:
        item = await self.store.insert(StockItem, fields)
        logger.info(
            "STOCK_METRIC: item_created id=%s product=%r kg=%s quantity=%s",
            item.id, item.product, item.kg, item.quantity,
        )
        return item

    async def delete_stock_item(self, stock_item_id: int) -> Optional[StockItem]:
        return await self.store.delete(StockItem, stock_item_id)

    async def linked_movement_ids(self, stock_item_id: int) -> List[int]:
        """Ids of the movements that point at an item. Deleting the item nulls these links."""
        movements = await self.store.select(StockMovement, filters={"stock_item_id": stock_item_id})
        return [movement.id for movement in movements]

    async def restore_stock_item(self, row: Dict[str, Any], movement_ids: Sequence[int] = ()) -> StockItem:
        """Re-insert a deleted item under its original id and relink its movements."""
        item = await self.store.insert(StockItem, row)
        for movement_id in movement_ids:
            await self.store.update(StockMovement, movement_id, {"stock_item_id": item.id})
        if movement_ids:
            logger.info("STOCK_METRIC: movements_relinked stock_item_id=%s count=%d", item.id, len(movement_ids))
        return item

    async def list_items(self, category: Optional[str] = None, product: Optional[str] = None) -> List[StockItem]:
        filters: Dict[str, Any] = {}
        if category:
            filters["category"] = category
        if product:
            filters["product"] = product
        return await self.store.select(StockItem, filters=filters, order_by="created_at", descending=True)

    async def list_movements(
        self,
        stock_item_ids: Optional[List[int]] = None,
        limit: Optional[int] = None,
    ) -> List[StockMovement]:
        filters: Dict[str, Any] = {}
        if stock_item_ids is not None:
            filters["stock_item_id"] = list(stock_item_ids)
        return await self.store.select(
            StockMovement,
            filters=filters,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
