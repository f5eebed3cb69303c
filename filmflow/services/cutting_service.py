"""
Cutting Service

One realized cut under a CuttingPlan touches the entry table, the source
StockItem, the movement ledger, possibly a new leftover StockItem, the
owning order's readiness and the plan status. The store commits each of
those writes separately, so every fatal step registers its undo with the
Saga and a failure rolls back everything written so far.

Fatal:      entry insert, stock decrement, source movement, leftover item,
            leftover movement, leftover link
Non-fatal:  production readiness (the cut already happened on the floor),
            plan planned -> in_progress, audit
"""
import logging
from typing import Any, Dict, List, Optional

from filmflow.core.exceptions import NotFoundError, StoreError, ValidationError
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.models import (
    AuditActionType,
    CuttingEntry,
    CuttingPlan,
    CuttingPlanStatus,
    MovementDirection,
    MovementReason,
    ReferenceType,
    StockCategory,
    StockItem,
)
from filmflow.services.audit_service import AuditService
from filmflow.services.concurrency_guard import ConcurrencyGuard
from filmflow.services.readiness import ReadinessAggregator
from filmflow.services.saga import Saga, SagaResult
from filmflow.services.stock_ledger import StockLedger
from filmflow.store import Store
from filmflow.utils.validation import (
    optional_text,
    require_positive,
    require_positive_int,
    require_text,
)

logger = logging.getLogger(__name__)


class CuttingService:

    def __init__(self, store: Store):
        self.store = store
        self.ledger = StockLedger(store)
        self.guard = ConcurrencyGuard(self.ledger)
        self.readiness = ReadinessAggregator(store)
        self.audit = AuditService(store)

    async def _get_plan(self, plan_id: int) -> CuttingPlan:
        plan = await self.store.get(CuttingPlan, plan_id)
        if plan is None:
            raise NotFoundError(
                f"Cutting plan {plan_id} not found",
                resource="cutting_plan",
                resource_id=plan_id,
            )
        return plan

    async def _restore_entry(self, row: Dict[str, Any]) -> None:
        await self.store.insert(CuttingEntry, row)

    async def _delete_entry(self, entry_id: int) -> None:
        await self.store.delete(CuttingEntry, entry_id)

    async def record_cutting_entry(
        self,
        actor: Actor,
        cutting_plan_id: int,
        bobbin_label: Any,
        cut_width: Any,
        cut_kg: Any,
        cut_quantity: Any = 1,
        is_order_piece: bool = True,
        machine_no: Optional[str] = None,
        notes: Optional[str] = None,
        permission: str = Permission.CUTTING_ENTRIES_CREATE,
    ) -> SagaResult:
        """
        Record one cut.

        Args:
            actor: Caller; must hold `permission`
            is_order_piece: True when the piece goes to the order, False
                when it is leftover returned to stock as a new item
            permission: Authorization the calling surface requires

        Returns:
            SagaResult with the entry as a JSON-ready dict and any warnings

        Raises:
            ValidationError, NotFoundError, InsufficientStockError,
            ConflictError, PermissionDeniedError, InternalError
        """
        require_permission(actor, permission)

        plan = await self._get_plan(cutting_plan_id)

        label = require_text("bobbin_label", bobbin_label)
        width = require_positive("cut_width", cut_width)
        kg = require_positive("cut_kg", cut_kg)
        quantity = require_positive_int("cut_quantity", cut_quantity if cut_quantity is not None else 1)
        notes = optional_text("notes", notes)
        is_order_piece = bool(is_order_piece)

        if plan.status == CuttingPlanStatus.CANCELLED:
            raise ValidationError(f"Cutting plan {plan.id} is cancelled", field="cutting_plan_id")

        saga = Saga(
            "cutting_entry.record",
            plan_id=plan.id,
            order_id=plan.order_id,
            cut_kg=kg,
            is_order_piece=is_order_piece,
        )

        async with saga:
            entry = await self.store.insert(CuttingEntry, {
                "cutting_plan_id": plan.id,
                "order_id": plan.order_id,
                "source_stock_id": plan.source_stock_id,
                "bobbin_label": label,
                "cut_width": width,
                "cut_kg": kg,
                "cut_quantity": quantity,
                "is_order_piece": is_order_piece,
                "entered_by": actor.user_id,
                "machine_no": machine_no,
                "notes": notes,
            })
            saga.on_rollback("delete cutting entry", self._delete_entry, entry.id)

            if plan.source_stock_id is not None:
                change = await self.guard.take(plan.source_stock_id, kg)
                saga.on_rollback("restore source stock", self.ledger.revert, change)

                movement = await self.ledger.record_movement(
                    stock_item_id=plan.source_stock_id,
                    direction=MovementDirection.OUT,
                    kg=kg,
                    quantity=quantity,
                    reason=MovementReason.CUTTING_SOURCE,
                    reference_type=ReferenceType.CUTTING_ENTRY,
                    reference_id=entry.id,
                    previous_kg=change.previous_kg,
                    new_kg=change.new_kg,
                    notes=f"Cut {label} for order {plan.order_id}",
                    created_by=actor.user_id,
                )
                saga.on_rollback("delete source movement", self.ledger.delete_movement, movement.id)

            if not is_order_piece:
                leftover = await self.ledger.create_stock_item({
                    "category": StockCategory.FILM,
                    "product": plan.source_product,
                    "micron": plan.source_micron,
                    "width": width,
                    "kg": kg,
                    "quantity": quantity,
                    "lot_no": label,
                    "notes": f"Cutting leftover - order {plan.order_id}",
                })
                saga.on_rollback("delete leftover stock item", self.ledger.delete_stock_item, leftover.id)

                leftover_movement = await self.ledger.record_movement(
                    stock_item_id=leftover.id,
                    direction=MovementDirection.IN,
                    kg=kg,
                    quantity=quantity,
                    reason=MovementReason.CUTTING_LEFTOVER,
                    reference_type=ReferenceType.CUTTING_ENTRY,
                    reference_id=entry.id,
                    previous_kg=0.0,
                    new_kg=kg,
                    notes=f"Leftover {label} from plan {plan.id}",
                    created_by=actor.user_id,
                )
                saga.on_rollback("delete leftover movement", self.ledger.delete_movement, leftover_movement.id)

                entry = await self.store.update(CuttingEntry, entry.id, {"leftover_stock_id": leftover.id})
                if entry is None:
                    raise StoreError("Cutting entry vanished before the leftover could be linked")

        if is_order_piece:
            try:
                await self.readiness.recompute_production_readiness(plan.order_id)
            except Exception as e:
                saga.warn(
                    f"Order {plan.order_id} readiness could not be updated ({e}); "
                    f"reconcile the order"
                )

        if plan.status == CuttingPlanStatus.PLANNED:
            try:
                await self.store.update(
                    CuttingPlan,
                    plan.id,
                    {"status": CuttingPlanStatus.IN_PROGRESS},
                    expected={"status": CuttingPlanStatus.PLANNED},
                )
            except Exception as e:
                # Plan status is cosmetic for the cut itself
                logger.warning(
                    "CUTTING_METRIC: plan_advance_failed plan_id=%s error=%s: %s",
                    plan.id, type(e).__name__, e,
                )

        record = entry.to_json_dict()
        warning = await self.audit.record(
            actor, AuditActionType.INSERT, CuttingEntry.__tablename__, entry.id, new_data=record,
        )
        if warning:
            saga.warn(warning)

        logger.info(
            "CUTTING_METRIC: entry_recorded id=%s plan_id=%s order_id=%s kg=%s order_piece=%s warnings=%d",
            entry.id, plan.id, plan.order_id, kg, is_order_piece, len(saga.warnings),
        )
        return saga.result(record)

    async def delete_cutting_entry(self, actor: Actor, entry_id: int) -> SagaResult:
        """
        Corrective deletion of a cut: puts the consumed kg back on the
        source item, takes the leftover back out of stock, and recomputes
        readiness for order pieces. Fully compensated.
        """
        require_permission(actor, Permission.CUTTING_ENTRIES_DELETE)

        entry = await self.store.get(CuttingEntry, entry_id)
        if entry is None:
            raise NotFoundError(
                f"Cutting entry {entry_id} not found",
                resource="cutting_entry",
                resource_id=entry_id,
            )
        captured = entry.to_dict()
        kg = float(entry.cut_kg)

        saga = Saga("cutting_entry.delete", entry_id=entry_id, order_id=entry.order_id)

        async with saga:
            deleted = await self.store.delete(CuttingEntry, entry_id)
            if deleted is None:
                raise NotFoundError(
                    f"Cutting entry {entry_id} not found",
                    resource="cutting_entry",
                    resource_id=entry_id,
                )
            saga.on_rollback("re-insert cutting entry", self._restore_entry, captured)

            if entry.source_stock_id is not None:
                await self._restore_source(saga, actor, entry, kg)

            if not entry.is_order_piece and entry.leftover_stock_id is not None:
                await self._reverse_leftover(saga, actor, entry, kg)

            if entry.is_order_piece:
                await self.readiness.recompute_production_readiness(entry.order_id)

        warning = await self.audit.record(
            actor, AuditActionType.DELETE, CuttingEntry.__tablename__, entry_id, old_data=entry.to_json_dict(),
        )
        if warning:
            saga.warn(warning)

        logger.info(
            "CUTTING_METRIC: entry_deleted id=%s order_id=%s kg=%s order_piece=%s",
            entry_id, entry.order_id, kg, entry.is_order_piece,
        )
        return saga.result({"success": True, "id": entry_id})

    async def _restore_source(self, saga: Saga, actor: Actor, entry: CuttingEntry, kg: float) -> None:
        try:
            snapshot = await self.ledger.snapshot(entry.source_stock_id)
        except NotFoundError:
            logger.warning(
                "CUTTING_METRIC: reversal_source_missing entry_id=%s stock_item_id=%s kg=%s",
                entry.id, entry.source_stock_id, kg,
            )
            saga.warn(
                f"Source stock item {entry.source_stock_id} no longer exists; "
                f"{kg} kg from the deleted cut was not returned to stock"
            )
            return

        change = await self.ledger.increment_stock(snapshot, kg)
        saga.on_rollback("take restored kg back off source", self.ledger.revert, change)

        movement = await self.ledger.record_movement(
            stock_item_id=entry.source_stock_id,
            direction=MovementDirection.IN,
            kg=kg,
            quantity=entry.cut_quantity,
            reason=MovementReason.CUTTING_REVERSAL,
            reference_type=ReferenceType.CUTTING_ENTRY,
            reference_id=entry.id,
            previous_kg=change.previous_kg,
            new_kg=change.new_kg,
            notes=f"Reversal of cut {entry.bobbin_label}",
            created_by=actor.user_id,
        )
        saga.on_rollback("delete reversal movement", self.ledger.delete_movement, movement.id)

    async def _reverse_leftover(self, saga: Saga, actor: Actor, entry: CuttingEntry, kg: float) -> None:
        leftover = await self.store.get(StockItem, entry.leftover_stock_id)
        if leftover is None:
            saga.warn(f"Leftover stock item {entry.leftover_stock_id} no longer exists")
            return

        movement_values = dict(
            direction=MovementDirection.OUT,
            kg=kg,
            quantity=entry.cut_quantity,
            reason=MovementReason.CUTTING_REVERSAL,
            reference_type=ReferenceType.CUTTING_ENTRY,
            reference_id=entry.id,
            notes=f"Reversal of leftover {entry.bobbin_label}",
            created_by=actor.user_id,
        )

        if float(leftover.kg) == kg:
            # Untouched leftover: remove the item itself
            movement = await self.ledger.record_movement(
                stock_item_id=leftover.id, previous_kg=kg, new_kg=0.0, **movement_values,
            )
            saga.on_rollback("delete leftover reversal movement", self.ledger.delete_movement, movement.id)

            linked = await self.ledger.linked_movement_ids(leftover.id)
            removed = await self.ledger.delete_stock_item(leftover.id)
            if removed is not None:
                saga.on_rollback(
                    "re-insert leftover stock item", self.ledger.restore_stock_item, removed.to_dict(), linked,
                )
            return

        change = await self.guard.take(leftover.id, kg)
        saga.on_rollback("restore leftover stock", self.ledger.revert, change)
        movement = await self.ledger.record_movement(
            stock_item_id=leftover.id, previous_kg=change.previous_kg, new_kg=change.new_kg, **movement_values,
        )
        saga.on_rollback("delete leftover reversal movement", self.ledger.delete_movement, movement.id)

    async def list_cutting_entries(
        self,
        plan_id: Optional[int] = None,
        order_id: Optional[int] = None,
    ) -> List[CuttingEntry]:
        filters: Dict[str, Any] = {}
        if plan_id is not None:
            filters["cutting_plan_id"] = plan_id
        if order_id is not None:
            filters["order_id"] = order_id
        return await self.store.select(CuttingEntry, filters=filters, order_by="created_at", descending=True)
