"""
Production Bobin Service

Produced rolls count toward production readiness while their status is
produced, warehouse or ready. Each create, status change and delete
recomputes the production side of the owning order.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from filmflow.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from filmflow.core.permissions import (
    Actor,
    Permission,
    can_edit_bobin_notes,
    can_set_bobin_status,
    require_permission,
)
from filmflow.models import AuditActionType, BobinStatus, Order, ProductionBobin
from filmflow.services.audit_service import AuditService
from filmflow.services.readiness import ReadinessAggregator
from filmflow.services.saga import Saga, SagaResult
from filmflow.store import Store
from filmflow.utils.validation import require_non_negative, require_positive, require_text

logger = logging.getLogger(__name__)

# Sentinel for "field not supplied" (None is a valid notes value)
UNSET = object()


class ProductionBobinService:

    def __init__(self, store: Store):
        self.store = store
        self.readiness = ReadinessAggregator(store)
        self.audit = AuditService(store)

    async def _get(self, bobin_id: int) -> ProductionBobin:
        bobin = await self.store.get(ProductionBobin, bobin_id)
        if bobin is None:
            raise NotFoundError(
                f"Production bobin {bobin_id} not found",
                resource="production_bobin",
                resource_id=bobin_id,
            )
        return bobin

    async def _delete(self, bobin_id: int) -> None:
        await self.store.delete(ProductionBobin, bobin_id)

    async def _reinsert(self, row: Dict[str, Any]) -> None:
        await self.store.insert(ProductionBobin, row)

    async def _restore_values(self, bobin_id: int, values: Dict[str, Any]) -> None:
        await self.store.update(ProductionBobin, bobin_id, values)

    async def create_bobin(
        self,
        actor: Actor,
        order_id: int,
        bobbin_no: Any,
        meter: Any,
        kg: Any,
        fire_kg: Any = 0,
        cutting_plan_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> SagaResult:
        require_permission(actor, Permission.BOBINS_CREATE)

        bobbin_no = require_text("bobbin_no", bobbin_no)
        meter = require_positive("meter", meter)
        kg = require_positive("kg", kg)
        fire_kg = require_non_negative("fire_kg", fire_kg if fire_kg is not None else 0)

        order = await self.store.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", resource="order", resource_id=order_id)

        saga = Saga("production_bobin.create", order_id=order_id, kg=kg)
        async with saga:
            bobin = await self.store.insert(ProductionBobin, {
                "order_id": order_id,
                "cutting_plan_id": cutting_plan_id,
                "bobbin_no": bobbin_no,
                "meter": meter,
                "kg": kg,
                "fire_kg": fire_kg,
                "product_type": order.product_type,
                "micron": order.micron,
                "width": order.width,
                "status": BobinStatus.PRODUCED,
                "notes": notes,
                "entered_by": actor.user_id,
            })
            saga.on_rollback("delete production bobin", self._delete, bobin.id)

            await self.readiness.recompute_production_readiness(order_id)

        record = bobin.to_json_dict()
        warning = await self.audit.record(
            actor, AuditActionType.INSERT, ProductionBobin.__tablename__, bobin.id, new_data=record,
        )
        if warning:
            saga.warn(warning)

        logger.info("BOBIN_METRIC: created id=%s order_id=%s kg=%s", bobin.id, order_id, kg)
        return saga.result(record)

    async def update_bobin(
        self,
        actor: Actor,
        bobin_id: int,
        status: Any = UNSET,
        notes: Any = UNSET,
    ) -> SagaResult:
        """
        Patch status and/or notes.

        Role rules:
        - production: notes, status produced/ready
        - warehouse: status warehouse only; notes sent alongside are ignored
        - admin: anything
        """
        require_permission(actor, Permission.BOBINS_UPDATE)

        updates: Dict[str, Any] = {}

        if status is not UNSET and status is not None:
            if status not in BobinStatus.ALL:
                raise ValidationError(
                    f"Invalid bobin status '{status}'. Allowed: {', '.join(BobinStatus.ALL)}",
                    field="status",
                )
            if not can_set_bobin_status(actor.role, status):
                raise PermissionDeniedError(
                    f"Role '{actor.role}' may not set bobin status '{status}'",
                    details={"role": actor.role, "status": status},
                )
            updates["status"] = status

        if notes is not UNSET:
            if notes is not None and not isinstance(notes, str):
                raise ValidationError("notes must be a string or null", field="notes")
            if can_edit_bobin_notes(actor.role):
                updates["notes"] = notes
            elif "status" in updates:
                # Notes ride along on a warehouse scan; drop them
                logger.info("BOBIN_METRIC: notes_ignored id=%s role=%s", bobin_id, actor.role)
            else:
                raise PermissionDeniedError(
                    f"Role '{actor.role}' may not edit bobin notes",
                    details={"role": actor.role},
                )

        if not updates:
            raise ValidationError("No updatable fields supplied")

        bobin = await self._get(bobin_id)
        if updates.get("status") == BobinStatus.WAREHOUSE and bobin.status != BobinStatus.WAREHOUSE:
            updates["warehouse_in_at"] = datetime.now(timezone.utc)
            updates["warehouse_in_by"] = actor.user_id

        previous = {key: getattr(bobin, key) for key in updates}

        saga = Saga("production_bobin.update", bobin_id=bobin_id, order_id=bobin.order_id)
        async with saga:
            updated = await self.store.update(ProductionBobin, bobin_id, updates)
            if updated is None:
                raise NotFoundError(
                    f"Production bobin {bobin_id} not found",
                    resource="production_bobin",
                    resource_id=bobin_id,
                )
            saga.on_rollback("restore bobin values", self._restore_values, bobin_id, previous)

            if "status" in updates:
                await self.readiness.recompute_production_readiness(bobin.order_id)

        record = updated.to_json_dict()
        warning = await self.audit.record(
            actor,
            AuditActionType.UPDATE,
            ProductionBobin.__tablename__,
            bobin_id,
            old_data=bobin.to_json_dict(),
            new_data=record,
        )
        if warning:
            saga.warn(warning)

        logger.info(
            "BOBIN_METRIC: updated id=%s fields=%s status=%s->%s",
            bobin_id, sorted(updates), bobin.status, updated.status,
        )
        return saga.result(record)

    async def delete_bobin(self, actor: Actor, bobin_id: int) -> SagaResult:
        require_permission(actor, Permission.BOBINS_DELETE)

        bobin = await self._get(bobin_id)
        captured = bobin.to_dict()

        saga = Saga("production_bobin.delete", bobin_id=bobin_id, order_id=bobin.order_id)
        async with saga:
            deleted = await self.store.delete(ProductionBobin, bobin_id)
            if deleted is None:
                raise NotFoundError(
                    f"Production bobin {bobin_id} not found",
                    resource="production_bobin",
                    resource_id=bobin_id,
                )
            saga.on_rollback("re-insert production bobin", self._reinsert, captured)

            await self.readiness.recompute_production_readiness(bobin.order_id)

        warning = await self.audit.record(
            actor, AuditActionType.DELETE, ProductionBobin.__tablename__, bobin_id, old_data=bobin.to_json_dict(),
        )
        if warning:
            saga.warn(warning)

        logger.info("BOBIN_METRIC: deleted id=%s order_id=%s", bobin_id, bobin.order_id)
        return saga.result({"success": True, "id": bobin_id})

    async def list_bobins(self, order_id: Optional[int] = None, status: Optional[str] = None) -> List[ProductionBobin]:
        filters: Dict[str, Any] = {}
        if order_id is not None:
            filters["order_id"] = order_id
        if status:
            filters["status"] = status
        return await self.store.select(ProductionBobin, filters=filters, order_by="entered_at", descending=True)
