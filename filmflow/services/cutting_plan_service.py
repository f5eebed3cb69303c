"""
Cutting Plan Service

Plans move planned -> in_progress -> completed, or to cancelled from
either open state. Recording the first cut moves a plan to in_progress
(see CuttingService); every other move goes through transition_plan().
"""
import logging
from typing import Any, Dict, List, Optional

from filmflow.core.exceptions import ConflictError, NotFoundError, ValidationError
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.models import (
    AuditActionType,
    CuttingPlan,
    CuttingPlanStatus,
    Order,
    OrderStatus,
    StockItem,
)
from filmflow.services.audit_service import AuditService
from filmflow.services.saga import SagaResult
from filmflow.store import Store
from filmflow.utils.validation import optional_positive, optional_text, require_positive_int, require_text

logger = logging.getLogger(__name__)


class CuttingPlanService:

    def __init__(self, store: Store):
        self.store = store
        self.audit = AuditService(store)

    async def get_plan(self, plan_id: int) -> CuttingPlan:
        plan = await self.store.get(CuttingPlan, plan_id)
        if plan is None:
            raise NotFoundError(f"Cutting plan {plan_id} not found", resource="cutting_plan", resource_id=plan_id)
        return plan

    async def create_plan(
        self,
        actor: Actor,
        order_id: int,
        source_stock_id: Optional[int] = None,
        source_product: Optional[str] = None,
        target_width: Any = None,
        target_kg: Any = None,
        target_quantity: Any = 1,
        assigned_to: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> SagaResult:
        require_permission(actor, Permission.CUTTING_PLANS_CREATE)

        order = await self.store.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", resource="order", resource_id=order_id)

        values: Dict[str, Any] = {
            "order_id": order_id,
            "target_width": optional_positive("target_width", target_width),
            "target_kg": optional_positive("target_kg", target_kg),
            "target_quantity": require_positive_int(
                "target_quantity", target_quantity if target_quantity is not None else 1
            ),
            "assigned_to": assigned_to,
            "planned_by": actor.user_id,
            "status": CuttingPlanStatus.PLANNED,
            "notes": optional_text("notes", notes),
        }

        if source_stock_id is not None:
            source = await self.store.get(StockItem, source_stock_id)
            if source is None:
                raise NotFoundError(
                    f"Stock item {source_stock_id} not found",
                    resource="stock_item",
                    resource_id=source_stock_id,
                )
            values.update({
                "source_stock_id": source.id,
                "source_product": source.product,
                "source_micron": source.micron,
                "source_width": source.width,
                "source_kg": source.kg,
            })
        else:
            values["source_product"] = require_text("source_product", source_product or order.product_type)

        plan = await self.store.insert(CuttingPlan, values)

        warnings: List[str] = []
        if order.status not in OrderStatus.TERMINAL and order.status not in (OrderStatus.READY, OrderStatus.IN_PRODUCTION):
            moved = await self.store.update(
                Order,
                order_id,
                {"status": OrderStatus.IN_PRODUCTION},
                expected={"status": order.status},
            )
            if moved is None:
                warnings.append(f"Order {order_id} status changed concurrently; left as is")

        record = plan.to_json_dict()
        warning = await self.audit.record(
            actor, AuditActionType.INSERT, CuttingPlan.__tablename__, plan.id, new_data=record,
        )
        if warning:
            warnings.append(warning)

        logger.info(
            "CUTTING_METRIC: plan_created id=%s order_id=%s source_stock_id=%s target_kg=%s",
            plan.id, order_id, plan.source_stock_id, plan.target_kg,
        )
        return SagaResult(record=record, warnings=warnings)

    async def transition_plan(self, actor: Actor, plan_id: int, target_status: str) -> SagaResult:
        require_permission(actor, Permission.CUTTING_PLANS_TRANSITION)

        if target_status not in CuttingPlanStatus.ALL:
            raise ValidationError(f"Unknown cutting plan status '{target_status}'", field="status")

        plan = await self.get_plan(plan_id)
        allowed = CuttingPlanStatus.TRANSITIONS.get(plan.status, frozenset())
        if target_status not in allowed:
            raise ValidationError(
                f"Cannot move cutting plan from '{plan.status}' to '{target_status}'",
                field="status",
                details={"from": plan.status, "to": target_status},
            )

        updated = await self.store.update(
            CuttingPlan,
            plan_id,
            {"status": target_status},
            expected={"status": plan.status},
        )
        if updated is None:
            raise ConflictError(
                f"Cutting plan {plan_id} changed status concurrently; reload and try again",
                code="PLAN_CONFLICT",
                details={"plan_id": plan_id, "expected_status": plan.status},
            )

        warnings: List[str] = []
        record = updated.to_json_dict()
        warning = await self.audit.record(
            actor,
            AuditActionType.UPDATE,
            CuttingPlan.__tablename__,
            plan_id,
            old_data={"status": plan.status},
            new_data={"status": target_status},
        )
        if warning:
            warnings.append(warning)

        logger.info("CUTTING_METRIC: plan_transition id=%s %s->%s", plan_id, plan.status, target_status)
        return SagaResult(record=record, warnings=warnings)

    async def list_plans(self, order_id: Optional[int] = None, status: Optional[str] = None) -> List[CuttingPlan]:
        filters: Dict[str, Any] = {}
        if order_id is not None:
            filters["order_id"] = order_id
        if status:
            filters["status"] = status
        return await self.store.select(CuttingPlan, filters=filters, order_by="created_at", descending=True)
