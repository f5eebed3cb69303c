"""
Cutting plan routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from filmflow.api.deps import get_current_actor, get_store_dep
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.schemas.cutting import CuttingPlanCreate, CuttingPlanResponse, CuttingPlanTransition
from filmflow.services.cutting_plan_service import CuttingPlanService
from filmflow.store import Store

router = APIRouter()


@router.post("", response_model=CuttingPlanResponse, status_code=status.HTTP_201_CREATED)
async def create_cutting_plan(
    body: CuttingPlanCreate,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    result = await CuttingPlanService(store).create_plan(actor, **body.model_dump())
    return CuttingPlanResponse(**result.record, warnings=result.warnings)


@router.get("", response_model=List[CuttingPlanResponse])
async def list_cutting_plans(
    order_id: Optional[int] = None,
    status: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    require_permission(actor, Permission.ORDERS_READ)
    return await CuttingPlanService(store).list_plans(order_id=order_id, status=status)


@router.get("/{plan_id}", response_model=CuttingPlanResponse)
async def get_cutting_plan(
    plan_id: int,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    require_permission(actor, Permission.ORDERS_READ)
    return await CuttingPlanService(store).get_plan(plan_id)


@router.post("/{plan_id}/transition", response_model=CuttingPlanResponse)
async def transition_cutting_plan(
    plan_id: int,
    body: CuttingPlanTransition,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    """Guarded status change (complete / cancel)"""
    result = await CuttingPlanService(store).transition_plan(actor, plan_id, body.status)
    return CuttingPlanResponse(**result.record, warnings=result.warnings)
