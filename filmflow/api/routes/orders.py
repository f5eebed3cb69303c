"""
Order routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, status

from filmflow.api.deps import get_current_actor, get_store_dep
from filmflow.core.permissions import Actor
from filmflow.schemas.order import OrderCreate, OrderList, OrderReadiness, OrderResponse
from filmflow.services.order_service import OrderService
from filmflow.store import Store

router = APIRouter()


@router.get("", response_model=OrderList)
async def list_orders(
    status: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    orders = await OrderService(store).list_orders(actor, status=status)
    return OrderList(orders=orders, total=len(orders))


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    result = await OrderService(store).create_order(actor, **body.model_dump())
    return OrderResponse(**result.record, warnings=result.warnings)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    return await OrderService(store).get_order(actor, order_id)


@router.get("/{order_id}/readiness", response_model=OrderReadiness)
async def get_order_readiness(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    return await OrderService(store).get_readiness(actor, order_id)


@router.post("/{order_id}/reconcile", response_model=OrderReadiness)
async def reconcile_order(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    """Recompute readiness from detail rows (admin)"""
    return await OrderService(store).reconcile_order(actor, order_id)
