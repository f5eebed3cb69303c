"""
Production bobin routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from filmflow.api.deps import get_current_actor, get_store_dep
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.schemas.cutting import DeleteResponse
from filmflow.schemas.production import (
    ProductionBobinCreate,
    ProductionBobinResponse,
    ProductionBobinUpdate,
)
from filmflow.services.production_bobin_service import ProductionBobinService
from filmflow.store import Store

router = APIRouter()


@router.post("", response_model=ProductionBobinResponse, status_code=status.HTTP_201_CREATED)
async def create_production_bobin(
    body: ProductionBobinCreate,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    result = await ProductionBobinService(store).create_bobin(actor, **body.model_dump())
    return ProductionBobinResponse(**result.record, warnings=result.warnings)


@router.get("", response_model=List[ProductionBobinResponse])
async def list_production_bobins(
    order_id: Optional[int] = None,
    status: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    require_permission(actor, Permission.ORDERS_READ)
    return await ProductionBobinService(store).list_bobins(order_id=order_id, status=status)


@router.patch("/{bobin_id}", response_model=ProductionBobinResponse)
async def update_production_bobin(
    bobin_id: int,
    body: ProductionBobinUpdate,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    # Only fields present in the request body are applied
    fields = body.model_dump(exclude_unset=True)
    result = await ProductionBobinService(store).update_bobin(actor, bobin_id, **fields)
    return ProductionBobinResponse(**result.record, warnings=result.warnings)


@router.delete("/{bobin_id}", response_model=DeleteResponse)
async def delete_production_bobin(
    bobin_id: int,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    result = await ProductionBobinService(store).delete_bobin(actor, bobin_id)
    return DeleteResponse(**result.record, warnings=result.warnings)
