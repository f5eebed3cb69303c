"""
Order stock entry routes
"""
from typing import List

from fastapi import APIRouter, Depends, status

from filmflow.api.deps import get_current_actor, get_store_dep
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.schemas.cutting import DeleteResponse
from filmflow.schemas.production import OrderStockEntryCreate, OrderStockEntryResponse
from filmflow.services.order_stock_entry_service import OrderStockEntryService
from filmflow.store import Store

router = APIRouter()


@router.post("", response_model=OrderStockEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_order_stock_entry(
    body: OrderStockEntryCreate,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    result = await OrderStockEntryService(store).create_entry(
        actor,
        order_id=body.order_id,
        bobbin_label=body.bobbin_label,
        kg=body.kg,
        notes=body.notes,
    )
    return OrderStockEntryResponse(**result.record, warnings=result.warnings)


@router.get("", response_model=List[OrderStockEntryResponse])
async def list_order_stock_entries(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    require_permission(actor, Permission.ORDERS_READ)
    return await OrderStockEntryService(store).list_entries(order_id)


@router.delete("/{entry_id}", response_model=DeleteResponse)
async def delete_order_stock_entry(
    entry_id: int,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    result = await OrderStockEntryService(store).delete_entry(actor, entry_id)
    return DeleteResponse(**result.record, warnings=result.warnings)
