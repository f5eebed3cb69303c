"""
Stock item and ledger routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from filmflow.api.deps import get_current_actor, get_store_dep
from filmflow.core.permissions import Actor
from filmflow.schemas.stock import (
    StockAdjust,
    StockItemCreate,
    StockItemResponse,
    StockMovementResponse,
)
from filmflow.services.stock_service import StockService
from filmflow.store import Store

router = APIRouter()


@router.post("/items", response_model=StockItemResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_item(
    body: StockItemCreate,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    result = await StockService(store).create_stock_item(actor, **body.model_dump())
    return StockItemResponse(**result.record, warnings=result.warnings)


@router.get("/items", response_model=List[StockItemResponse])
async def list_stock_items(
    category: Optional[str] = None,
    product: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    return await StockService(store).list_stock_items(actor, category=category, product=product)


@router.post("/items/{stock_item_id}/adjust", response_model=StockItemResponse)
async def adjust_stock_item(
    stock_item_id: int,
    body: StockAdjust,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    """Manual kg correction; removals are rejected on underflow"""
    result = await StockService(store).adjust_stock_item(
        actor, stock_item_id, kg_delta=body.kg_delta, notes=body.notes,
    )
    return StockItemResponse(**result.record, warnings=result.warnings)


@router.get("/movements", response_model=List[StockMovementResponse])
async def list_stock_movements(
    category: Optional[str] = None,
    limit: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    return await StockService(store).list_movements(actor, category=category, limit=limit)
