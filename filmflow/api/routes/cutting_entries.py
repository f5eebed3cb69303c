"""
Cutting entry routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from filmflow.api.deps import get_current_actor, get_store_dep
from filmflow.core.permissions import Actor, Permission, require_permission
from filmflow.schemas.cutting import CuttingEntryCreate, CuttingEntryResponse, DeleteResponse
from filmflow.services.cutting_service import CuttingService
from filmflow.store import Store

router = APIRouter()


@router.post("", response_model=CuttingEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_cutting_entry(
    body: CuttingEntryCreate,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    """Record one cut; warnings list non-fatal bookkeeping failures"""
    result = await CuttingService(store).record_cutting_entry(
        actor,
        cutting_plan_id=body.cutting_plan_id,
        bobbin_label=body.bobbin_label,
        cut_width=body.cut_width,
        cut_kg=body.cut_kg,
        cut_quantity=body.cut_quantity,
        is_order_piece=body.is_order_piece,
        machine_no=body.machine_no,
        notes=body.notes,
    )
    return CuttingEntryResponse(**result.record, warnings=result.warnings)


@router.get("", response_model=List[CuttingEntryResponse])
async def list_cutting_entries(
    plan_id: Optional[int] = None,
    order_id: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    require_permission(actor, Permission.ORDERS_READ)
    return await CuttingService(store).list_cutting_entries(plan_id=plan_id, order_id=order_id)


@router.delete("/{entry_id}", response_model=DeleteResponse)
async def delete_cutting_entry(
    entry_id: int,
    actor: Actor = Depends(get_current_actor),
    store: Store = Depends(get_store_dep),
):
    """Corrective deletion (admin)"""
    result = await CuttingService(store).delete_cutting_entry(actor, entry_id)
    return DeleteResponse(**result.record, warnings=result.warnings)
