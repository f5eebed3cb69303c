from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field


# ============================================================================
# CUTTING PLAN SCHEMAS
# ============================================================================
class CuttingPlanCreate(BaseModel):
    order_id: int
    source_stock_id: Optional[int] = None
    source_product: Optional[str] = None
    target_width: Optional[float] = None
    target_kg: Optional[float] = None
    target_quantity: Optional[int] = 1
    assigned_to: Optional[int] = None
    notes: Optional[str] = None


class CuttingPlanTransition(BaseModel):
    status: str


class CuttingPlanResponse(BaseModel):
    id: int
    order_id: int
    source_stock_id: Optional[int] = None
    source_product: str
    source_micron: Optional[float] = None
    source_width: Optional[float] = None
    source_kg: Optional[float] = None
    target_width: Optional[float] = None
    target_kg: Optional[float] = None
    target_quantity: int
    assigned_to: Optional[int] = None
    planned_by: Optional[int] = None
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ============================================================================
# CUTTING ENTRY SCHEMAS
# ============================================================================
class CuttingEntryCreate(BaseModel):
    cutting_plan_id: int
    bobbin_label: str
    cut_width: float = Field(gt=0)
    cut_kg: float = Field(gt=0)
    cut_quantity: Optional[float] = 1
    is_order_piece: bool = True
    machine_no: Optional[str] = None
    notes: Optional[str] = None


class CuttingEntryResponse(BaseModel):
    id: int
    cutting_plan_id: int
    order_id: int
    source_stock_id: Optional[int] = None
    leftover_stock_id: Optional[int] = None
    bobbin_label: str
    cut_width: float
    cut_kg: float
    cut_quantity: int
    is_order_piece: bool
    entered_by: Optional[int] = None
    machine_no: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class DeleteResponse(BaseModel):
    success: bool = True
    id: int
    warnings: List[str] = Field(default_factory=list)
