from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field


# ============================================================================
# ORDER STOCK ENTRY SCHEMAS
# ============================================================================
class OrderStockEntryCreate(BaseModel):
    order_id: int
    bobbin_label: str
    kg: float
    notes: Optional[str] = None


class OrderStockEntryResponse(BaseModel):
    id: int
    order_id: int
    bobbin_label: str
    kg: float
    notes: Optional[str] = None
    entered_by: Optional[int] = None
    entered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


# ============================================================================
# PRODUCTION BOBIN SCHEMAS
# ============================================================================
class ProductionBobinCreate(BaseModel):
    order_id: int
    cutting_plan_id: Optional[int] = None
    bobbin_no: str
    meter: float
    kg: float
    fire_kg: Optional[float] = 0
    notes: Optional[str] = None


class ProductionBobinUpdate(BaseModel):
    """Only the fields actually sent are applied (notes may be sent as null)."""
    status: Optional[str] = None
    notes: Optional[str] = None


class ProductionBobinResponse(BaseModel):
    id: int
    order_id: int
    cutting_plan_id: Optional[int] = None
    bobbin_no: str
    meter: float
    kg: float
    fire_kg: float = 0
    product_type: str = ""
    micron: Optional[float] = None
    width: Optional[float] = None
    status: str
    notes: Optional[str] = None
    entered_by: Optional[int] = None
    entered_at: Optional[datetime] = None
    warehouse_in_at: Optional[datetime] = None
    warehouse_in_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True
