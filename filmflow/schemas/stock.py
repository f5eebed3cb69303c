from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field


class StockItemCreate(BaseModel):
    category: str
    product: str
    kg: float = 0
    quantity: float = 0
    micron: Optional[float] = None
    width: Optional[float] = None
    lot_no: Optional[str] = None
    notes: Optional[str] = None


class StockAdjust(BaseModel):
    kg_delta: float
    notes: Optional[str] = None


class StockItemResponse(BaseModel):
    id: int
    category: str
    product: str
    micron: Optional[float] = None
    width: Optional[float] = None
    kg: float
    quantity: int
    lot_no: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class StockMovementResponse(BaseModel):
    id: int
    stock_item_id: Optional[int] = None
    movement_type: str
    kg: float
    quantity: float = 0
    previous_kg: Optional[float] = None
    new_kg: Optional[float] = None
    reason: str
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
