from datetime import datetime
from typing import Optional, List, Any, Dict

from pydantic import BaseModel, Field


class OrderCreate(BaseModel):
    customer: str
    product_type: str
    quantity: float
    source_type: str = "stock"
    micron: Optional[float] = None
    width: Optional[float] = None
    unit: str = "kg"
    status: str = "confirmed"
    notes: Optional[str] = None


class OrderResponse(BaseModel):
    id: int
    order_no: Optional[str] = None
    status: str
    customer: str
    product_type: str
    micron: Optional[float] = None
    width: Optional[float] = None
    quantity: Optional[float] = None
    unit: str
    source_type: str
    stock_ready_kg: float
    production_ready_kg: float
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class OrderList(BaseModel):
    orders: List[OrderResponse]
    total: int


class OrderReadiness(BaseModel):
    order_id: int
    status: str
    source_type: str
    quantity: float
    stock_ready_kg: float
    production_ready_kg: float
    total_ready_kg: float
    ready_percent: float
    is_ready: bool
    changed: Optional[bool] = None
    warnings: List[str] = Field(default_factory=list)


class AuditLogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    table_name: str
    record_id: Optional[int] = None
    old_data: Optional[Dict[str, Any]] = None
    new_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
