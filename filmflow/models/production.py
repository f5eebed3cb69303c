"""
Production output models

ProductionBobin: a produced roll tied to an order.
OrderStockEntry: warehouse kg booked straight against an order from stock.
"""
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, ForeignKey, Text,
    CheckConstraint, Index
)
from sqlalchemy.sql import func

from filmflow.core.database import Base
from filmflow.models.mixins import RowMixin


class BobinStatus:
    PRODUCED = "produced"
    WAREHOUSE = "warehouse"
    READY = "ready"

    ALL = (PRODUCED, WAREHOUSE, READY)
    # kg of bobins in these statuses counts toward production readiness
    READY_COUNTING = (PRODUCED, WAREHOUSE, READY)


class ProductionBobin(RowMixin, Base):
    __tablename__ = "production_bobins"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    cutting_plan_id = Column(Integer, ForeignKey("cutting_plans.id", ondelete="SET NULL"), nullable=True)

    bobbin_no = Column(String(100), nullable=False)
    meter = Column(Float, nullable=False)
    kg = Column(Float, nullable=False)
    fire_kg = Column(Float, nullable=False, default=0.0)  # scrap

    product_type = Column(String(255), nullable=False, default="")
    micron = Column(Float, nullable=True)
    width = Column(Float, nullable=True)

    status = Column(String(20), nullable=False, default=BobinStatus.PRODUCED, index=True)
    notes = Column(Text, nullable=True)

    entered_by = Column(Integer, nullable=True)
    entered_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    warehouse_in_at = Column(DateTime(timezone=True), nullable=True)
    warehouse_in_by = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (
        CheckConstraint("kg > 0", name="ck_production_bobins_kg_positive"),
        CheckConstraint("meter > 0", name="ck_production_bobins_meter_positive"),
        CheckConstraint(
            "status IN ('produced', 'warehouse', 'ready')",
            name="chk_production_bobin_status",
        ),
        Index("ix_production_bobins_order_status", order_id, status),
    )

    def __repr__(self):
        return f"<ProductionBobin {self.id}: {self.bobbin_no} {self.kg}kg {self.status}>"


class OrderStockEntry(RowMixin, Base):
    __tablename__ = "order_stock_entries"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    bobbin_label = Column(String(100), nullable=False)
    kg = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)

    entered_by = Column(Integer, nullable=True)
    entered_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("kg > 0", name="ck_order_stock_entries_kg_positive"),
    )

    def __repr__(self):
        return f"<OrderStockEntry {self.id}: order {self.order_id} {self.kg}kg>"
