"""
Cutting models

A CuttingPlan says "cut this source roll for that order"; each CuttingEntry
is one bobbin actually cut on the floor under the plan.
"""
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Text,
    CheckConstraint, Index
)
from sqlalchemy.sql import func

from filmflow.core.database import Base
from filmflow.models.mixins import RowMixin


class CuttingPlanStatus:
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (PLANNED, IN_PROGRESS, COMPLETED, CANCELLED)
    TRANSITIONS = {
        PLANNED: frozenset({IN_PROGRESS, CANCELLED}),
        IN_PROGRESS: frozenset({COMPLETED, CANCELLED}),
        COMPLETED: frozenset(),
        CANCELLED: frozenset(),
    }


class CuttingPlan(RowMixin, Base):
    __tablename__ = "cutting_plans"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    source_stock_id = Column(Integer, ForeignKey("stock_items.id", ondelete="SET NULL"), nullable=True)

    source_product = Column(String(255), nullable=False)
    source_micron = Column(Float, nullable=True)
    source_width = Column(Float, nullable=True)
    source_kg = Column(Float, nullable=True)

    target_width = Column(Float, nullable=True)
    target_kg = Column(Float, nullable=True)
    target_quantity = Column(Integer, nullable=False, default=1)

    assigned_to = Column(Integer, nullable=True)
    planned_by = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default=CuttingPlanStatus.PLANNED, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('planned', 'in_progress', 'completed', 'cancelled')",
            name="chk_cutting_plan_status",
        ),
    )

    def __repr__(self):
        return f"<CuttingPlan {self.id}: order {self.order_id} {self.status}>"


class CuttingEntry(RowMixin, Base):
    """One realized cut. Immutable once created except for corrective deletion."""
    __tablename__ = "cutting_entries"

    id = Column(Integer, primary_key=True, index=True)
    cutting_plan_id = Column(Integer, ForeignKey("cutting_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    source_stock_id = Column(Integer, ForeignKey("stock_items.id", ondelete="SET NULL"), nullable=True)
    # Set when a leftover piece went back to stock as a new StockItem
    leftover_stock_id = Column(Integer, ForeignKey("stock_items.id", ondelete="SET NULL"), nullable=True)

    bobbin_label = Column(String(100), nullable=False)
    cut_width = Column(Float, nullable=False)
    cut_kg = Column(Float, nullable=False)
    cut_quantity = Column(Integer, nullable=False, default=1)
    is_order_piece = Column(Boolean, nullable=False, default=True)

    entered_by = Column(Integer, nullable=True)
    machine_no = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("cut_kg > 0", name="ck_cutting_entries_kg_positive"),
        CheckConstraint("cut_width > 0", name="ck_cutting_entries_width_positive"),
        CheckConstraint("cut_quantity > 0", name="ck_cutting_entries_quantity_positive"),
        Index("ix_cutting_entries_order_piece", order_id, is_order_piece),
    )

    def __repr__(self):
        return f"<CuttingEntry {self.id}: {self.bobbin_label} {self.cut_kg}kg plan {self.cutting_plan_id}>"
