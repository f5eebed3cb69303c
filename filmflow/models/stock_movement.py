"""
Stock Movement model for inventory tracking and audit

Append-only ledger: every change to a StockItem's kg/quantity has a line
here explaining it (who, when, why, and which detail record caused it).
"""
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, ForeignKey, Text,
    CheckConstraint, Index
)
from sqlalchemy.sql import func

from filmflow.core.database import Base
from filmflow.models.mixins import RowMixin


class MovementDirection:
    IN = "in"
    OUT = "out"

    ALL = (IN, OUT)


class MovementReason:
    """Reason codes written by the engine."""
    CUTTING_SOURCE = "cutting_source"
    CUTTING_LEFTOVER = "cutting_leftover"
    CUTTING_REVERSAL = "cutting_reversal"
    MANUAL_ENTRY = "manual_entry"
    ADJUSTMENT = "adjustment"


class ReferenceType:
    CUTTING_ENTRY = "cutting_entry"
    CUTTING_PLAN = "cutting_plan"
    STOCK_ITEM = "stock_item"


class StockMovement(RowMixin, Base):
    """Audit trail for inventory stock changes"""
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)

    # What changed
    stock_item_id = Column(
        Integer,
        ForeignKey("stock_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Movement details
    movement_type = Column(String(10), nullable=False, index=True)
    kg = Column(Float, nullable=False)  # always positive, direction says which way
    quantity = Column(Float, nullable=False, default=0)
    previous_kg = Column(Float, nullable=True)
    new_kg = Column(Float, nullable=True)

    # Why
    reason = Column(String(50), nullable=False)

    # Reference to source
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)

    # Who
    created_by = Column(Integer, nullable=True)

    # When
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True
    )

    __table_args__ = (
        CheckConstraint("movement_type IN ('in', 'out')", name="chk_movement_type"),
        CheckConstraint("kg >= 0", name="chk_movement_kg_non_negative"),
        Index("ix_stock_movements_created_desc", created_at.desc()),
        Index("ix_stock_movements_reference", reference_type, reference_id),
    )

    @property
    def signed_kg(self) -> float:
        return self.kg if self.movement_type == MovementDirection.IN else -self.kg

    def __repr__(self):
        return f"<StockMovement {self.id}: {self.movement_type} {self.kg}kg on stock {self.stock_item_id}>"
