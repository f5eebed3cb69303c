"""
Order model

stock_ready_kg and production_ready_kg are caches. They are only ever written
by the readiness aggregator, which recomputes them from order_stock_entries,
production_bobins and cutting_entries.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, CheckConstraint, Index
from sqlalchemy.sql import func

from filmflow.core.database import Base
from filmflow.models.mixins import RowMixin


class OrderStatus:
    """Order lifecycle states."""
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    IN_PRODUCTION = "in_production"
    READY = "ready"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    CLOSED = "closed"

    ALL = (DRAFT, CONFIRMED, IN_PRODUCTION, READY, SHIPPED, DELIVERED, CANCELLED, CLOSED)
    # Readiness recomputation never moves an order out of these
    TERMINAL = frozenset({CANCELLED, CLOSED, SHIPPED, DELIVERED})


class SourceType:
    """Which detail tables feed an order's readiness."""
    STOCK = "stock"
    PRODUCTION = "production"
    BOTH = "both"

    ALL = (STOCK, PRODUCTION, BOTH)
    WITH_PRODUCTION = frozenset({PRODUCTION, BOTH})


class Order(RowMixin, Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_no = Column(String(50), unique=True, index=True, nullable=True)
    status = Column(String(20), nullable=False, default=OrderStatus.DRAFT, index=True)

    # Product descriptor
    customer = Column(String(255), nullable=False, default="")
    product_type = Column(String(255), nullable=False, default="")
    micron = Column(Float, nullable=True)
    width = Column(Float, nullable=True)
    quantity = Column(Float, nullable=True)  # requested kg
    unit = Column(String(10), nullable=False, default="kg")

    # Readiness (derived, never user-edited)
    source_type = Column(String(20), nullable=False, default=SourceType.STOCK)
    stock_ready_kg = Column(Float, nullable=False, default=0.0)
    production_ready_kg = Column(Float, nullable=False, default=0.0)

    notes = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    closed_by = Column(Integer, nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "source_type IN ('stock', 'production', 'both')",
            name="chk_order_source_type",
        ),
        Index("ix_orders_created_desc", created_at.desc()),
    )

    def __repr__(self):
        return f"<Order {self.id}: {self.status} {self.stock_ready_kg}+{self.production_ready_kg}/{self.quantity}>"
