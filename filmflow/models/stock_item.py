"""
Stock Item model: one physical inventory record (a master roll, a leftover
bobbin, or a box of tape).
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, CheckConstraint, Index
from sqlalchemy.sql import func

from filmflow.core.database import Base
from filmflow.models.mixins import RowMixin


class StockCategory:
    FILM = "film"
    TAPE = "tape"

    ALL = (FILM, TAPE)


class StockItem(RowMixin, Base):
    __tablename__ = "stock_items"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String(20), nullable=False, default=StockCategory.FILM, index=True)

    # Product descriptor
    product = Column(String(255), nullable=False)
    micron = Column(Float, nullable=True)
    width = Column(Float, nullable=True)

    # On hand
    kg = Column(Float, nullable=False, default=0.0)
    quantity = Column(Integer, nullable=False, default=0)

    lot_no = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (
        CheckConstraint("kg >= 0", name="ck_stock_items_kg_non_negative"),
        CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        Index("ix_stock_items_product", "category", "product", "micron", "width"),
    )

    def __repr__(self):
        return f"<StockItem {self.id}: {self.product} {self.kg}kg x{self.quantity}>"
