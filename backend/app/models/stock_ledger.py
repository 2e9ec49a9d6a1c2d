"""
Stock ledger model - append-only audit log of inventory movements
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, CheckConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class MovementType(str, Enum):
    PURCHASE = "purchase"
    PRODUCTION = "production"
    WORK_ORDER_CONSUMPTION = "work_order_consumption"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    SALE = "sale"


class MovementDirection(str, Enum):
    IN = "in"
    OUT = "out"


class StockLedgerEntry(Base):
    """
    One immutable inventory movement.

    Exactly one of quantity_in / quantity_out is set. balance is the running
    total for the product after this movement.
    """
    __tablename__ = "stock_ledger"
    __table_args__ = (
        CheckConstraint(
            "(quantity_in IS NULL) <> (quantity_out IS NULL)",
            name="ck_stock_ledger_single_direction",
        ),
        CheckConstraint("quantity_in IS NULL OR quantity_in > 0", name="ck_stock_ledger_quantity_in_positive"),
        CheckConstraint("quantity_out IS NULL OR quantity_out > 0", name="ck_stock_ledger_quantity_out_positive"),
        Index("ix_stock_ledger_product_created", "product_id", "created_at", "id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)

    # purchase, production, work_order_consumption, manual_adjustment, sale
    movement_type = Column(String(30), nullable=False, index=True)

    quantity_in = Column(Integer, nullable=True)
    quantity_out = Column(Integer, nullable=True)
    balance = Column(Integer, nullable=False)

    # Free-text pointer to the originating document, e.g. MO-12, WO-40, OPENING
    reference_type = Column(String(50), nullable=True)  # manufacturing_order, work_order, adjustment
    reference_id = Column(String(100), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="ledger_entries")

    def __repr__(self):
        return f"<StockLedgerEntry {self.movement_type}: {self.signed_quantity:+d} -> {self.balance}>"

    @property
    def signed_quantity(self) -> int:
        if self.quantity_in is not None:
            return self.quantity_in
        return -(self.quantity_out or 0)

    @property
    def direction(self) -> str:
        return MovementDirection.IN.value if self.quantity_in is not None else MovementDirection.OUT.value
