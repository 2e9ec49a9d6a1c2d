"""
Product model - raw materials consumed by BOMs and the finished goods they produce
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class ProductType(str, Enum):
    RAW_MATERIAL = "raw_material"
    FINISHED_GOOD = "finished_good"


class Product(Base):
    """
    Inventory-tracked item.

    stock_on_hand mirrors the balance of the product's last stock ledger
    entry and is only written by the stock ledger service.
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("type IN ('raw_material', 'finished_good')", name="ck_products_type"),
        CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_level"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    type = Column(String(20), default=ProductType.RAW_MATERIAL.value, nullable=False)  # raw_material, finished_good

    # Inventory
    stock_on_hand = Column(Integer, default=0, nullable=False)
    min_stock_level = Column(Integer, default=0, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    boms = relationship("BOM", back_populates="product", foreign_keys="BOM.product_id")
    ledger_entries = relationship("StockLedgerEntry", back_populates="product")

    def __repr__(self):
        return f"<Product {self.id}: {self.name}>"

    @property
    def is_finished_good(self) -> bool:
        return self.type == ProductType.FINISHED_GOOD.value

    @property
    def is_low_stock(self) -> bool:
        return (self.stock_on_hand or 0) < (self.min_stock_level or 0)
