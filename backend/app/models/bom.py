"""
Bill of Materials models
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class BOM(Base):
    """
    Recipe for one unit of a finished good.

    Lines are created with the header in one transaction and deleted
    before it.
    """
    __tablename__ = "boms"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    version = Column(String(20), default='1.0', nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    created_by = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="boms", foreign_keys=[product_id])
    lines = relationship("BOMLine", back_populates="bom", cascade="all, delete-orphan",
                         order_by="BOMLine.id")

    def __repr__(self):
        return f"<BOM {self.id} for product {self.product_id} (v{self.version})>"


class BOMLine(Base):
    """One component and the quantity needed per finished unit."""
    __tablename__ = "bom_lines"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_bom_lines_quantity_positive"),
        UniqueConstraint("bom_id", "component_product_id", name="uq_bom_lines_component"),
    )

    id = Column(Integer, primary_key=True, index=True)
    bom_id = Column(Integer, ForeignKey('boms.id', ondelete='CASCADE'), nullable=False, index=True)
    component_product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    # Relationships
    bom = relationship("BOM", back_populates="lines")
    component = relationship("Product", foreign_keys=[component_product_id])

    def __repr__(self):
        return f"<BOMLine {self.component_product_id} x {self.quantity}>"
