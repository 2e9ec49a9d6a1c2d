"""
Manufacturing Order and Work Order models

A Manufacturing Order (MO) requests N units of a finished good under a
specific BOM. Creating it fans out one Work Order (WO) per BOM line; each
WO is the per-component task an operator executes.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class ManufacturingOrder(Base):
    """
    Manufacturing Order

    Lifecycle: draft → confirmed → in_progress → completed
    cancelled is reachable from any non-terminal status.
    """
    __tablename__ = "manufacturing_orders"
    __table_args__ = (
        CheckConstraint("quantity_to_produce > 0", name="ck_manufacturing_orders_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # References
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    bom_id = Column(Integer, ForeignKey('boms.id'), nullable=False, index=True)
    assignee_id = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True, index=True)

    quantity_to_produce = Column(Integer, nullable=False)
    status = Column(String(20), default='draft', nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Metadata
    created_by = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    product = relationship("Product", foreign_keys=[product_id])
    bom = relationship("BOM", foreign_keys=[bom_id])
    assignee = relationship("UserProfile", foreign_keys=[assignee_id])
    work_orders = relationship("WorkOrder", back_populates="manufacturing_order",
                               cascade="all, delete-orphan", order_by="WorkOrder.id")

    def __repr__(self):
        return f"<ManufacturingOrder {self.reference}: {self.quantity_to_produce} x product {self.product_id}>"

    @property
    def reference(self) -> str:
        return f"MO-{self.id}"

    @property
    def is_terminal(self) -> bool:
        return self.status in ('completed', 'cancelled')


class WorkOrder(Base):
    """
    Per-component task spawned from a Manufacturing Order.

    Lifecycle: pending → in_progress → completed
    pending may complete directly; cancelled from pending or in_progress.
    """
    __tablename__ = "work_orders"
    __table_args__ = (
        CheckConstraint("required_quantity > 0", name="ck_work_orders_required_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    mo_id = Column(Integer, ForeignKey('manufacturing_orders.id', ondelete='CASCADE'), nullable=False, index=True)
    bom_line_id = Column(Integer, ForeignKey('bom_lines.id', ondelete='SET NULL'), nullable=True)
    component_product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    required_quantity = Column(Integer, nullable=False)

    # Status: pending, in_progress, completed, cancelled
    status = Column(String(20), default='pending', nullable=False, index=True)

    # Assignment
    operator_id = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True, index=True)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    manufacturing_order = relationship("ManufacturingOrder", back_populates="work_orders")
    component = relationship("Product", foreign_keys=[component_product_id])
    operator = relationship("UserProfile", back_populates="work_orders", foreign_keys=[operator_id])

    def __repr__(self):
        return f"<WorkOrder {self.reference}: {self.name} ({self.status})>"

    @property
    def reference(self) -> str:
        return f"WO-{self.id}"

    @property
    def is_open(self) -> bool:
        return self.status in ('pending', 'in_progress')
