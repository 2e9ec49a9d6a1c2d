"""
User profile model

Mirrors identities owned by the external identity provider. The primary key
is the provider's subject id; the service only reads role and name from it.
"""
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class UserProfile(Base):
    """Admin or shop-floor operator known to the system."""
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'operator')", name="ck_profiles_role"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=False)
    email = Column(String(255), unique=True, nullable=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), default='operator', nullable=False, index=True)  # admin, operator

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    work_orders = relationship("WorkOrder", back_populates="operator", foreign_keys="WorkOrder.operator_id")

    def __repr__(self):
        return f"<UserProfile(id={self.id}, role='{self.role}')>"

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or f"User {self.id}"

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    @property
    def is_operator(self) -> bool:
        return self.role == 'operator'
