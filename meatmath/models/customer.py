"""
Customer Model

Customers belong to exactly one organization. Deleting a customer is a
soft delete (is_active = False) because invoices and processing records
keep pointing at it.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from meatmath.database import Base
import uuid


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Owning organization; all authorization on this row is evaluated
    # against this value, never a client-supplied one
    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    billing_address = Column(JSON, nullable=True)
    shipping_address = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    customer_type = Column(String(20), nullable=False, default="individual")  # individual, business
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organization = relationship("Organization", back_populates="customers")

    __table_args__ = (
        Index("idx_customer_org_active", "organization_id", "is_active"),
    )

    def __repr__(self):
        return f"<Customer {self.name} (organization={self.organization_id})>"

    def soft_delete(self):
        self.is_active = False
