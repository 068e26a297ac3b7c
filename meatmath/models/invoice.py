"""
Invoice Model

Only invoices in status "paid" count towards dashboard revenue.
"""
from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, Index, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal
from meatmath.database import Base
import uuid


INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)

    invoice_number = Column(String(100), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="draft")
    due_date = Column(Date, nullable=True)
    paid_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organization = relationship("Organization", back_populates="invoices")

    __table_args__ = (
        Index("idx_invoice_org_status", "organization_id", "status"),
    )

    def __repr__(self):
        return f"<Invoice {self.invoice_number} (organization={self.organization_id})>"
