"""
Processing Record Model

One processing job for a customer's animals. Weights are stored as
fixed-point decimals; the yield arithmetic itself happens client-side.
"""
from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, Index, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime
from meatmath.database import Base
import uuid


PROCESSING_STATUSES = ("pending", "in_progress", "completed", "invoiced")


class ProcessingRecord(Base):
    __tablename__ = "processing_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    species_id = Column(String(36), ForeignKey("species.id"), nullable=True)

    processing_date = Column(Date, nullable=False)
    total_live_weight = Column(Numeric(10, 2), nullable=False)
    total_hanging_weight = Column(Numeric(10, 2), nullable=True)
    total_retail_weight = Column(Numeric(10, 2), nullable=True)
    processing_cost = Column(Numeric(10, 2), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organization = relationship("Organization", back_populates="processing_records")

    __table_args__ = (
        Index("idx_processing_org_date", "organization_id", "processing_date"),
    )

    def __repr__(self):
        return f"<ProcessingRecord {self.id} (organization={self.organization_id})>"
