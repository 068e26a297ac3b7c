"""
Organization Model

The organization is the tenant: the unit of data isolation. Every business
record (customer, processing record, inventory item, invoice, cut
instruction) carries an organization_id, and access to it is decided
against that organization only.
"""
from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from meatmath.database import Base
import uuid


def default_organization_settings() -> dict:
    return {
        "markupPercentage": 25,
        "taxRate": 0,
        "currency": "USD",
        "timezone": "America/New_York",
    }


class Organization(Base):
    __tablename__ = "organizations"

    # UUIDs so organization ids cannot be enumerated
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    industry = Column(String(100), nullable=True)
    logo = Column(String(512), nullable=True)
    website = Column(String(512), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(JSON, nullable=True)
    settings = Column(JSON, nullable=True, default=default_organization_settings)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    members = relationship("OrganizationMember", back_populates="organization", cascade="all, delete-orphan")
    customers = relationship("Customer", back_populates="organization", cascade="all, delete-orphan")
    processing_records = relationship("ProcessingRecord", back_populates="organization", cascade="all, delete-orphan")
    cut_instructions = relationship("CutInstruction", back_populates="organization", cascade="all, delete-orphan")
    inventory_items = relationship("InventoryItem", back_populates="organization", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="organization", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Organization {self.name} ({self.id})>"
