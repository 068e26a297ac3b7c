"""
Inventory Item Model

Soft-deleted like customers; invoice lines may still reference an item
that is no longer sold.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal
from meatmath.database import Base
import uuid


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False)
    sku = Column(String(100), nullable=True)
    unit_type = Column(String(50), nullable=False, default="lbs")  # lbs, packages, cases, ...
    cost_per_unit = Column(Numeric(10, 2), nullable=False)
    retail_price = Column(Numeric(10, 2), nullable=False)
    wholesale_price = Column(Numeric(10, 2), nullable=True)
    current_stock = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    low_stock_alert = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    track_inventory = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organization = relationship("Organization", back_populates="inventory_items")

    __table_args__ = (
        Index("idx_inventory_org_active", "organization_id", "is_active"),
    )

    def __repr__(self):
        return f"<InventoryItem {self.name} (organization={self.organization_id})>"

    @property
    def is_low_stock(self) -> bool:
        if not self.track_inventory:
            return False
        return (self.current_stock or 0) <= (self.low_stock_alert or 0)

    def soft_delete(self):
        self.is_active = False
