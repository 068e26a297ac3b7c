"""
Inventory Item Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class InventoryItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    sku: Optional[str] = Field(None, max_length=100)
    unit_type: str = Field("lbs", min_length=1, max_length=50)
    cost_per_unit: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    retail_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    wholesale_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    current_stock: Decimal = Field(Decimal("0"), max_digits=10, decimal_places=2)
    low_stock_alert: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    track_inventory: bool = True


class InventoryItemCreate(InventoryItemBase):
    organization_id: str


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    sku: Optional[str] = Field(None, max_length=100)
    unit_type: Optional[str] = Field(None, min_length=1, max_length=50)
    cost_per_unit: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    retail_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    wholesale_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    current_stock: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    low_stock_alert: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    track_inventory: Optional[bool] = None


class InventoryItemResponse(InventoryItemBase):
    id: str
    organization_id: str
    is_active: bool
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InventoryItemListResponse(BaseModel):
    inventory_items: list[InventoryItemResponse]
    total: int
    page: int
    page_size: int
