"""
Customer Schemas

Request/response models for customer operations. organization_id is only
accepted at creation; updates cannot move a customer to another
organization.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime


class CustomerBase(BaseModel):
    """Base customer schema."""
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)
    billing_address: Optional[Dict[str, Any]] = None
    shipping_address: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    customer_type: str = Field("individual", pattern="^(individual|business)$")


class CustomerCreate(CustomerBase):
    """Schema for creating a customer."""
    organization_id: str


class CustomerUpdate(BaseModel):
    """Schema for updating a customer. All fields optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)
    billing_address: Optional[Dict[str, Any]] = None
    shipping_address: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    customer_type: Optional[str] = Field(None, pattern="^(individual|business)$")


class CustomerResponse(CustomerBase):
    """Customer response schema."""
    id: str
    organization_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    """Paginated list of customers."""
    customers: list[CustomerResponse]
    total: int
    page: int
    page_size: int
