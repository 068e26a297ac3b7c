"""
Invoice Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

STATUS_PATTERN = "^(draft|sent|paid|overdue|cancelled)$"


class InvoiceBase(BaseModel):
    customer_id: Optional[str] = None
    invoice_number: str = Field(..., min_length=1, max_length=100)
    subtotal: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    tax_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    total: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    status: str = Field("draft", pattern=STATUS_PATTERN)
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    notes: Optional[str] = None


class InvoiceCreate(InvoiceBase):
    organization_id: str


class InvoiceUpdate(BaseModel):
    customer_id: Optional[str] = None
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=100)
    subtotal: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    tax_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    total: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    notes: Optional[str] = None


class InvoiceResponse(InvoiceBase):
    id: str
    organization_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceResponse]
    total: int
    page: int
    page_size: int
