"""
Processing Record Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

STATUS_PATTERN = "^(pending|in_progress|completed|invoiced)$"


class ProcessingRecordBase(BaseModel):
    customer_id: Optional[str] = None
    species_id: Optional[str] = None
    processing_date: date
    total_live_weight: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    total_hanging_weight: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    total_retail_weight: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    processing_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    notes: Optional[str] = None
    status: str = Field("pending", pattern=STATUS_PATTERN)


class ProcessingRecordCreate(ProcessingRecordBase):
    organization_id: str


class ProcessingRecordUpdate(BaseModel):
    """All fields optional; the owning organization cannot change."""
    customer_id: Optional[str] = None
    species_id: Optional[str] = None
    processing_date: Optional[date] = None
    total_live_weight: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    total_hanging_weight: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    total_retail_weight: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    processing_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    notes: Optional[str] = None
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)


class ProcessingRecordResponse(ProcessingRecordBase):
    id: str
    organization_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProcessingRecordListResponse(BaseModel):
    processing_records: list[ProcessingRecordResponse]
    total: int
    page: int
    page_size: int
