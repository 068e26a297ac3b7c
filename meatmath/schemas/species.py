"""
Species Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class SpeciesBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=50)
    live_to_hanging_ratio: Decimal = Field(..., gt=0, le=1, max_digits=5, decimal_places=4)
    hanging_to_retail_ratio: Decimal = Field(..., gt=0, le=1, max_digits=5, decimal_places=4)
    average_processing_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None


class SpeciesCreate(SpeciesBase):
    pass


class SpeciesResponse(SpeciesBase):
    id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
