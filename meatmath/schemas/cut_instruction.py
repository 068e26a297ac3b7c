"""
Cut Instruction Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

DIFFICULTY_PATTERN = "^(easy|medium|hard)$"


class CutInstructionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    instructions: str = Field(..., min_length=1)
    estimated_yield: Optional[Decimal] = Field(None, ge=0, le=1, max_digits=5, decimal_places=4)
    processing_time: Optional[int] = Field(None, ge=0)
    difficulty: str = Field("medium", pattern=DIFFICULTY_PATTERN)
    is_template: bool = False


class CutInstructionCreate(CutInstructionBase):
    organization_id: str


class CutInstructionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    instructions: Optional[str] = Field(None, min_length=1)
    estimated_yield: Optional[Decimal] = Field(None, ge=0, le=1, max_digits=5, decimal_places=4)
    processing_time: Optional[int] = Field(None, ge=0)
    difficulty: Optional[str] = Field(None, pattern=DIFFICULTY_PATTERN)
    is_template: Optional[bool] = None


class CutInstructionResponse(CutInstructionBase):
    id: str
    organization_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CutInstructionListResponse(BaseModel):
    cut_instructions: list[CutInstructionResponse]
    total: int
    page: int
    page_size: int
