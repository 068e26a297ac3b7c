"""
Organization Schemas

Request/response models for organizations and memberships.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime

from meatmath.core.roles import Role


class OrganizationBase(BaseModel):
    """Base organization schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    industry: Optional[str] = Field(None, max_length=100)
    logo: Optional[str] = Field(None, max_length=512)
    website: Optional[str] = Field(None, max_length=512)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[Dict[str, Any]] = None


class OrganizationCreate(OrganizationBase):
    """Schema for creating an organization. The creator becomes its owner."""
    settings: Optional[Dict[str, Any]] = None


class OrganizationResponse(OrganizationBase):
    """Organization response schema."""
    id: str
    settings: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrganizationMembershipResponse(OrganizationResponse):
    """An organization together with the caller's role in it."""
    role: Role


class RoleResponse(BaseModel):
    """The caller's resolved role, for deciding which actions to offer."""
    organization_id: str
    role: Role


class MemberInvite(BaseModel):
    """Add a user to an organization."""
    user_id: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.VIEWER


class MemberRoleUpdate(BaseModel):
    role: Role


class MemberResponse(BaseModel):
    id: str
    organization_id: str
    user_id: str
    role: str
    invited_at: datetime
    joined_at: Optional[datetime]
    is_active: bool
    deactivated_at: Optional[datetime]

    class Config:
        from_attributes = True


class MemberListResponse(BaseModel):
    members: list[MemberResponse]
    total: int
