"""
Authentication Endpoints

Sign-in happens at the identity provider. This service only verifies the
bearer token it issued and mirrors the profile locally.
"""
from fastapi import APIRouter, Depends

from meatmath.models.user import User
from meatmath.schemas.user import UserResponse
from meatmath.api.deps import get_current_user

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.get("/user", response_model=UserResponse)
async def get_authenticated_user(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated principal."""
    return current_user
