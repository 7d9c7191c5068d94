"""
Attendee authentication and profile endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.principal import PrincipalKind, User
from ..schemas.auth import (
    LoginRequest,
    UserProfile,
    UserProfileUpdate,
    UserRegistration,
    UserTokenResponse,
)
from ..schemas.common import MessageResponse
from ..services.principal_service import PrincipalService
from ..utils.auth import create_access_token
from ..utils.dependencies import get_current_user


router = APIRouter(prefix="/auth", tags=["authentication"])


def _token_response(user: User) -> UserTokenResponse:
    return UserTokenResponse(
        access_token=create_access_token(str(user.id), PrincipalKind.USER.value),
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserProfile.model_validate(user),
    )


@router.post("/register", response_model=UserTokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserRegistration,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Register a new attendee account.

    Returns:
        Token response with the new profile

    Raises:
        DuplicateResourceError: If the email is already registered
    """
    user = await PrincipalService(db).register_user(user_data)
    return _token_response(user)


@router.post("/login", response_model=UserTokenResponse)
async def login_user(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Authenticate an attendee and return an access token."""
    user = await PrincipalService(db).authenticate(
        login_data.email,
        login_data.password,
        PrincipalKind.USER,
    )
    return _token_response(user)


@router.get("/profile", response_model=UserProfile)
async def get_profile(current_user: User = Depends(get_current_user)) -> Any:
    return UserProfile.model_validate(current_user)


@router.put("/profile", response_model=UserProfile)
async def update_profile(
    update_data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Update the caller's profile; omitted fields are left unchanged."""
    user = await PrincipalService(db).update_profile(current_user, update_data)
    return UserProfile.model_validate(user)


@router.delete("/profile", response_model=MessageResponse)
async def delete_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Delete the caller's account.

    Bookings already made are kept for the organizers' records.
    """
    await PrincipalService(db).delete_user(current_user.id)
    return MessageResponse(message="User deleted")
