"""
Organizer authentication and profile endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.principal import Organizer, PrincipalKind
from ..schemas.auth import (
    LoginRequest,
    OrganizerProfile,
    OrganizerProfileUpdate,
    OrganizerRegistration,
    OrganizerTokenResponse,
)
from ..schemas.common import MessageResponse
from ..services.principal_service import PrincipalService
from ..utils.auth import create_access_token
from ..utils.dependencies import get_current_organizer


router = APIRouter(prefix="/organizers", tags=["organizers"])


def _token_response(organizer: Organizer) -> OrganizerTokenResponse:
    return OrganizerTokenResponse(
        access_token=create_access_token(str(organizer.id), PrincipalKind.ORGANIZER.value),
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        organizer=OrganizerProfile.model_validate(organizer),
    )


@router.post("/register", response_model=OrganizerTokenResponse, status_code=status.HTTP_201_CREATED)
async def register_organizer(
    organizer_data: OrganizerRegistration,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Register a new organizer account.

    Raises:
        DuplicateResourceError: If the email is already registered
    """
    organizer = await PrincipalService(db).register_organizer(organizer_data)
    return _token_response(organizer)


@router.post("/login", response_model=OrganizerTokenResponse)
async def login_organizer(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
) -> Any:
    organizer = await PrincipalService(db).authenticate(
        login_data.email,
        login_data.password,
        PrincipalKind.ORGANIZER,
    )
    return _token_response(organizer)


@router.get("/profile", response_model=OrganizerProfile)
async def get_profile(current_organizer: Organizer = Depends(get_current_organizer)) -> Any:
    return OrganizerProfile.model_validate(current_organizer)


@router.put("/profile", response_model=OrganizerProfile)
async def update_profile(
    update_data: OrganizerProfileUpdate,
    current_organizer: Organizer = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_db)
) -> Any:
    organizer = await PrincipalService(db).update_profile(current_organizer, update_data)
    return OrganizerProfile.model_validate(organizer)


@router.delete("/profile", response_model=MessageResponse)
async def delete_profile(
    current_organizer: Organizer = Depends(get_current_organizer),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Delete the caller's organizer account.

    Every event of the organizer goes with it, along with the bookings,
    reviews and coupons attached to those events.
    """
    await PrincipalService(db).delete_organizer(current_organizer.id)
    return MessageResponse(message="Organizer and all associated events deleted")
