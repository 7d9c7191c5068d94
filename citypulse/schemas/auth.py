"""
Authentication and profile Pydantic schemas for both account kinds.
"""

from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from ..models.principal import PrincipalKind


class UserRegistration(BaseModel):
    """Schema for attendee registration."""
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")
    phone: Optional[str] = Field(None, max_length=50)
    city: Optional[str] = Field(None, max_length=100)


class OrganizerRegistration(UserRegistration):
    """Schema for organizer registration."""
    organization_name: str = Field(..., min_length=1, max_length=255)


class LoginRequest(BaseModel):
    """Schema for login of either account kind."""
    email: EmailStr
    password: str


class UserProfileUpdate(BaseModel):
    """Partial update of an attendee profile."""
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    phone: Optional[str] = Field(None, max_length=50)
    city: Optional[str] = Field(None, max_length=100)
    profile_image: Optional[str] = Field(None, max_length=500)


class OrganizerProfileUpdate(UserProfileUpdate):
    """Partial update of an organizer profile."""
    organization_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact: Optional[str] = Field(None, max_length=255)
    logo: Optional[str] = Field(None, max_length=500)
    social_links: Optional[Dict[str, str]] = None


class UserProfile(BaseModel):
    """Schema for attendee profile information."""
    id: UUID
    kind: PrincipalKind
    name: str
    email: str
    phone: Optional[str] = None
    city: Optional[str] = None
    profile_image: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrganizerProfile(UserProfile):
    """Schema for organizer profile information."""
    organization_name: Optional[str] = None
    contact: Optional[str] = None
    logo: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None


class UserTokenResponse(BaseModel):
    """Token issued to an attendee."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile


class OrganizerTokenResponse(BaseModel):
    """Token issued to an organizer."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    organizer: OrganizerProfile
