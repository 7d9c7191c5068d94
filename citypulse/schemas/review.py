"""
Review schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    event_id: UUID
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=2000)


class ReviewUpdate(BaseModel):
    """Omitted fields keep their current value."""

    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1, max_length=2000)


class ReviewAuthor(BaseModel):
    id: UUID
    name: str

    model_config = {"from_attributes": True}


class ReviewEventSummary(BaseModel):
    id: UUID
    title: str
    banner: str

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    id: UUID
    user_id: UUID
    event_id: UUID
    rating: int
    comment: str
    created_at: datetime
    updated_at: datetime
    user: Optional[ReviewAuthor] = None
    event: Optional[ReviewEventSummary] = None

    model_config = {"from_attributes": True}
