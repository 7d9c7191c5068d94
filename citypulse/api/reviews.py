"""
Event review endpoints.
"""

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.principal import Organizer, User
from ..schemas.review import ReviewCreate, ReviewResponse, ReviewUpdate
from ..services.review_service import ReviewService
from ..utils.dependencies import get_current_organizer, get_current_user


router = APIRouter(prefix="/reviews", tags=["reviews"])


def get_review_service(db: AsyncSession = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    review_data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
) -> Any:
    review = await review_service.create_review(current_user.id, review_data)
    return ReviewResponse.model_validate(review)


@router.get("", response_model=List[ReviewResponse])
async def list_reviews(review_service: ReviewService = Depends(get_review_service)) -> Any:
    reviews = await review_service.get_all_reviews()
    return [ReviewResponse.model_validate(review) for review in reviews]


@router.get("/organizer", response_model=List[ReviewResponse])
async def list_organizer_reviews(
    current_organizer: Organizer = Depends(get_current_organizer),
    review_service: ReviewService = Depends(get_review_service)
) -> Any:
    """Reviews left on any of the caller's events."""
    reviews = await review_service.get_organizer_reviews(current_organizer.id)
    return [ReviewResponse.model_validate(review) for review in reviews]


@router.get("/event/{event_id}", response_model=List[ReviewResponse])
async def list_event_reviews(
    event_id: UUID,
    review_service: ReviewService = Depends(get_review_service)
) -> Any:
    reviews = await review_service.get_event_reviews(event_id)
    return [ReviewResponse.model_validate(review) for review in reviews]


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: UUID,
    review_data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
) -> Any:
    review = await review_service.update_review(review_id, current_user.id, review_data)
    return ReviewResponse.model_validate(review)
