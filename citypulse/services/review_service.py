"""
Review service for post-event feedback.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.event import Event
from ..models.review import Review
from ..schemas.review import ReviewCreate, ReviewUpdate
from ..utils.exceptions import AuthorizationError, EventNotFoundError, ReviewNotFoundError

logger = logging.getLogger(__name__)

_WITH_RELATIONS = (selectinload(Review.user), selectinload(Review.event))


class ReviewService:
    """Service class for reviews. A user may review an event more than once."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, review_id: UUID) -> Review:
        result = await self.db.execute(
            select(Review).options(*_WITH_RELATIONS).where(Review.id == review_id)
        )
        review = result.scalar_one_or_none()
        if review is None:
            raise ReviewNotFoundError(str(review_id))
        return review

    async def create_review(self, user_id: UUID, data: ReviewCreate) -> Review:
        """
        Raises:
            EventNotFoundError: If the event does not exist
        """
        if await self.db.get(Event, data.event_id) is None:
            raise EventNotFoundError(str(data.event_id))

        review = Review(
            user_id=user_id,
            event_id=data.event_id,
            rating=data.rating,
            comment=data.comment,
        )
        self.db.add(review)
        await self.db.commit()

        logger.info(f"Review {review.id} posted for event {data.event_id}")
        return await self._load(review.id)

    async def update_review(self, review_id: UUID, user_id: UUID, data: ReviewUpdate) -> Review:
        """
        Change the rating and/or comment of one's own review.

        Raises:
            ReviewNotFoundError: If the review does not exist
            AuthorizationError: If the review belongs to another user
        """
        review = await self._load(review_id)

        if review.user_id != user_id:
            raise AuthorizationError(
                "User not authorized",
                resource_type="review",
                resource_id=str(review_id),
                action="update",
            )

        if data.rating is not None:
            review.rating = data.rating
        if data.comment is not None:
            review.comment = data.comment

        await self.db.commit()
        return await self._load(review_id)

    async def get_event_reviews(self, event_id: UUID) -> List[Review]:
        result = await self.db.execute(
            select(Review)
            .options(*_WITH_RELATIONS)
            .where(Review.event_id == event_id)
            .order_by(desc(Review.created_at))
        )
        return list(result.scalars().all())

    async def get_organizer_reviews(self, organizer_id: UUID) -> List[Review]:
        """Reviews left on any of the organizer's events."""
        result = await self.db.execute(
            select(Review)
            .join(Review.event)
            .options(*_WITH_RELATIONS)
            .where(Event.organizer_id == organizer_id)
            .order_by(desc(Review.created_at))
        )
        return list(result.scalars().all())

    async def get_all_reviews(self) -> List[Review]:
        """Every review, newest first."""
        result = await self.db.execute(
            select(Review).options(*_WITH_RELATIONS).order_by(desc(Review.created_at))
        )
        return list(result.scalars().all())
