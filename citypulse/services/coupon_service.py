"""
Coupon ledger: organizer-issued discount codes and their validation.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.coupon import Coupon
from ..models.event import Event
from ..schemas.coupon import CouponCreate
from ..utils.clock import as_utc, utcnow
from ..utils.exceptions import (
    AuthorizationError,
    CouponError,
    CouponExpiredError,
    CouponNotFoundError,
    CouponNotValidForEventError,
    DuplicateCouponCodeError,
    EventNotFoundError,
    InvalidCouponError,
    UsageLimitReachedError,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def compute_discount(original_amount: Decimal, discount_percentage: Decimal) -> Decimal:
    """Percentage of the original amount, rounded half-up to cents."""
    return (original_amount * discount_percentage / Decimal(100)).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class CouponCheck:
    """Outcome of checking a code against an event."""

    coupon: Optional[Coupon]
    error: Optional[CouponError] = None

    @property
    def applicable(self) -> bool:
        return self.coupon is not None and self.error is None


class CouponService:
    """Service for managing and validating coupons."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_coupon(self, organizer_id: UUID, data: CouponCreate) -> Coupon:
        """
        Create a coupon owned by the organizer.

        Raises:
            DuplicateCouponCodeError: If the organizer already has this code
            EventNotFoundError: If the scoped event does not exist
            AuthorizationError: If the scoped event belongs to someone else
        """
        code = Coupon.normalize_code(data.code)

        if data.event_id is not None:
            event = await self.session.get(Event, data.event_id)
            if event is None:
                raise EventNotFoundError(str(data.event_id))
            if event.organizer_id != organizer_id:
                raise AuthorizationError(
                    "Not authorized to create coupons for this event",
                    resource_type="event",
                    resource_id=str(data.event_id),
                    action="create_coupon",
                )

        existing = await self.session.execute(
            select(Coupon.id).where(Coupon.organizer_id == organizer_id, Coupon.code == code)
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateCouponCodeError(code)

        coupon = Coupon(
            organizer_id=organizer_id,
            code=code,
            discount_percentage=data.discount_percentage,
            expiry_date=as_utc(data.expiry_date),
            usage_limit=data.usage_limit,
            event_id=data.event_id,
        )

        try:
            self.session.add(coupon)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise DuplicateCouponCodeError(code)

        logger.info(f"Coupon {code} created by organizer {organizer_id}")
        return coupon

    async def list_coupons(self, organizer_id: UUID) -> List[Coupon]:
        """Coupons of one organizer, newest first."""
        result = await self.session.execute(
            select(Coupon)
            .where(Coupon.organizer_id == organizer_id)
            .order_by(desc(Coupon.created_at))
        )
        return list(result.scalars().all())

    async def delete_coupon(self, coupon_id: UUID, organizer_id: UUID) -> None:
        """
        Delete one of the organizer's coupons.

        A coupon owned by someone else is reported as missing.
        """
        coupon = await self.session.get(Coupon, coupon_id)
        if coupon is None or coupon.organizer_id != organizer_id:
            raise CouponNotFoundError(str(coupon_id))

        await self.session.delete(coupon)
        await self.session.commit()

    async def check_coupon(
        self,
        code: str,
        event: Event,
        now: Optional[datetime] = None,
    ) -> CouponCheck:
        """
        Look up an active coupon of the event's organizer and run the
        expiry, usage and event-scope checks in that order. Nothing is
        modified.
        """
        normalized = Coupon.normalize_code(code)
        result = await self.session.execute(
            select(Coupon).where(
                Coupon.code == normalized,
                Coupon.organizer_id == event.organizer_id,
                Coupon.is_active.is_(True),
            )
        )
        coupon = result.scalar_one_or_none()

        if coupon is None:
            return CouponCheck(None, InvalidCouponError(normalized))
        if coupon.is_expired(now or utcnow()):
            return CouponCheck(coupon, CouponExpiredError(normalized))
        if not coupon.has_uses_left:
            return CouponCheck(coupon, UsageLimitReachedError(normalized, coupon.usage_limit))
        if not coupon.applies_to_event(event.id):
            return CouponCheck(coupon, CouponNotValidForEventError(normalized, event.id))

        return CouponCheck(coupon)

    async def validate_coupon(self, code: str, event_id: UUID) -> Coupon:
        """
        Report whether a code would apply to the event right now.

        Raises:
            EventNotFoundError: If the event does not exist
            InvalidCouponError, CouponExpiredError, UsageLimitReachedError,
            CouponNotValidForEventError: The first check that fails
        """
        event = await self.session.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))

        check = await self.check_coupon(code, event)
        if check.error is not None:
            raise check.error
        return check.coupon

    async def consume_use(self, coupon_id: UUID) -> bool:
        """
        Take one use of the coupon, provided it is still active and under
        its limit. Does not commit.

        Returns:
            False if another booking took the last use first
        """
        result = await self.session.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                Coupon.is_active.is_(True),
                or_(Coupon.usage_limit == 0, Coupon.used_count < Coupon.usage_limit),
            )
            .values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
