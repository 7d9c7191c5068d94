"""
Coupon model for organizer-issued discount codes.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from ..utils.clock import as_utc, utcnow

if TYPE_CHECKING:
    from .event import Event


class Coupon(Base):
    """Discount code scoped to an organizer and optionally to one event."""

    __tablename__ = "coupons"

    code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    organizer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("principals.id"),
        nullable=False,
        index=True
    )

    # None means the coupon applies to every event of the organizer
    event_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id"),
        nullable=True,
        index=True
    )

    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # 0 means unlimited
    usage_limit: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    used_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    event: Mapped[Optional["Event"]] = relationship("Event")

    __table_args__ = (
        UniqueConstraint("organizer_id", "code", name="uq_coupons_organizer_code"),
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="ck_coupons_discount_percentage_range"
        ),
        CheckConstraint("usage_limit >= 0", name="ck_coupons_usage_limit_non_negative"),
        CheckConstraint("used_count >= 0", name="ck_coupons_used_count_non_negative"),
    )

    @staticmethod
    def normalize_code(code: str) -> str:
        """Codes are matched case-insensitively and stored uppercase."""
        return code.strip().upper()

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """A coupon is usable up to and including its expiry instant."""
        return (now or utcnow()) > as_utc(self.expiry_date)

    @property
    def has_uses_left(self) -> bool:
        return self.usage_limit == 0 or self.used_count < self.usage_limit

    def applies_to_event(self, event_id: uuid.UUID) -> bool:
        return self.event_id is None or self.event_id == event_id

    def __repr__(self) -> str:
        return (
            f"<Coupon(id={self.id}, code='{self.code}', "
            f"used={self.used_count}/{self.usage_limit or 'unlimited'})>"
        )
