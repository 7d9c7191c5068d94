"""
Booking model for managing ticket reservations.
"""

import enum
import uuid
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .event import Event
    from .coupon import Coupon
    from .principal import User


class BookingStatus(str, enum.Enum):
    """Enumeration for booking status."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    """Enumeration for payment status."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Booking(Base):
    """Booking model for managing ticket reservations."""

    __tablename__ = "bookings"

    # Not a foreign key: bookings outlive the user that made them.
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True
    )

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id"),
        nullable=False,
        index=True
    )

    coupon_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("coupons.id", ondelete="SET NULL"),
        nullable=True
    )

    # Booking details
    number_of_tickets: Mapped[int] = mapped_column(Integer, nullable=False)
    original_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal('0.00')
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal('0.00')
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal('0.00')
    )

    # Payment and lifecycle
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, values_callable=lambda e: [m.value for m in e]),
        default=PaymentStatus.PENDING,
        nullable=False
    )
    payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, values_callable=lambda e: [m.value for m in e]),
        default=BookingStatus.CONFIRMED,
        nullable=False,
        index=True
    )

    qr_code: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Relationships
    event: Mapped["Event"] = relationship("Event")
    coupon: Mapped[Optional["Coupon"]] = relationship("Coupon")
    user: Mapped[Optional["User"]] = relationship(
        "User",
        primaryjoin="foreign(Booking.user_id) == User.id",
        viewonly=True
    )

    __table_args__ = (
        CheckConstraint("number_of_tickets > 0", name="ck_bookings_number_of_tickets_positive"),
        CheckConstraint("original_amount >= 0", name="ck_bookings_original_amount_non_negative"),
        CheckConstraint("discount_amount >= 0", name="ck_bookings_discount_amount_non_negative"),
        CheckConstraint("total_amount >= 0", name="ck_bookings_total_amount_non_negative"),
    )

    @property
    def is_active(self) -> bool:
        """A booking holds seats only while confirmed."""
        return self.status == BookingStatus.CONFIRMED

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, user_id={self.user_id}, event_id={self.event_id}, "
            f"tickets={self.number_of_tickets}, status={self.status.value})>"
        )
