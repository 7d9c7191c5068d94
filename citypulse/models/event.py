"""
Event model for managing events and their capacity.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .principal import Organizer


def _values(enum_cls):
    return [member.value for member in enum_cls]


class EventCategory(str, enum.Enum):
    MUSIC = "Music"
    TECH = "Tech"
    SPORTS = "Sports"
    CULTURAL = "Cultural"
    WORKSHOP = "Workshop"
    SEMINAR = "Seminar"
    OTHER = "Other"


class EventType(str, enum.Enum):
    OFFLINE = "Offline"
    ONLINE = "Online"


class TicketType(str, enum.Enum):
    FREE = "Free"
    PAID = "Paid"


class EventStatus(str, enum.Enum):
    """Lifecycle status of an event."""
    DRAFT = "Draft"
    PUBLISHED = "Published"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


# Allowed status changes; anything else is rejected on update.
EVENT_STATUS_TRANSITIONS = {
    EventStatus.DRAFT: {EventStatus.PUBLISHED},
    EventStatus.PUBLISHED: {EventStatus.DRAFT, EventStatus.CANCELLED, EventStatus.COMPLETED},
    EventStatus.CANCELLED: set(),
    EventStatus.COMPLETED: set(),
}


class Event(Base):
    """Event model for managing events and their capacity."""

    __tablename__ = "events"

    organizer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("principals.id"),
        nullable=False,
        index=True
    )

    # Event basic information
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[EventCategory] = mapped_column(
        Enum(EventCategory, values_callable=_values),
        nullable=False,
        index=True
    )
    event_type: Mapped[EventType] = mapped_column(
        Enum(EventType, values_callable=_values),
        nullable=False
    )

    # Event timing
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True
    )
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Venue
    venue_city: Mapped[str] = mapped_column(String(100), nullable=False)
    venue_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    online_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    banner: Mapped[str] = mapped_column(String(500), nullable=False)

    # Pricing
    ticket_type: Mapped[TicketType] = mapped_column(
        Enum(TicketType, values_callable=_values),
        nullable=False
    )
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal('0.00')
    )

    # Capacity management
    max_attendees: Mapped[int] = mapped_column(Integer, nullable=False)
    sold_tickets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus, values_callable=_values),
        nullable=False,
        default=EventStatus.DRAFT,
        index=True
    )

    organizer: Mapped["Organizer"] = relationship("Organizer", back_populates="events")

    __table_args__ = (
        CheckConstraint("max_attendees > 0", name="ck_events_max_attendees_positive"),
        CheckConstraint("sold_tickets >= 0", name="ck_events_sold_tickets_non_negative"),
        CheckConstraint("sold_tickets <= max_attendees", name="ck_events_capacity_consistency"),
        CheckConstraint("price >= 0", name="ck_events_price_non_negative"),
    )

    @property
    def available_tickets(self) -> int:
        """Seats that can still be booked."""
        return self.max_attendees - self.sold_tickets

    @property
    def is_sold_out(self) -> bool:
        """Check if the event is sold out."""
        return self.available_tickets <= 0

    @property
    def unit_price(self) -> Decimal:
        """Price charged per ticket; free events cost nothing."""
        if self.ticket_type == TicketType.FREE:
            return Decimal('0.00')
        return self.price or Decimal('0.00')

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title='{self.title}', "
            f"start={self.start_date}, sold={self.sold_tickets}/{self.max_attendees})>"
        )
