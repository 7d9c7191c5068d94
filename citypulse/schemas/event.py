"""
Event schemas for request/response validation.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.event import EventCategory, EventStatus, EventType, TicketType
from ..utils.clock import as_utc


class TimeFilter(str, enum.Enum):
    """Which slice of the calendar a listing covers."""
    UPCOMING = "upcoming"
    CURRENT = "current"
    PAST = "past"


class EventBase(BaseModel):
    """Base event schema with common fields."""

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    description: str = Field(..., min_length=1, description="Event description")
    category: EventCategory
    event_type: EventType
    start_date: datetime = Field(..., description="Start date and time")
    end_date: datetime = Field(..., description="End date and time")
    venue_city: str = Field(..., min_length=1, max_length=100)
    venue_address: Optional[str] = Field(None, max_length=255)
    online_link: Optional[str] = Field(None, max_length=500)
    banner: str = Field(..., min_length=1, max_length=500, description="Banner image URL")
    ticket_type: TicketType
    price: Decimal = Field(Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    max_attendees: int = Field(..., gt=0, description="Ticket capacity")


class EventCreate(EventBase):
    """Schema for creating a new event."""

    status: EventStatus = EventStatus.DRAFT

    @field_validator("status")
    @classmethod
    def status_must_be_initial(cls, v):
        """New events start as drafts or go straight to published."""
        if v not in (EventStatus.DRAFT, EventStatus.PUBLISHED):
            raise ValueError("New events must be Draft or Published")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        # Offset-less datetimes are taken as UTC
        self.start_date = as_utc(self.start_date)
        self.end_date = as_utc(self.end_date)
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdate(BaseModel):
    """Schema for updating an existing event; omitted fields stay as they are."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[EventCategory] = None
    event_type: Optional[EventType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    venue_city: Optional[str] = Field(None, min_length=1, max_length=100)
    venue_address: Optional[str] = Field(None, max_length=255)
    online_link: Optional[str] = Field(None, max_length=500)
    banner: Optional[str] = Field(None, min_length=1, max_length=500)
    ticket_type: Optional[TicketType] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    max_attendees: Optional[int] = Field(None, gt=0)
    status: Optional[EventStatus] = None


class OrganizerSummary(BaseModel):
    id: UUID
    name: str
    email: str
    organization_name: Optional[str] = None
    logo: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class EventResponse(EventBase):
    """Schema for event response."""

    id: UUID
    organizer_id: UUID
    status: EventStatus
    sold_tickets: int
    available_tickets: int
    is_sold_out: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EventDetailResponse(EventResponse):
    """Event with its organizer's public details."""

    organizer: Optional[OrganizerSummary] = None


class EventListResponse(BaseModel):
    """Schema for paginated event list response."""

    events: list[EventDetailResponse]
    total: int
    page: int
    pages: int


class EventFilters(BaseModel):
    """Schema for event filtering parameters."""

    keyword: Optional[str] = Field(None, description="Case-insensitive match on the title")
    category: Optional[EventCategory] = None
    time: TimeFilter = TimeFilter.UPCOMING
    page: int = Field(1, ge=1)
    limit: int = Field(9, ge=1, le=100)
