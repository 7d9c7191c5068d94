"""
Pydantic schemas for booking-related API requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ..models.booking import BookingStatus, PaymentStatus
from ..models.event import EventStatus


class BookingCreateRequest(BaseModel):
    """Schema for creating a new booking."""

    event_id: UUID = Field(..., description="ID of the event to book")
    number_of_tickets: int = Field(..., ge=1, description="Number of tickets to book")
    coupon_code: Optional[str] = Field(None, max_length=50, description="Optional discount code")
    payment_method: Optional[str] = Field(None, max_length=50, description="Accepted and ignored; payment is simulated")

    @field_validator("coupon_code")
    @classmethod
    def blank_code_is_no_code(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class BookingEventSummary(BaseModel):
    id: UUID
    title: str
    start_date: datetime
    end_date: datetime
    venue_city: str
    banner: str
    status: EventStatus

    model_config = {"from_attributes": True}


class BookingUserSummary(BaseModel):
    id: UUID
    name: str
    email: str

    model_config = {"from_attributes": True}


class BookingCouponSummary(BaseModel):
    id: UUID
    code: str
    discount_percentage: Decimal

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    """Schema for booking responses."""

    id: UUID
    user_id: UUID
    event_id: UUID
    coupon_id: Optional[UUID] = None
    number_of_tickets: int
    original_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    payment_status: PaymentStatus
    payment_id: Optional[str] = None
    status: BookingStatus
    qr_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingWithEventResponse(BookingResponse):
    """A booking as its owner sees it."""

    event: Optional[BookingEventSummary] = None


class OrganizerBookingResponse(BookingResponse):
    """A booking as the event's organizer sees it."""

    user: Optional[BookingUserSummary] = None
    event: Optional[BookingEventSummary] = None
    coupon: Optional[BookingCouponSummary] = None


class CreateBookingResponse(BaseModel):
    """Response for successful booking creation."""

    booking: BookingResponse
    coupon_applied: bool = False
    coupon_message: Optional[str] = None
    message: str = "Booking created successfully"


class DashboardStatsResponse(BaseModel):
    """Organizer dashboard figures."""

    total_events: int
    upcoming_events: int
    total_sales: Decimal
    total_attendees: int
