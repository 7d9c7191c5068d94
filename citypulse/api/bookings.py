"""
FastAPI routes for ticket bookings.
"""

import logging
from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.principal import Organizer, User
from ..schemas.booking import (
    BookingCreateRequest,
    BookingResponse,
    BookingWithEventResponse,
    CreateBookingResponse,
    DashboardStatsResponse,
    OrganizerBookingResponse,
)
from ..schemas.common import MessageResponse
from ..services.booking_service import BookingService
from ..utils.dependencies import get_current_organizer, get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    """Dependency to get booking service instance."""
    return BookingService(db)


@router.post("", response_model=CreateBookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreateRequest,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Book tickets for an event.

    Payment is simulated and the booking is confirmed immediately. A coupon
    that does not apply is reported in ``coupon_message`` and the booking
    goes through at full price.

    Raises:
        EventNotFoundError: If the event does not exist
        EventNotBookableError: If the event is not open for booking
        CapacityExceededError: If fewer seats remain than requested
    """
    result = await booking_service.create_booking(
        user=current_user,
        event_id=request.event_id,
        number_of_tickets=request.number_of_tickets,
        coupon_code=request.coupon_code,
    )

    return CreateBookingResponse(
        booking=BookingResponse.model_validate(result.booking),
        coupon_applied=result.coupon_applied,
        coupon_message=result.coupon_message,
        message="Booking created successfully",
    )


@router.get("/mine", response_model=List[BookingWithEventResponse])
async def list_my_bookings(
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> Any:
    bookings = await booking_service.get_user_bookings(current_user.id)
    return [BookingWithEventResponse.model_validate(booking) for booking in bookings]


@router.get("/organizer", response_model=List[OrganizerBookingResponse])
async def list_organizer_bookings(
    current_organizer: Organizer = Depends(get_current_organizer),
    booking_service: BookingService = Depends(get_booking_service)
) -> Any:
    """Bookings across every event of the calling organizer."""
    bookings = await booking_service.get_organizer_bookings(current_organizer.id)
    return [OrganizerBookingResponse.model_validate(booking) for booking in bookings]


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    current_organizer: Organizer = Depends(get_current_organizer),
    booking_service: BookingService = Depends(get_booking_service)
) -> Any:
    """Event counts, confirmed sales and attendees for the organizer dashboard."""
    stats = await booking_service.get_dashboard_stats(current_organizer.id)
    return DashboardStatsResponse(**stats)


@router.get("/event/{event_id}", response_model=List[OrganizerBookingResponse])
async def list_event_bookings(
    event_id: UUID,
    current_organizer: Organizer = Depends(get_current_organizer),
    booking_service: BookingService = Depends(get_booking_service)
) -> Any:
    bookings = await booking_service.get_event_bookings(event_id, current_organizer.id)
    return [OrganizerBookingResponse.model_validate(booking) for booking in bookings]


@router.put("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> Any:
    """
    Cancel one of the caller's bookings before the event starts.

    The tickets go back to the event's capacity.
    """
    booking = await booking_service.cancel_booking(booking_id, current_user)
    return BookingResponse.model_validate(booking)


@router.delete("/{booking_id}", response_model=MessageResponse)
async def delete_booking(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> Any:
    """Remove a cancelled booking from the caller's history."""
    await booking_service.delete_booking(booking_id, current_user)
    return MessageResponse(message="Booking deleted")
