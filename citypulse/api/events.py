"""
Event management API endpoints.
"""

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.event import EventCategory
from ..models.principal import Organizer
from ..schemas.common import MessageResponse
from ..schemas.event import (
    EventCreate,
    EventDetailResponse,
    EventFilters,
    EventListResponse,
    EventResponse,
    EventUpdate,
    TimeFilter,
)
from ..services.event_service import EventService
from ..utils.dependencies import get_current_organizer


router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(db: AsyncSession = Depends(get_db)) -> EventService:
    """Dependency to get event service instance."""
    return EventService(db)


@router.get("", response_model=EventListResponse)
async def list_events(
    keyword: Optional[str] = Query(None, description="Search in event titles"),
    category: Optional[EventCategory] = Query(None, description="Filter by category"),
    time: TimeFilter = Query(TimeFilter.UPCOMING, description="upcoming, current or past"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(9, ge=1, le=100, description="Page size"),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """
    Browse published events.

    Upcoming events are listed soonest first, past events most recent first.
    """
    filters = EventFilters(keyword=keyword, category=category, time=time, page=page, limit=limit)
    events, total = await event_service.get_events(filters)

    return EventListResponse(
        events=[EventDetailResponse.model_validate(event) for event in events],
        total=total,
        page=page,
        pages=EventService.page_count(total, limit),
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    current_organizer: Organizer = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    event = await event_service.create_event(current_organizer.id, event_data)
    return EventResponse.model_validate(event)


@router.get("/mine", response_model=List[EventResponse])
async def list_my_events(
    current_organizer: Organizer = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """All events of the calling organizer, drafts included."""
    events = await event_service.get_organizer_events(current_organizer.id)
    return [EventResponse.model_validate(event) for event in events]


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event(
    event_id: UUID,
    event_service: EventService = Depends(get_event_service)
) -> Any:
    event = await event_service.get_event_by_id(event_id)
    return EventDetailResponse.model_validate(event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    event_data: EventUpdate,
    current_organizer: Organizer = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """
    Update an event owned by the caller.

    Capacity cannot drop below the tickets already sold.
    """
    event = await event_service.update_event(event_id, current_organizer.id, event_data)
    return EventResponse.model_validate(event)


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: UUID,
    current_organizer: Organizer = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """Delete an event together with its bookings, reviews and event-scoped coupons."""
    await event_service.delete_event(event_id, current_organizer.id)
    return MessageResponse(message="Event deleted")
