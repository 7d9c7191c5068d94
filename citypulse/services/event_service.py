"""
Event service for managing events and their operations.
"""

import logging
import math
from typing import List, Tuple
from uuid import UUID

from sqlalchemy import and_, asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..cache import get_stats_cache
from ..models.event import EVENT_STATUS_TRANSITIONS, Event, EventStatus
from ..schemas.event import EventCreate, EventFilters, EventUpdate, TimeFilter
from ..utils.clock import as_utc, utcnow
from ..utils.exceptions import AuthorizationError, EventNotFoundError, InvalidEventStateError
from .cascade_service import CascadeService

logger = logging.getLogger(__name__)

# Optional columns a PUT may set back to null
CLEARABLE_FIELDS = {"venue_address", "online_link"}


def escape_like(term: str) -> str:
    """Make ``%`` and ``_`` in a search term match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class EventService:
    """Service class for event management operations."""

    def __init__(self, db: AsyncSession):
        """Initialize the event service with database session."""
        self.db = db

    async def create_event(self, organizer_id: UUID, event_data: EventCreate) -> Event:
        """
        Create a new event owned by the organizer.

        Args:
            organizer_id: ID of the owning organizer
            event_data: Event creation data

        Returns:
            Created event instance
        """
        values = event_data.model_dump()
        values["start_date"] = as_utc(values["start_date"])
        values["end_date"] = as_utc(values["end_date"])

        event = Event(organizer_id=organizer_id, sold_tickets=0, **values)

        self.db.add(event)
        await self.db.commit()

        logger.info(f"Event {event.id} created by organizer {organizer_id}")
        await get_stats_cache().invalidate(organizer_id)
        return event

    async def get_event_by_id(self, event_id: UUID) -> Event:
        """
        Get event by ID together with its organizer.

        Raises:
            EventNotFoundError: If event doesn't exist
        """
        result = await self.db.execute(
            select(Event)
            .options(selectinload(Event.organizer))
            .where(Event.id == event_id)
        )
        event = result.scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    async def get_events(self, filters: EventFilters) -> Tuple[List[Event], int]:
        """
        Published events matching the filters, one page at a time.

        ``upcoming`` lists events that have not started yet, soonest first;
        ``current`` lists events in progress; ``past`` lists finished
        events, most recent first.

        Returns:
            Tuple of (events on the requested page, total matches)
        """
        now = utcnow()
        conditions = [Event.status == EventStatus.PUBLISHED]

        if filters.keyword:
            conditions.append(Event.title.ilike(f"%{escape_like(filters.keyword)}%", escape="\\"))

        if filters.category:
            conditions.append(Event.category == filters.category)

        if filters.time == TimeFilter.PAST:
            conditions.append(Event.end_date < now)
            ordering = desc(Event.start_date)
        elif filters.time == TimeFilter.CURRENT:
            conditions.append(Event.start_date <= now)
            conditions.append(Event.end_date >= now)
            ordering = asc(Event.start_date)
        else:
            conditions.append(Event.start_date > now)
            ordering = asc(Event.start_date)

        where_clause = and_(*conditions)

        total = await self.db.scalar(select(func.count(Event.id)).where(where_clause))

        result = await self.db.execute(
            select(Event)
            .options(selectinload(Event.organizer))
            .where(where_clause)
            .order_by(ordering)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        return list(result.scalars().all()), total or 0

    @staticmethod
    def page_count(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    async def get_organizer_events(self, organizer_id: UUID) -> List[Event]:
        """All events of one organizer, whatever their status."""
        result = await self.db.execute(
            select(Event)
            .where(Event.organizer_id == organizer_id)
            .order_by(desc(Event.start_date))
        )
        return list(result.scalars().all())

    async def _get_owned_event(self, event_id: UUID, organizer_id: UUID, action: str) -> Event:
        event = await self.db.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))

        if event.organizer_id != organizer_id:
            raise AuthorizationError(
                f"Not authorized to {action} this event",
                resource_type="event",
                resource_id=str(event_id),
                action=action,
            )
        return event

    async def update_event(self, event_id: UUID, organizer_id: UUID, event_data: EventUpdate) -> Event:
        """
        Update an existing event.

        Args:
            event_id: Event ID
            organizer_id: ID of the caller, who must own the event
            event_data: Fields to change; omitted fields are kept

        Returns:
            Updated event instance

        Raises:
            EventNotFoundError: If event doesn't exist
            AuthorizationError: If the caller does not own the event
            InvalidEventStateError: If capacity would drop below tickets
                already sold, the dates are inverted, or the status change
                is not allowed
        """
        event = await self._get_owned_event(event_id, organizer_id, "update")
        update_data = event_data.model_dump(exclude_unset=True)

        if update_data.get("max_attendees") is not None and update_data["max_attendees"] < event.sold_tickets:
            raise InvalidEventStateError(
                f"Capacity cannot be lower than the {event.sold_tickets} tickets already sold",
                details={"sold_tickets": event.sold_tickets, "max_attendees": update_data["max_attendees"]},
            )

        new_status = update_data.get("status")
        if new_status is not None and new_status != event.status:
            if new_status not in EVENT_STATUS_TRANSITIONS[event.status]:
                raise InvalidEventStateError(
                    f"Cannot change event status from {event.status.value} to {new_status.value}",
                    details={"current_status": event.status.value, "requested_status": new_status.value},
                )

        for field in ("start_date", "end_date"):
            if update_data.get(field) is not None:
                update_data[field] = as_utc(update_data[field])

        start = update_data.get("start_date") or event.start_date
        end = update_data.get("end_date") or event.end_date
        if as_utc(end) < as_utc(start):
            raise InvalidEventStateError("end_date must not be before start_date")

        for field, value in update_data.items():
            if value is not None or field in CLEARABLE_FIELDS:
                setattr(event, field, value)

        await self.db.commit()
        await self.db.refresh(event)

        await get_stats_cache().invalidate(organizer_id)
        logger.info(f"Event {event_id} updated")
        return event

    async def delete_event(self, event_id: UUID, organizer_id: UUID) -> None:
        """
        Delete an event with its bookings, reviews and event-scoped coupons.

        Raises:
            EventNotFoundError: If event doesn't exist
            AuthorizationError: If the caller does not own the event
        """
        await self._get_owned_event(event_id, organizer_id, "delete")
        await CascadeService(self.db).delete_event(event_id, organizer_id)
        logger.info(f"Event {event_id} deleted")
