"""
Tests for event creation, listing and updates.
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pydantic
import pytest

from citypulse.models import EventCategory, EventStatus, EventType, TicketType
from citypulse.schemas.event import EventCreate, EventFilters, EventUpdate, TimeFilter
from citypulse.services.event_service import EventService
from citypulse.utils.clock import utcnow
from citypulse.utils.exceptions import AuthorizationError, EventNotFoundError, InvalidEventStateError


def event_payload(**overrides) -> dict:
    start = utcnow() + timedelta(days=3)
    values = dict(
        title="Tech Meetup",
        description="Talks and pizza",
        category=EventCategory.TECH,
        event_type=EventType.OFFLINE,
        start_date=start,
        end_date=start + timedelta(hours=2),
        venue_city="Bengaluru",
        banner="https://img.example.com/meetup.png",
        ticket_type=TicketType.PAID,
        price=Decimal("15.00"),
        max_attendees=40,
    )
    values.update(overrides)
    return values


class TestEventSchemas:
    """Tests for event request validation"""

    def test_new_event_defaults_to_draft(self):
        """Test events start as drafts unless published explicitly"""
        assert EventCreate(**event_payload()).status == EventStatus.DRAFT

    def test_new_event_cannot_start_cancelled(self):
        """Test only Draft and Published are allowed on creation"""
        with pytest.raises(pydantic.ValidationError):
            EventCreate(**event_payload(status=EventStatus.CANCELLED))

    def test_end_before_start(self):
        """Test inverted dates are rejected"""
        start = utcnow() + timedelta(days=1)
        with pytest.raises(pydantic.ValidationError):
            EventCreate(**event_payload(start_date=start, end_date=start - timedelta(hours=1)))

    def test_capacity_must_be_positive(self):
        """Test zero capacity is rejected"""
        with pytest.raises(pydantic.ValidationError):
            EventCreate(**event_payload(max_attendees=0))


class TestCreateEvent:
    """Tests for EventService.create_event"""

    @pytest.mark.asyncio
    async def test_creates_with_no_tickets_sold(self, session, make_organizer):
        """Test a new event belongs to its organizer and is empty"""
        organizer = await make_organizer()

        event = await EventService(session).create_event(
            organizer.id, EventCreate(**event_payload(status=EventStatus.PUBLISHED))
        )

        assert event.organizer_id == organizer.id
        assert event.sold_tickets == 0
        assert event.available_tickets == 40
        assert event.status == EventStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_get_event_with_organizer(self, session, make_organizer, make_event):
        """Test an event is loaded with its organizer"""
        organizer = await make_organizer(organization_name="Jazz Club")
        event = await make_event(organizer)

        loaded = await EventService(session).get_event_by_id(event.id)

        assert loaded.organizer.organization_name == "Jazz Club"


class TestListEvents:
    """Tests for EventService.get_events"""

    @pytest.mark.asyncio
    async def test_only_published_upcoming_by_default(self, session, make_organizer, make_event):
        """Test drafts, cancelled and past events are hidden from the default listing"""
        organizer = await make_organizer()
        visible = await make_event(organizer, title="Visible")
        await make_event(organizer, title="Draft", status=EventStatus.DRAFT)
        await make_event(organizer, title="Cancelled", status=EventStatus.CANCELLED)
        await make_event(organizer, title="Old", start_date=utcnow() - timedelta(days=10))

        events, total = await EventService(session).get_events(EventFilters())

        assert total == 1
        assert [e.id for e in events] == [visible.id]

    @pytest.mark.asyncio
    async def test_upcoming_soonest_first(self, session, make_organizer, make_event):
        """Test upcoming events are ordered by start date"""
        organizer = await make_organizer()
        later = await make_event(organizer, title="Later", start_date=utcnow() + timedelta(days=9))
        sooner = await make_event(organizer, title="Sooner", start_date=utcnow() + timedelta(days=2))

        events, _ = await EventService(session).get_events(EventFilters(time=TimeFilter.UPCOMING))

        assert [e.id for e in events] == [sooner.id, later.id]

    @pytest.mark.asyncio
    async def test_current_and_past(self, session, make_organizer, make_event):
        """Test in-progress and finished events are listed separately"""
        organizer = await make_organizer()
        running = await make_event(organizer, title="Running", start_date=utcnow() - timedelta(hours=1))
        finished = await make_event(organizer, title="Finished", start_date=utcnow() - timedelta(days=2))
        service = EventService(session)

        current, _ = await service.get_events(EventFilters(time=TimeFilter.CURRENT))
        past, _ = await service.get_events(EventFilters(time=TimeFilter.PAST))

        assert [e.id for e in current] == [running.id]
        assert [e.id for e in past] == [finished.id]

    @pytest.mark.asyncio
    async def test_keyword_is_case_insensitive(self, session, make_organizer, make_event):
        """Test keyword search matches titles regardless of case"""
        organizer = await make_organizer()
        match = await make_event(organizer, title="Summer Jazz Festival")
        await make_event(organizer, title="Rock Night")

        events, total = await EventService(session).get_events(EventFilters(keyword="jazz"))

        assert total == 1
        assert events[0].id == match.id

    @pytest.mark.asyncio
    async def test_keyword_wildcards_match_literally(self, session, make_organizer, make_event):
        """Test % and _ in a search term are not treated as wildcards"""
        organizer = await make_organizer()
        discount = await make_event(organizer, title="50% Off Comedy")
        await make_event(organizer, title="500 Club Night")
        open_mic = await make_event(organizer, title="Open_Mic")
        await make_event(organizer, title="Opening Gala")

        service = EventService(session)
        percent, _ = await service.get_events(EventFilters(keyword="50%"))
        underscore, _ = await service.get_events(EventFilters(keyword="open_"))

        assert [e.id for e in percent] == [discount.id]
        assert [e.id for e in underscore] == [open_mic.id]

    @pytest.mark.asyncio
    async def test_category_filter(self, session, make_organizer, make_event):
        """Test listing by category"""
        organizer = await make_organizer()
        await make_event(organizer, category=EventCategory.MUSIC)
        workshop = await make_event(organizer, title="Pottery", category=EventCategory.WORKSHOP)

        events, _ = await EventService(session).get_events(EventFilters(category=EventCategory.WORKSHOP))

        assert [e.id for e in events] == [workshop.id]

    @pytest.mark.asyncio
    async def test_pagination(self, session, make_organizer, make_event):
        """Test pages of a fixed size and the page count"""
        organizer = await make_organizer()
        for day in range(5):
            await make_event(organizer, title=f"Gig {day}", start_date=utcnow() + timedelta(days=day + 1))
        service = EventService(session)

        page_two, total = await service.get_events(EventFilters(page=2, limit=2))

        assert total == 5
        assert [e.title for e in page_two] == ["Gig 2", "Gig 3"]
        assert service.page_count(total, 2) == 3
        assert service.page_count(0, 2) == 0

    @pytest.mark.asyncio
    async def test_organizer_sees_all_own_events(self, session, make_organizer, make_event):
        """Test the organizer listing includes drafts and excludes other organizers"""
        organizer = await make_organizer()
        rival = await make_organizer(name="Rita")
        await make_event(organizer, status=EventStatus.DRAFT)
        await make_event(organizer, title="Published")
        await make_event(rival, title="Rival")

        events = await EventService(session).get_organizer_events(organizer.id)

        assert len(events) == 2
        assert all(e.organizer_id == organizer.id for e in events)


class TestUpdateEvent:
    """Tests for EventService.update_event"""

    @pytest.mark.asyncio
    async def test_partial_update(self, session, make_organizer, make_event):
        """Test only supplied fields change"""
        organizer = await make_organizer()
        event = await make_event(organizer, title="Jazz Night", price=Decimal("50.00"))

        updated = await EventService(session).update_event(
            event.id, organizer.id, EventUpdate(price=Decimal("60.00"))
        )

        assert updated.price == Decimal("60.00")
        assert updated.title == "Jazz Night"


    @pytest.mark.asyncio
    async def test_clear_optional_venue_fields(self, session, make_organizer, make_event):
        """Test an explicit null clears the address while omitted fields stay"""
        organizer = await make_organizer()
        event = await make_event(organizer, title="Jazz Night", online_link="https://stream.example.com/jazz")

        updated = await EventService(session).update_event(
            event.id, organizer.id, EventUpdate(venue_address=None, title=None)
        )

        assert updated.venue_address is None
        assert updated.online_link == "https://stream.example.com/jazz"
        assert updated.title == "Jazz Night"
    @pytest.mark.asyncio
    async def test_capacity_below_sold(self, session, make_organizer, make_event):
        """Test capacity cannot drop below tickets already sold"""
        organizer = await make_organizer()
        event = await make_event(organizer, max_attendees=10, sold_tickets=6)
        service = EventService(session)

        with pytest.raises(InvalidEventStateError):
            await service.update_event(event.id, organizer.id, EventUpdate(max_attendees=5))

        updated = await service.update_event(event.id, organizer.id, EventUpdate(max_attendees=6))
        assert updated.max_attendees == 6
        assert updated.is_sold_out

    @pytest.mark.asyncio
    async def test_allowed_status_transitions(self, session, make_organizer, make_event):
        """Test Draft -> Published -> Completed"""
        organizer = await make_organizer()
        event = await make_event(organizer, status=EventStatus.DRAFT)
        service = EventService(session)

        await service.update_event(event.id, organizer.id, EventUpdate(status=EventStatus.PUBLISHED))
        updated = await service.update_event(event.id, organizer.id, EventUpdate(status=EventStatus.COMPLETED))

        assert updated.status == EventStatus.COMPLETED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "current, requested",
        [
            (EventStatus.DRAFT, EventStatus.COMPLETED),
            (EventStatus.CANCELLED, EventStatus.PUBLISHED),
            (EventStatus.COMPLETED, EventStatus.DRAFT),
        ],
    )
    async def test_rejected_status_transitions(self, session, make_organizer, make_event, current, requested):
        """Test status changes outside the lifecycle are refused"""
        organizer = await make_organizer()
        event = await make_event(organizer, status=current)

        with pytest.raises(InvalidEventStateError):
            await EventService(session).update_event(event.id, organizer.id, EventUpdate(status=requested))

    @pytest.mark.asyncio
    async def test_end_before_start(self, session, make_organizer, make_event):
        """Test moving the end before the start is refused"""
        organizer = await make_organizer()
        event = await make_event(organizer)

        with pytest.raises(InvalidEventStateError):
            await EventService(session).update_event(
                event.id, organizer.id, EventUpdate(end_date=event.start_date - timedelta(hours=1))
            )

    @pytest.mark.asyncio
    async def test_only_owner_can_update(self, session, make_organizer, make_event):
        """Test another organizer cannot edit the event"""
        organizer = await make_organizer()
        rival = await make_organizer(name="Rita")
        event = await make_event(organizer)

        with pytest.raises(AuthorizationError):
            await EventService(session).update_event(event.id, rival.id, EventUpdate(title="Hijacked"))

    @pytest.mark.asyncio
    async def test_missing_event(self, session, make_organizer):
        """Test updating an unknown event"""
        organizer = await make_organizer()

        with pytest.raises(EventNotFoundError):
            await EventService(session).update_event(uuid4(), organizer.id, EventUpdate(title="x"))
