"""
Tests for booking creation, cancellation and deletion.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from citypulse.models import (
    Booking,
    BookingStatus,
    Coupon,
    Event,
    EventStatus,
    Notification,
    NotificationSeverity,
    PaymentStatus,
    TicketType,
)
from citypulse.services.booking_service import BookingService
from citypulse.utils.clock import utcnow
from citypulse.utils.exceptions import (
    AlreadyCancelledError,
    AuthorizationError,
    BookingNotFoundError,
    CapacityExceededError,
    EventAlreadyStartedError,
    EventNotBookableError,
    EventNotFoundError,
    NotCancellableError,
    ValidationError,
)


class TestCreateBooking:
    """Tests for BookingService.create_booking"""

    @pytest.mark.asyncio
    async def test_books_tickets_and_charges_full_price(self, session, make_user, make_organizer, make_event):
        """Test a plain booking is confirmed, paid and reserves capacity"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, price=Decimal("50.00"))

        result = await BookingService(session).create_booking(user, event.id, 2)
        booking = result.booking

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.payment_status == PaymentStatus.PAID
        assert booking.payment_id.startswith("mock-pid-")
        assert booking.original_amount == Decimal("100.00")
        assert booking.discount_amount == Decimal("0.00")
        assert booking.total_amount == Decimal("100.00")
        assert booking.qr_code.startswith(f"{event.id}-{user.id}-")
        assert result.coupon_applied is False
        assert result.coupon_message is None

        await session.refresh(event)
        assert event.sold_tickets == 2

    @pytest.mark.asyncio
    async def test_free_event_costs_nothing(self, session, make_user, make_organizer, make_event):
        """Test a free event ignores its price field"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, ticket_type=TicketType.FREE, price=Decimal("25.00"))

        result = await BookingService(session).create_booking(user, event.id, 3)

        assert result.booking.original_amount == Decimal("0.00")
        assert result.booking.total_amount == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_unknown_event(self, session, make_user):
        """Test booking a missing event raises EventNotFoundError"""
        user = await make_user()

        with pytest.raises(EventNotFoundError):
            await BookingService(session).create_booking(user, uuid4(), 1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1, 11])
    async def test_quantity_out_of_range(self, session, make_user, make_organizer, make_event, quantity):
        """Test ticket counts outside 1..max_booking_quantity are rejected"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, max_attendees=50)

        with pytest.raises(ValidationError):
            await BookingService(session).create_booking(user, event.id, quantity)

        await session.refresh(event)
        assert event.sold_tickets == 0

    @pytest.mark.asyncio
    async def test_draft_event_is_not_bookable(self, session, make_user, make_organizer, make_event):
        """Test unpublished events cannot be booked"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, status=EventStatus.DRAFT)

        with pytest.raises(EventNotBookableError):
            await BookingService(session).create_booking(user, event.id, 1)

    @pytest.mark.asyncio
    async def test_capacity_scenario(self, session, make_user, make_organizer, make_event):
        """Test 8/10 sold: 3 tickets fail reporting 2 left, 2 tickets sell out the event"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, max_attendees=10, sold_tickets=8)
        service = BookingService(session)

        with pytest.raises(CapacityExceededError) as exc_info:
            await service.create_booking(user, event.id, 3)

        assert exc_info.value.details["available"] == 2
        assert "2" in exc_info.value.message
        await session.refresh(event)
        assert event.sold_tickets == 8

        await service.create_booking(user, event.id, 2)
        await session.refresh(event)
        assert event.sold_tickets == 10
        assert event.is_sold_out

    @pytest.mark.asyncio
    async def test_capacity_is_rechecked_atomically(
        self, session, session_factory, make_user, make_organizer, make_event
    ):
        """Test a stale availability read cannot oversell the event"""
        organizer = await make_organizer()
        first = await make_user()
        second = await make_user(name="Bob")
        event = await make_event(organizer, max_attendees=10, sold_tickets=9)

        async with session_factory() as stale_session:
            # Loads 9/10 into this session's identity map.
            await stale_session.get(Event, event.id)

            await BookingService(session).create_booking(first, event.id, 1)

            with pytest.raises(CapacityExceededError) as exc_info:
                await BookingService(stale_session).create_booking(second, event.id, 1)

        assert exc_info.value.details["available"] == 0
        await session.refresh(event)
        assert event.sold_tickets == 10
        bookings = await session.scalar(select(func.count(Booking.id)).where(Booking.event_id == event.id))
        assert bookings == 1

    @pytest.mark.asyncio
    async def test_notifies_organizer_and_queues_emails(
        self, session, make_user, make_organizer, make_event, queued_emails
    ):
        """Test the organizer gets a sale notification and both emails are queued"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, title="Jazz Night", price=Decimal("50.00"))

        result = await BookingService(session).create_booking(user, event.id, 2)

        notifications = (await session.execute(
            select(Notification).where(Notification.recipient_id == organizer.id)
        )).scalars().all()
        assert len(notifications) == 1
        assert notifications[0].message == "New Booking! 2 ticket(s) sold for Jazz Night. Revenue: $100.00"
        assert notifications[0].severity == NotificationSeverity.SUCCESS
        assert notifications[0].related_id == str(result.booking.id)

        booking_id = str(result.booking.id)
        queued_emails["send_ticket_email_task"].delay.assert_called_once_with(booking_id)
        queued_emails["send_organizer_sale_email_task"].delay.assert_called_once_with(booking_id)
        queued_emails["send_organizer_cancellation_email_task"].delay.assert_not_called()

    @pytest.mark.asyncio
    async def test_side_effect_failures_do_not_undo_booking(
        self, session, make_user, make_organizer, make_event, queued_emails
    ):
        """Test notification and queueing failures are swallowed after commit"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer)
        queued_emails["send_ticket_email_task"].delay.side_effect = ConnectionError("broker down")

        with patch(
            "citypulse.services.booking_service.NotificationService.notify",
            new=AsyncMock(side_effect=RuntimeError("db hiccup")),
        ):
            result = await BookingService(session).create_booking(user, event.id, 1)

        assert result.booking.status == BookingStatus.CONFIRMED
        await session.refresh(event)
        assert event.sold_tickets == 1
        stored = await session.get(Booking, result.booking.id)
        assert stored is not None
        queued_emails["send_organizer_sale_email_task"].delay.assert_called_once()


class TestCouponAtBooking:
    """Tests for coupon handling during booking creation"""

    @pytest.mark.asyncio
    async def test_save10_scenario(self, session, make_user, make_organizer, make_event, make_coupon):
        """Test SAVE10 with one use: first booking gets 10% off, second pays full price"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, price=Decimal("50.00"))
        coupon = await make_coupon(organizer, code="SAVE10", discount_percentage=Decimal("10"), usage_limit=1)
        service = BookingService(session)

        first = await service.create_booking(user, event.id, 2, coupon_code="SAVE10")

        assert first.coupon_applied is True
        assert first.booking.original_amount == Decimal("100.00")
        assert first.booking.discount_amount == Decimal("10.00")
        assert first.booking.total_amount == Decimal("90.00")
        assert first.booking.coupon_id == coupon.id
        await session.refresh(coupon)
        assert coupon.used_count == 1

        second = await service.create_booking(user, event.id, 2, coupon_code="SAVE10")

        assert second.coupon_applied is False
        assert second.coupon_message
        assert second.booking.discount_amount == Decimal("0.00")
        assert second.booking.total_amount == Decimal("100.00")
        assert second.booking.coupon_id is None
        await session.refresh(coupon)
        assert coupon.used_count == 1

    @pytest.mark.asyncio
    async def test_code_is_case_insensitive(self, session, make_user, make_organizer, make_event, make_coupon):
        """Test lower-case input matches the stored upper-case code"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer)
        await make_coupon(organizer, code="SAVE10")

        result = await BookingService(session).create_booking(user, event.id, 1, coupon_code=" save10 ")

        assert result.coupon_applied is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"expiry_date": utcnow() - timedelta(days=1)},
            {"usage_limit": 2, "used_count": 2},
            {"is_active": False},
        ],
        ids=["expired", "used-up", "inactive"],
    )
    async def test_unusable_coupon_is_ignored(
        self, session, make_user, make_organizer, make_event, make_coupon, overrides
    ):
        """Test an unusable coupon leaves price and usage untouched"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, price=Decimal("50.00"))
        coupon = await make_coupon(organizer, **overrides)
        used_before = coupon.used_count

        result = await BookingService(session).create_booking(user, event.id, 2, coupon_code="SAVE10")

        assert result.coupon_applied is False
        assert result.coupon_message
        assert result.booking.total_amount == Decimal("100.00")
        await session.refresh(coupon)
        assert coupon.used_count == used_before

    @pytest.mark.asyncio
    async def test_coupon_scoped_to_other_event_is_ignored(
        self, session, make_user, make_organizer, make_event, make_coupon
    ):
        """Test an event-scoped coupon does not apply elsewhere"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer)
        other_event = await make_event(organizer, title="Rock Night")
        coupon = await make_coupon(organizer, event_id=other_event.id)

        result = await BookingService(session).create_booking(user, event.id, 1, coupon_code="SAVE10")

        assert result.coupon_applied is False
        assert "not valid for this event" in result.coupon_message
        await session.refresh(coupon)
        assert coupon.used_count == 0

    @pytest.mark.asyncio
    async def test_other_organizers_coupon_is_unknown(
        self, session, make_user, make_organizer, make_event, make_coupon
    ):
        """Test coupons only apply to their own organizer's events"""
        organizer = await make_organizer()
        rival = await make_organizer(name="Rita")
        user = await make_user()
        event = await make_event(organizer)
        await make_coupon(rival, code="RIVAL50", discount_percentage=Decimal("50"))

        result = await BookingService(session).create_booking(user, event.id, 1, coupon_code="RIVAL50")

        assert result.coupon_applied is False
        assert result.booking.discount_amount == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_last_use_is_taken_once(
        self, session, session_factory, make_user, make_organizer, make_event, make_coupon
    ):
        """Test a stale coupon read cannot redeem past the usage limit"""
        organizer = await make_organizer()
        first = await make_user()
        second = await make_user(name="Bob")
        event = await make_event(organizer)
        coupon = await make_coupon(organizer, usage_limit=1)

        async with session_factory() as stale_session:
            await stale_session.get(Coupon, coupon.id)

            await BookingService(session).create_booking(first, event.id, 1, coupon_code="SAVE10")
            late = await BookingService(stale_session).create_booking(second, event.id, 1, coupon_code="SAVE10")

        assert late.coupon_applied is False
        assert late.coupon_message == "Coupon usage limit reached"
        assert late.booking.total_amount == Decimal("50.00")
        await session.refresh(coupon)
        assert coupon.used_count == 1

    @pytest.mark.asyncio
    async def test_unlimited_coupon(self, session, make_user, make_organizer, make_event, make_coupon):
        """Test usage_limit 0 never runs out"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, max_attendees=50)
        coupon = await make_coupon(organizer, usage_limit=0, used_count=500)

        result = await BookingService(session).create_booking(user, event.id, 1, coupon_code="SAVE10")

        assert result.coupon_applied is True
        await session.refresh(coupon)
        assert coupon.used_count == 501


class TestCancelBooking:
    """Tests for BookingService.cancel_booking"""

    @pytest.mark.asyncio
    async def test_cancel_releases_capacity(
        self, session, make_user, make_organizer, make_event, queued_emails
    ):
        """Test cancelling returns exactly the booked tickets and notifies the organizer"""
        organizer = await make_organizer()
        user = await make_user(name="Alice")
        event = await make_event(organizer, title="Jazz Night")
        service = BookingService(session)
        result = await service.create_booking(user, event.id, 3)

        booking = await service.cancel_booking(result.booking.id, user)

        assert booking.status == BookingStatus.CANCELLED
        await session.refresh(event)
        assert event.sold_tickets == 0

        messages = (await session.execute(
            select(Notification.message).where(Notification.recipient_id == organizer.id)
        )).scalars().all()
        assert "Booking Cancelled for Jazz Night. User: Alice" in messages
        queued_emails["send_organizer_cancellation_email_task"].delay.assert_called_once_with(str(booking.id))

    @pytest.mark.asyncio
    async def test_cancel_twice(self, session, make_user, make_organizer, make_event):
        """Test the second cancel fails and changes nothing"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer)
        other = await make_user(name="Bob")
        service = BookingService(session)
        mine = await service.create_booking(user, event.id, 2)
        await service.create_booking(other, event.id, 3)

        await service.cancel_booking(mine.booking.id, user)
        await session.refresh(event)
        assert event.sold_tickets == 3

        with pytest.raises(AlreadyCancelledError):
            await service.cancel_booking(mine.booking.id, user)

        await session.refresh(event)
        assert event.sold_tickets == 3

    @pytest.mark.asyncio
    async def test_concurrent_cancel_releases_once(
        self, session, session_factory, make_user, make_organizer, make_event
    ):
        """Test a cancel working from a stale confirmed read releases nothing"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer)
        other = await make_user(name="Bob")
        service = BookingService(session)
        mine = await service.create_booking(user, event.id, 2)
        await service.create_booking(other, event.id, 3)

        async with session_factory() as stale_session:
            # Keeps the booking as confirmed in this session's identity map.
            stale = await stale_session.get(Booking, mine.booking.id)
            assert stale.status == BookingStatus.CONFIRMED

            await service.cancel_booking(mine.booking.id, user)

            with pytest.raises(AlreadyCancelledError):
                await BookingService(stale_session).cancel_booking(mine.booking.id, user)

        await session.refresh(event)
        assert event.sold_tickets == 3

    @pytest.mark.asyncio
    async def test_release_is_floored_at_zero(self, session, make_user, make_organizer, make_event, make_booking):
        """Test an inconsistent sold count never goes negative"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, sold_tickets=1)
        booking = await make_booking(user, event, number_of_tickets=3)

        await BookingService(session).cancel_booking(booking.id, user)

        await session.refresh(event)
        assert event.sold_tickets == 0

    @pytest.mark.asyncio
    async def test_cancel_after_event_started(self, session, make_user, make_organizer, make_event, make_booking):
        """Test bookings for started events cannot be cancelled"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, start_date=utcnow() - timedelta(hours=1), sold_tickets=2)
        booking = await make_booking(user, event, number_of_tickets=2)

        with pytest.raises(EventAlreadyStartedError):
            await BookingService(session).cancel_booking(booking.id, user)

        await session.refresh(event)
        await session.refresh(booking)
        assert event.sold_tickets == 2
        assert booking.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_cancel_someone_elses_booking(self, session, make_user, make_organizer, make_event, make_booking):
        """Test only the owner can cancel"""
        organizer = await make_organizer()
        owner = await make_user()
        intruder = await make_user(name="Mallory")
        event = await make_event(organizer, sold_tickets=1)
        booking = await make_booking(owner, event)

        with pytest.raises(AuthorizationError):
            await BookingService(session).cancel_booking(booking.id, intruder)

    @pytest.mark.asyncio
    async def test_cancel_missing_booking(self, session, make_user):
        """Test cancelling an unknown booking raises BookingNotFoundError"""
        user = await make_user()

        with pytest.raises(BookingNotFoundError):
            await BookingService(session).cancel_booking(uuid4(), user)


class TestDeleteBooking:
    """Tests for BookingService.delete_booking"""

    @pytest.mark.asyncio
    async def test_delete_cancelled_booking(self, session, make_user, make_organizer, make_event):
        """Test a cancelled booking can be removed without touching capacity"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer)
        service = BookingService(session)
        result = await service.create_booking(user, event.id, 2)
        await service.cancel_booking(result.booking.id, user)

        await service.delete_booking(result.booking.id, user)

        assert await session.get(Booking, result.booking.id) is None
        await session.refresh(event)
        assert event.sold_tickets == 0

    @pytest.mark.asyncio
    async def test_delete_confirmed_booking(self, session, make_user, make_organizer, make_event, make_booking):
        """Test confirmed bookings must be cancelled first"""
        organizer = await make_organizer()
        user = await make_user()
        event = await make_event(organizer, sold_tickets=1)
        booking = await make_booking(user, event)

        with pytest.raises(NotCancellableError):
            await BookingService(session).delete_booking(booking.id, user)

        assert await session.get(Booking, booking.id) is not None

    @pytest.mark.asyncio
    async def test_delete_someone_elses_booking(self, session, make_user, make_organizer, make_event, make_booking):
        """Test only the owner can delete"""
        organizer = await make_organizer()
        owner = await make_user()
        intruder = await make_user(name="Mallory")
        event = await make_event(organizer)
        booking = await make_booking(owner, event, status=BookingStatus.CANCELLED)

        with pytest.raises(AuthorizationError):
            await BookingService(session).delete_booking(booking.id, intruder)


class TestCapacityInvariant:
    """Capacity stays within bounds across mixed bookings and cancellations"""

    @pytest.mark.asyncio
    async def test_sold_tickets_stay_in_range(self, session, make_user, make_organizer, make_event):
        """Test 0 <= sold_tickets <= max_attendees after every step"""
        organizer = await make_organizer()
        event = await make_event(organizer, max_attendees=5)
        users = [await make_user(name=f"User {i}") for i in range(4)]
        service = BookingService(session)
        booked = []

        for user, quantity in zip(users, [2, 2, 3, 1]):
            try:
                result = await service.create_booking(user, event.id, quantity)
                booked.append((result.booking.id, user))
            except CapacityExceededError:
                pass
            await session.refresh(event)
            assert 0 <= event.sold_tickets <= event.max_attendees

        for booking_id, user in booked:
            await service.cancel_booking(booking_id, user)
            await session.refresh(event)
            assert 0 <= event.sold_tickets <= event.max_attendees

        assert event.sold_tickets == 0
