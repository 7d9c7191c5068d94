"""
Booking service: ticket reservation, cancellation and organizer reporting.

Capacity and coupon usage are changed only through conditional UPDATE
statements, so concurrent bookings for the same event or coupon can never
push ``sold_tickets`` past ``max_attendees`` or ``used_count`` past
``usage_limit``. Notifications, cache invalidation and emails run after the
booking transaction has committed and cannot undo it.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import case, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..cache import get_stats_cache
from ..config import get_settings
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.event import Event, EventStatus
from ..models.notification import NotificationSeverity
from ..models.principal import User
from ..utils.clock import as_utc, utcnow
from ..utils.exceptions import (
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
from ..utils.logging_config import log_business_event
from .coupon_service import CENTS, CouponService, compute_discount
from .notification_service import NotificationService
from .ticket_service import build_qr_payload

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    """A confirmed booking plus what happened to the coupon code, if any."""

    booking: Booking
    coupon_applied: bool = False
    coupon_message: Optional[str] = None


class BookingService:
    """Service for managing bookings with atomic capacity accounting."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()
        self.stats_cache = get_stats_cache()
        self.coupons = CouponService(session)

    async def create_booking(
        self,
        user: User,
        event_id: UUID,
        number_of_tickets: int,
        coupon_code: Optional[str] = None,
    ) -> BookingResult:
        """
        Reserve tickets for a user and record a paid booking.

        A coupon code that does not apply is ignored: the booking goes
        through at full price and the reason is reported in the result.

        Args:
            user: The attendee making the booking
            event_id: ID of the event to book
            number_of_tickets: Number of tickets to book
            coupon_code: Optional discount code of the event's organizer

        Returns:
            The committed booking and the coupon outcome

        Raises:
            ValidationError: If the ticket count is outside the allowed range
            EventNotFoundError: If the event does not exist
            EventNotBookableError: If the event is not published
            CapacityExceededError: If fewer seats remain than requested
        """
        max_quantity = self.settings.max_booking_quantity
        if number_of_tickets < 1 or number_of_tickets > max_quantity:
            raise ValidationError(
                f"Number of tickets must be between 1 and {max_quantity}",
                field_errors={"number_of_tickets": [f"must be between 1 and {max_quantity}"]},
            )

        event = await self.session.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))

        if self.settings.require_published_event_for_booking and event.status != EventStatus.PUBLISHED:
            raise EventNotBookableError(str(event_id), event.status.value)

        if number_of_tickets > event.available_tickets:
            raise CapacityExceededError(number_of_tickets, event.available_tickets, str(event_id))

        logger.info(f"Creating booking for user {user.id}, event {event_id}, tickets {number_of_tickets}")

        original_amount = (event.unit_price * number_of_tickets).quantize(CENTS)
        discount_amount = Decimal("0.00")
        coupon_id = None
        coupon_applied = False
        coupon_message = None

        check = None
        if coupon_code:
            check = await self.coupons.check_coupon(coupon_code, event)
            if not check.applicable:
                coupon_message = check.error.message

        now = utcnow()
        try:
            await self._reserve_capacity(event, number_of_tickets)

            if check is not None and check.applicable:
                if await self.coupons.consume_use(check.coupon.id):
                    discount_amount = min(
                        compute_discount(original_amount, check.coupon.discount_percentage),
                        original_amount,
                    )
                    coupon_id = check.coupon.id
                    coupon_applied = True
                else:
                    coupon_message = "Coupon usage limit reached"

            booking = Booking(
                user_id=user.id,
                event_id=event.id,
                coupon_id=coupon_id,
                number_of_tickets=number_of_tickets,
                original_amount=original_amount,
                discount_amount=discount_amount,
                total_amount=max(original_amount - discount_amount, Decimal("0.00")),
                payment_status=PaymentStatus.PAID,
                payment_id=f"mock-pid-{int(now.timestamp() * 1000)}",
                status=BookingStatus.CONFIRMED,
                qr_code=build_qr_payload(event.id, user.id, now),
            )
            self.session.add(booking)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(event)
        if coupon_id is not None:
            await self.session.refresh(check.coupon)

        logger.info(f"Booking {booking.id} created successfully")
        log_business_event(
            "booking_created",
            {
                "booking_id": str(booking.id),
                "event_id": str(event.id),
                "tickets": number_of_tickets,
                "total_amount": str(booking.total_amount),
                "coupon_applied": coupon_applied,
            },
            principal_id=str(user.id),
        )

        await self._after_booking_created(booking, event)

        return BookingResult(booking, coupon_applied, coupon_message)

    async def cancel_booking(self, booking_id: UUID, user: User) -> Booking:
        """
        Cancel a confirmed booking and give its seats back to the event.

        Raises:
            BookingNotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to another user
            AlreadyCancelledError: If the booking is already cancelled
            EventAlreadyStartedError: If the event has already started
        """
        booking = await self._get_booking_with_event(booking_id)

        if booking.user_id != user.id:
            raise AuthorizationError(
                "Not authorized to cancel this booking",
                resource_type="booking",
                resource_id=str(booking_id),
                action="cancel",
            )

        if booking.status == BookingStatus.CANCELLED:
            raise AlreadyCancelledError(str(booking_id))

        event = booking.event
        if as_utc(event.start_date) < utcnow():
            raise EventAlreadyStartedError(str(event.id))

        try:
            result = await self.session.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == BookingStatus.CONFIRMED)
                .values(status=BookingStatus.CANCELLED)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Lost the race against a concurrent cancel.
                raise AlreadyCancelledError(str(booking_id))

            await self.session.execute(
                update(Event)
                .where(Event.id == event.id)
                .values(
                    sold_tickets=case(
                        (Event.sold_tickets >= booking.number_of_tickets,
                         Event.sold_tickets - booking.number_of_tickets),
                        else_=0,
                    )
                )
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(booking)
        await self.session.refresh(event)

        logger.info(f"Booking {booking_id} cancelled")
        log_business_event(
            "booking_cancelled",
            {
                "booking_id": str(booking_id),
                "event_id": str(event.id),
                "tickets": booking.number_of_tickets,
            },
            principal_id=str(user.id),
        )

        await self._notify(
            event.organizer_id,
            f"Booking Cancelled for {event.title}. User: {user.name}",
            NotificationSeverity.INFO,
            str(booking.id),
        )
        await self.stats_cache.invalidate(event.organizer_id)
        self._queue_email("send_organizer_cancellation_email_task", booking.id)

        return booking

    async def delete_booking(self, booking_id: UUID, user: User) -> None:
        """
        Permanently remove a cancelled booking. Event capacity is untouched.

        Raises:
            BookingNotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to another user
            NotCancellableError: If the booking is still confirmed
        """
        booking = await self.session.get(Booking, booking_id)
        if booking is None:
            raise BookingNotFoundError(str(booking_id))

        if booking.user_id != user.id:
            raise AuthorizationError(
                "Not authorized to delete this booking",
                resource_type="booking",
                resource_id=str(booking_id),
                action="delete",
            )

        if booking.status != BookingStatus.CANCELLED:
            raise NotCancellableError(str(booking_id), booking.status.value)

        await self.session.delete(booking)
        await self.session.commit()
        logger.info(f"Booking {booking_id} deleted")

    async def get_user_bookings(self, user_id: UUID) -> List[Booking]:
        """Bookings of one user with their events, newest first."""
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(Booking.user_id == user_id)
            .order_by(desc(Booking.created_at))
        )
        return list(result.scalars().all())

    async def get_organizer_bookings(self, organizer_id: UUID) -> List[Booking]:
        """Bookings across all of an organizer's events, newest first."""
        result = await self.session.execute(
            select(Booking)
            .join(Booking.event)
            .options(
                selectinload(Booking.user),
                selectinload(Booking.event),
                selectinload(Booking.coupon),
            )
            .where(Event.organizer_id == organizer_id)
            .order_by(desc(Booking.created_at))
        )
        return list(result.scalars().all())

    async def get_event_bookings(self, event_id: UUID, organizer_id: UUID) -> List[Booking]:
        """
        Bookings of one event, visible to its organizer only.

        Raises:
            EventNotFoundError: If the event does not exist
            AuthorizationError: If the caller does not own the event
        """
        event = await self.session.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))

        if event.organizer_id != organizer_id:
            raise AuthorizationError(
                "Not authorized to view bookings for this event",
                resource_type="event",
                resource_id=str(event_id),
                action="list_bookings",
            )

        result = await self.session.execute(
            select(Booking)
            .options(
                selectinload(Booking.user),
                selectinload(Booking.event),
                selectinload(Booking.coupon),
            )
            .where(Booking.event_id == event_id)
            .order_by(desc(Booking.created_at))
        )
        return list(result.scalars().all())

    async def get_dashboard_stats(self, organizer_id: UUID) -> Dict[str, Any]:
        """
        Totals for an organizer's dashboard.

        Sales and attendees count confirmed bookings only. Results are
        cached briefly and dropped whenever a booking or event changes.
        """
        cached = await self.stats_cache.get(organizer_id)
        if cached is not None:
            return cached

        total_events = await self.session.scalar(
            select(func.count(Event.id)).where(Event.organizer_id == organizer_id)
        )
        upcoming_events = await self.session.scalar(
            select(func.count(Event.id)).where(
                Event.organizer_id == organizer_id,
                Event.start_date > utcnow(),
            )
        )
        totals = await self.session.execute(
            select(
                func.coalesce(func.sum(Booking.total_amount), 0),
                func.coalesce(func.sum(Booking.number_of_tickets), 0),
            )
            .join(Event, Booking.event_id == Event.id)
            .where(
                Event.organizer_id == organizer_id,
                Booking.status == BookingStatus.CONFIRMED,
            )
        )
        total_sales, total_attendees = totals.one()

        stats = {
            "total_events": total_events or 0,
            "upcoming_events": upcoming_events or 0,
            "total_sales": Decimal(str(total_sales)).quantize(CENTS),
            "total_attendees": int(total_attendees),
        }

        await self.stats_cache.put(organizer_id, stats, ttl=self.settings.stats_cache_ttl_seconds)
        return stats

    async def _get_booking_with_event(self, booking_id: UUID) -> Booking:
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(Booking.id == booking_id)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFoundError(str(booking_id))
        return booking

    async def _reserve_capacity(self, event: Event, quantity: int) -> None:
        """
        Add ``quantity`` to the event's sold tickets if, and only if, the
        result stays within capacity.

        Raises:
            CapacityExceededError: With the seats actually left
        """
        result = await self.session.execute(
            update(Event)
            .where(
                Event.id == event.id,
                Event.sold_tickets + quantity <= Event.max_attendees,
            )
            .values(sold_tickets=Event.sold_tickets + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        available = await self.session.scalar(
            select(Event.max_attendees - Event.sold_tickets).where(Event.id == event.id)
        )
        raise CapacityExceededError(quantity, available or 0, str(event.id))

    async def _after_booking_created(self, booking: Booking, event: Event) -> None:
        await self._notify(
            event.organizer_id,
            f"New Booking! {booking.number_of_tickets} ticket(s) sold for {event.title}. "
            f"Revenue: ${booking.total_amount:.2f}",
            NotificationSeverity.SUCCESS,
            str(booking.id),
        )
        await self.stats_cache.invalidate(event.organizer_id)
        self._queue_email("send_ticket_email_task", booking.id)
        self._queue_email("send_organizer_sale_email_task", booking.id)

    async def _notify(
        self,
        recipient_id: UUID,
        message: str,
        severity: NotificationSeverity,
        related_id: str,
    ) -> None:
        # Own session: a failed write must not expire the committed booking.
        try:
            async with AsyncSession(self.session.bind, expire_on_commit=False) as session:
                await NotificationService(session).notify(recipient_id, message, severity, related_id)
        except Exception as e:
            logger.error(f"Failed to store notification for {recipient_id}: {e}")

    def _queue_email(self, task_name: str, booking_id: UUID) -> None:
        try:
            from ..tasks import notification_tasks
            getattr(notification_tasks, task_name).delay(str(booking_id))
            logger.info(f"Queued {task_name} for booking {booking_id}")
        except Exception as e:
            logger.warning(f"Failed to queue {task_name} for booking {booking_id}: {e}")
