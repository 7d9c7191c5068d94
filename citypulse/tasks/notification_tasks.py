"""
Celery tasks for booking emails.

Each task is queued after the booking transaction has committed and only
carries the booking id; it reloads what it needs from the database. SMTP
failures are retried with backoff, everything else is logged and dropped.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .celery_app import celery_app, settings
from ..database import standalone_session
from ..models.booking import Booking
from ..models.event import Event
from ..services.email_service import EmailService
from ..services.ticket_service import TicketDetails
from ..utils.exceptions import EmailServiceError

logger = logging.getLogger(__name__)

_RETRY_OPTIONS = {
    "bind": True,
    "autoretry_for": (EmailServiceError,),
    "retry_backoff": settings.retry_backoff_seconds,
    "retry_jitter": True,
    "max_retries": settings.max_retry_attempts,
}


async def load_ticket_details(session: AsyncSession, booking_id: UUID) -> Optional[TicketDetails]:
    """Snapshot a booking with its event, attendee and organizer."""
    result = await session.execute(
        select(Booking)
        .options(
            selectinload(Booking.event).selectinload(Event.organizer),
            selectinload(Booking.user),
        )
        .where(Booking.id == booking_id)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        return None

    event = booking.event
    user = booking.user
    organizer = event.organizer

    return TicketDetails(
        booking_id=booking.id,
        number_of_tickets=booking.number_of_tickets,
        total_amount=booking.total_amount,
        qr_code=booking.qr_code or str(booking.id),
        event_title=event.title,
        event_category=event.category.value,
        event_start=event.start_date,
        venue_city=event.venue_city,
        venue_address=event.venue_address,
        user_name=user.name if user else None,
        user_email=user.email if user else None,
        organizer_name=organizer.name if organizer else None,
        organizer_email=organizer.email if organizer else None,
    )


async def _fetch_details(booking_id: str) -> Optional[TicketDetails]:
    async with standalone_session() as session:
        return await load_ticket_details(session, UUID(booking_id))


def _run(coro):
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _deliver(booking_id: str, kind: str, send) -> Dict[str, Any]:
    details = _run(_fetch_details(booking_id))
    if details is None:
        logger.warning(f"Booking {booking_id} no longer exists, skipping {kind} email")
        return {"booking_id": booking_id, "status": "skipped"}

    sent = send(details)
    status = "sent" if sent else "skipped"
    logger.info(f"{kind} email for booking {booking_id}: {status}")
    return {"booking_id": booking_id, "status": status}


@celery_app.task(name="send_ticket_email_task", **_RETRY_OPTIONS)
def send_ticket_email_task(self, booking_id: str):
    """
    Email the attendee their confirmation with the PDF ticket attached.

    Args:
        booking_id: ID of the confirmed booking
    """
    return _deliver(booking_id, "ticket", EmailService().send_ticket_confirmation)


@celery_app.task(name="send_organizer_sale_email_task", **_RETRY_OPTIONS)
def send_organizer_sale_email_task(self, booking_id: str):
    """Email the organizer about a new registration."""
    return _deliver(booking_id, "organizer sale", EmailService().send_organizer_sale)


@celery_app.task(name="send_organizer_cancellation_email_task", **_RETRY_OPTIONS)
def send_organizer_cancellation_email_task(self, booking_id: str):
    """Email the organizer about a cancelled booking."""
    return _deliver(booking_id, "organizer cancellation", EmailService().send_organizer_cancellation)
