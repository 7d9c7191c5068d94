"""
Ordered deletion of organizers, events and everything hanging off them.

Dependents are removed before their parents: bookings, then reviews, then
event-scoped coupons, then the events themselves, and for an organizer its
remaining coupons and finally the organizer record. The statements share the
caller's transaction, so a failure part-way leaves nothing removed.
"""

import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import get_stats_cache
from ..models.booking import Booking
from ..models.coupon import Coupon
from ..models.event import Event
from ..models.principal import Organizer, Principal, PrincipalKind
from ..models.review import Review
from ..utils.exceptions import PrincipalNotFoundError
from ..utils.logging_config import log_business_event

logger = logging.getLogger(__name__)


class CascadeService:
    """Service for cascading deletes across the event graph."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def delete_event_cascade(self, event_ids: Iterable[UUID]) -> Dict[str, int]:
        """
        Delete events and their dependents without committing.

        Args:
            event_ids: IDs of the events to remove

        Returns:
            Number of rows removed per table
        """
        event_ids = list(event_ids)
        counts = {"bookings": 0, "reviews": 0, "coupons": 0, "events": 0}
        if not event_ids:
            return counts

        steps = [
            ("bookings", delete(Booking).where(Booking.event_id.in_(event_ids))),
            ("reviews", delete(Review).where(Review.event_id.in_(event_ids))),
            ("coupons", delete(Coupon).where(Coupon.event_id.in_(event_ids))),
            ("events", delete(Event).where(Event.id.in_(event_ids))),
        ]
        for name, statement in steps:
            result = await self.session.execute(
                statement.execution_options(synchronize_session=False)
            )
            counts[name] = result.rowcount or 0

        return counts

    async def delete_organizer_cascade(self, organizer_id: UUID) -> Dict[str, int]:
        """
        Delete an organizer, its events (with their dependents) and its
        coupons without committing.
        """
        counts = await self.delete_event_cascade(await self._event_ids_of(organizer_id))

        coupons = await self.session.execute(
            delete(Coupon)
            .where(Coupon.organizer_id == organizer_id)
            .execution_options(synchronize_session=False)
        )
        counts["coupons"] += coupons.rowcount or 0

        organizers = await self.session.execute(
            delete(Principal)
            .where(
                Principal.id == organizer_id,
                Principal.kind == PrincipalKind.ORGANIZER,
            )
            .execution_options(synchronize_session=False)
        )
        counts["organizers"] = organizers.rowcount or 0

        return counts

    async def delete_event(self, event_id: UUID, organizer_id: UUID) -> Dict[str, int]:
        """Delete one event and its dependents in a single transaction."""
        try:
            counts = await self.delete_event_cascade([event_id])
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self._evict([event_id])

        log_business_event(
            "event_deleted",
            {"event_id": str(event_id), "removed": counts},
            principal_id=str(organizer_id),
        )
        await get_stats_cache().invalidate(organizer_id)
        return counts

    async def delete_organizer(self, organizer_id: UUID) -> Dict[str, int]:
        """
        Delete an organizer and everything it owns in a single transaction.

        Raises:
            PrincipalNotFoundError: If no organizer has this ID
        """
        organizer = await self.session.get(Organizer, organizer_id)
        if organizer is None:
            raise PrincipalNotFoundError(str(organizer_id), kind="organizer")

        event_ids = await self._event_ids_of(organizer_id)
        try:
            counts = await self.delete_organizer_cascade(organizer_id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self._evict(event_ids, organizer_id)

        logger.info(f"Cascade deleted organizer {organizer_id}: {counts}")
        log_business_event(
            "organizer_deleted",
            {"organizer_id": str(organizer_id), "removed": counts},
            principal_id=str(organizer_id),
        )
        await get_stats_cache().invalidate(organizer_id)
        return counts

    async def cleanup_orphan_events(self) -> List[UUID]:
        """
        Remove events whose organizer account no longer exists.

        Returns:
            IDs of the removed events
        """
        organizer_ids = select(Principal.id).where(Principal.kind == PrincipalKind.ORGANIZER)
        result = await self.session.execute(
            select(Event.id).where(Event.organizer_id.not_in(organizer_ids))
        )
        orphan_ids = list(result.scalars().all())

        if not orphan_ids:
            logger.info("No orphan events found")
            return []

        try:
            counts = await self.delete_event_cascade(orphan_ids)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self._evict(orphan_ids)
        logger.info(f"Removed {len(orphan_ids)} orphan events: {counts}")
        return orphan_ids

    async def _event_ids_of(self, organizer_id: UUID) -> List[UUID]:
        result = await self.session.execute(
            select(Event.id).where(Event.organizer_id == organizer_id)
        )
        return list(result.scalars().all())

    def _evict(self, event_ids: List[UUID], organizer_id: Optional[UUID] = None) -> None:
        """Drop instances removed by bulk deletes from the identity map."""
        removed_events = set(event_ids)
        for obj in list(self.session.identity_map.values()):
            if isinstance(obj, Event):
                gone = obj.id in removed_events
            elif isinstance(obj, (Booking, Review)):
                gone = obj.event_id in removed_events
            elif isinstance(obj, Coupon):
                gone = obj.event_id in removed_events or obj.organizer_id == organizer_id
            elif isinstance(obj, Principal):
                gone = obj.id == organizer_id
            else:
                gone = False
            if gone:
                self.session.expunge(obj)
