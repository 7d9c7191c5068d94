"""
In-app notifications: the sink the booking engine writes to, and the
recipient-side read operations.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.notification import Notification, NotificationSeverity
from ..utils.exceptions import AuthorizationError, NotificationNotFoundError

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for creating and reading notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def notify(
        self,
        recipient_id: UUID,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
        related_id: Optional[str] = None,
    ) -> Notification:
        """
        Store a notification for a principal and commit it.

        Callers on the booking path run this after their own commit, so a
        failure here only affects the notification.
        """
        notification = Notification(
            recipient_id=recipient_id,
            message=message,
            severity=severity,
            related_id=related_id,
        )
        self.session.add(notification)
        await self.session.commit()

        logger.debug(f"Notification {notification.id} stored for {recipient_id}")
        return notification

    async def list_for_recipient(self, recipient_id: UUID) -> List[Notification]:
        """Newest first."""
        result = await self.session.execute(
            select(Notification)
            .where(Notification.recipient_id == recipient_id)
            .order_by(desc(Notification.created_at))
        )
        return list(result.scalars().all())

    async def mark_read(self, notification_id: UUID, recipient_id: UUID) -> Notification:
        """
        Mark one notification as read.

        Raises:
            NotificationNotFoundError: If the notification does not exist
            AuthorizationError: If it belongs to someone else
        """
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            raise NotificationNotFoundError(str(notification_id))

        if notification.recipient_id != recipient_id:
            raise AuthorizationError(
                "Not authorized",
                resource_type="notification",
                resource_id=str(notification_id),
                action="read",
            )

        notification.read = True
        await self.session.commit()
        await self.session.refresh(notification)
        return notification

    async def mark_all_read(self, recipient_id: UUID) -> int:
        """Mark every unread notification of the recipient as read."""
        result = await self.session.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount or 0
