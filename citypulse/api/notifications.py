"""
In-app notification endpoints, shared by attendees and organizers.
"""

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.principal import Principal
from ..schemas.notification import MarkAllReadResponse, NotificationResponse
from ..services.notification_service import NotificationService
from ..utils.dependencies import get_current_principal


router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    principal: Principal = Depends(get_current_principal),
    notification_service: NotificationService = Depends(get_notification_service)
) -> Any:
    """The caller's notifications, newest first."""
    notifications = await notification_service.list_for_recipient(principal.id)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.put("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    principal: Principal = Depends(get_current_principal),
    notification_service: NotificationService = Depends(get_notification_service)
) -> Any:
    updated = await notification_service.mark_all_read(principal.id)
    return MarkAllReadResponse(message="All marked as read", updated=updated)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    principal: Principal = Depends(get_current_principal),
    notification_service: NotificationService = Depends(get_notification_service)
) -> Any:
    notification = await notification_service.mark_read(notification_id, principal.id)
    return NotificationResponse.model_validate(notification)
