"""
Notification schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from ..models.notification import NotificationSeverity


class NotificationResponse(BaseModel):
    id: UUID
    recipient_id: UUID
    message: str
    severity: NotificationSeverity
    read: bool
    related_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MarkAllReadResponse(BaseModel):
    message: str = "All marked as read"
    updated: int
