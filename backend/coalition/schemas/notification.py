"""
Pydantic schemas for in-app notifications.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from coalition.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: str
    type: NotificationType
    title: str
    content_id: str
    created: datetime

    class Config:
        from_attributes = True


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadRequest(BaseModel):
    last_checked_at: Optional[datetime] = None


class MarkReadResponse(BaseModel):
    success: bool
    last_checked_at: datetime
