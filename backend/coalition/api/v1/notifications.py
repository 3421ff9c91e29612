"""
In-app notification feed.

Notifications are global; read state is tracked by the client, which sends
back the time it last checked.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from coalition.db.base import get_db
from coalition.core.deps import get_current_user, CurrentUser
from coalition.models.base import utcnow, ensure_utc
from coalition.models.notification import Notification
from coalition.schemas.notification import (
    NotificationResponse, UnreadCountResponse, MarkReadRequest, MarkReadResponse
)

router = APIRouter()

FEED_SIZE = 50


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(get_current_user)
):
    result = await db.execute(
        select(Notification).order_by(Notification.created.desc()).limit(FEED_SIZE)
    )
    return result.scalars().all()


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    last_checked: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(get_current_user)
):
    query = select(func.count(Notification.id))
    if last_checked:
        query = query.where(Notification.created > ensure_utc(last_checked))
    count = (await db.execute(query)).scalar() or 0
    return UnreadCountResponse(count=count)


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    data: Optional[MarkReadRequest] = None,
    _: CurrentUser = Depends(get_current_user)
):
    checked = data.last_checked_at if data and data.last_checked_at else utcnow()
    return MarkReadResponse(success=True, last_checked_at=checked)
