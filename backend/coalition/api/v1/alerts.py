"""
Alert endpoints.

Alerts are ordered URGENT, MEDIUM, LOW and then newest first. Publishing an
alert creates an in-app notification and emails member organizations whose
tags overlap with the alert (untagged alerts go to everyone opted in).
"""
from math import ceil
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case, delete

from coalition.db.base import get_db
from coalition.core.deps import get_current_user, get_current_user_optional, require_admin, CurrentUser
from coalition.core.permissions import is_admin, can_view_tagged
from coalition.models.base import utcnow
from coalition.models.alert import Alert, AlertPriority
from coalition.models.alert_response import AlertResponse
from coalition.models.notification import NotificationType
from coalition.schemas.alert import (
    AlertCreate, AlertUpdate, AlertResponseSchema, AlertListResponse, Pagination
)
from coalition.services import cache
from coalition.services.cache import CacheKeys, CacheTTL
from coalition.services.notifications import notify_published

router = APIRouter()

priority_order = case(
    (Alert.priority == AlertPriority.URGENT, 0),
    (Alert.priority == AlertPriority.MEDIUM, 1),
    else_=2,
)


def alert_to_response(alert: Alert) -> AlertResponseSchema:
    return AlertResponseSchema.model_validate(alert)


def invalidate_alert_cache(db: AsyncSession) -> None:
    cache.invalidate_on_commit(db, patterns=(CacheKeys.ALERTS_PATTERN,))


async def get_alert_or_404(db: AsyncSession, alert_id: str) -> Alert:
    result = await db.execute(select(Alert).where(Alert.id == alert_id))
    alert = result.scalar_one_or_none()
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    return alert


def ensure_alert_visible(alert: Alert, user: Optional[CurrentUser]) -> None:
    """Non-admins may only see published alerts that pass the tag rule."""
    if is_admin(user):
        return
    if not alert.is_published or not can_view_tagged(user, alert.tags):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


@router.get("", response_model=AlertListResponse)
async def list_alerts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    published: Optional[bool] = None,
    priority: Optional[AlertPriority] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional)
):
    """List alerts with pagination. Responses are cached per page and filter."""
    if is_admin(current_user):
        visibility = "all" if published is None else str(published).lower()
    else:
        visibility = "true"

    cache_key = CacheKeys.alerts_list(page, limit, visibility, priority.value if priority else None)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    query = select(Alert)
    if visibility != "all":
        query = query.where(Alert.is_published == (visibility == "true"))
    if priority:
        query = query.where(Alert.priority == priority)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(
        query.order_by(priority_order, Alert.created.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    total_pages = ceil(total / limit) if total > 0 else 0
    response = AlertListResponse(
        data=[alert_to_response(a) for a in result.scalars().all()],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_more=page < total_pages,
        ),
    )
    await cache.set(cache_key, response.model_dump(mode="json"), CacheTTL.ALERTS_LIST)
    return response


@router.get("/priority/{priority}", response_model=list[AlertResponseSchema])
async def list_alerts_by_priority(
    priority: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    try:
        level = AlertPriority(priority.upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid priority. Must be URGENT, MEDIUM, or LOW"
        )

    query = select(Alert).where(Alert.priority == level)
    if not current_user.is_admin:
        query = query.where(Alert.is_published == True)  # noqa: E712
    result = await db.execute(query.order_by(Alert.created.desc()))

    return [
        alert_to_response(a) for a in result.scalars().all()
        if can_view_tagged(current_user, a.tags)
    ]


@router.get("/{alert_id}", response_model=AlertResponseSchema)
async def get_alert(
    alert_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    alert = await get_alert_or_404(db, alert_id)
    ensure_alert_visible(alert, current_user)
    return alert_to_response(alert)


@router.post("", response_model=AlertResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_alert(
    data: AlertCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    alert = Alert(
        title=data.title,
        content=data.content,
        priority=data.priority,
        is_published=data.is_published,
        published_date=utcnow() if data.is_published else None,
        attachment_urls=data.attachment_urls,
        tags=data.tags,
        questions=[q.model_dump() for q in data.questions] if data.questions is not None else None,
        created_by_admin_id=current_user.id,
    )
    db.add(alert)
    await db.flush()

    if alert.is_published:
        await notify_published(db, NotificationType.ALERT, alert)
    invalidate_alert_cache(db)
    return alert_to_response(alert)


@router.put("/{alert_id}", response_model=AlertResponseSchema)
async def update_alert(
    alert_id: str,
    data: AlertUpdate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    alert = await get_alert_or_404(db, alert_id)
    was_published = alert.is_published

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(alert, field, value)

    if alert.is_published and not was_published:
        alert.published_date = utcnow()
    await db.flush()

    if alert.is_published and not was_published:
        await notify_published(db, NotificationType.ALERT, alert)
    invalidate_alert_cache(db)
    return alert_to_response(alert)


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_alert(
    alert_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    alert = await get_alert_or_404(db, alert_id)
    await db.execute(delete(AlertResponse).where(AlertResponse.alert_id == alert_id))
    await db.delete(alert)
    await db.flush()
    invalidate_alert_cache(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{alert_id}/publish", response_model=AlertResponseSchema)
async def publish_alert(
    alert_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    alert = await get_alert_or_404(db, alert_id)
    if alert.is_published:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Alert is already published")

    alert.is_published = True
    alert.published_date = utcnow()
    await db.flush()

    await notify_published(db, NotificationType.ALERT, alert)
    invalidate_alert_cache(db)
    return alert_to_response(alert)
