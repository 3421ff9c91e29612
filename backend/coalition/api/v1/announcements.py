"""
Announcement endpoints.

Anonymous callers and organizations see published announcements only.
Publishing an announcement notifies subscribed organizations and individuals.
"""
from datetime import date, datetime, time, timedelta, timezone
from math import ceil
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete

from coalition.db.base import get_db
from coalition.core.deps import get_current_user_optional, require_admin, CurrentUser
from coalition.core.permissions import is_admin
from coalition.models.base import utcnow
from coalition.models.tag import Tag, announcement_tags
from coalition.models.announcement import Announcement
from coalition.models.notification import NotificationType
from coalition.schemas.announcement import (
    AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse, AnnouncementListResponse
)
from coalition.services import cache
from coalition.services.cache import CacheKeys, CacheTTL
from coalition.services.notifications import notify_published
from coalition.services.slugs import unique_slug

router = APIRouter()


def announcement_to_response(announcement: Announcement) -> AnnouncementResponse:
    """Convert Announcement model to AnnouncementResponse schema."""
    return AnnouncementResponse(
        id=announcement.id,
        title=announcement.title,
        slug=announcement.slug,
        content=announcement.content,
        is_published=announcement.is_published,
        published_date=announcement.published_date,
        attachment_urls=announcement.attachment_urls or [],
        tags=announcement.tag_names,
        created_by_admin_id=announcement.created_by_admin_id,
        created=announcement.created,
        updated=announcement.updated,
    )


def invalidate_announcement_cache(db: AsyncSession) -> None:
    cache.invalidate_on_commit(db, CacheKeys.tags_all(), patterns=(CacheKeys.ANNOUNCEMENTS_PATTERN,))


async def resolve_tags(db: AsyncSession, names: list[str]) -> list[Tag]:
    """Look up tags by name, creating the missing ones."""
    tags = []
    for name in dict.fromkeys(n.strip() for n in names if n and n.strip()):
        tag = (await db.execute(select(Tag).where(Tag.name == name))).scalar_one_or_none()
        if tag is None:
            tag = Tag(name=name)
            db.add(tag)
            await db.flush()
        tags.append(tag)
    return tags


async def get_announcement_or_404(db: AsyncSession, announcement_id: str) -> Announcement:
    result = await db.execute(select(Announcement).where(Announcement.id == announcement_id))
    announcement = result.scalar_one_or_none()
    if announcement is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return announcement


@router.get("", response_model=AnnouncementListResponse)
async def list_announcements(
    page: int = Query(1, ge=1),
    perPage: int = Query(20, ge=1, le=100),
    published: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional)
):
    """List announcements, newest first."""
    admin = is_admin(current_user)
    if admin:
        visibility = "all" if published is None else str(published).lower()
    else:
        visibility = "true"

    cache_key = CacheKeys.announcements_list(page, perPage, visibility)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    query = select(Announcement)
    if visibility != "all":
        query = query.where(Announcement.is_published == (visibility == "true"))

    count_query = select(func.count()).select_from(query.subquery())
    total_items = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Announcement.created.desc()).offset((page - 1) * perPage).limit(perPage)
    result = await db.execute(query)

    response = AnnouncementListResponse(
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=ceil(total_items / perPage) if total_items > 0 else 1,
        items=[announcement_to_response(a) for a in result.scalars().all()]
    )
    await cache.set(cache_key, response.model_dump(mode="json"), CacheTTL.ANNOUNCEMENTS_LIST)
    return response


@router.get("/slug/{slug}", response_model=AnnouncementResponse)
async def get_announcement_by_slug(
    slug: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional)
):
    admin = is_admin(current_user)
    cache_key = CacheKeys.announcement_slug(slug, "all" if admin else "published")
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    result = await db.execute(select(Announcement).where(Announcement.slug == slug))
    announcement = result.scalar_one_or_none()
    if announcement is None or (not announcement.is_published and not admin):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")

    response = announcement_to_response(announcement)
    await cache.set(cache_key, response.model_dump(mode="json"), CacheTTL.ANNOUNCEMENT_DETAIL)
    return response


@router.get("/published-date/{published_on}", response_model=list[AnnouncementResponse])
async def get_announcements_by_published_date(
    published_on: str,
    db: AsyncSession = Depends(get_db)
):
    """Published announcements whose publish date falls on the given UTC day."""
    try:
        day = date.fromisoformat(published_on)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid date format. Use YYYY-MM-DD"
        )

    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    result = await db.execute(
        select(Announcement).where(
            Announcement.is_published == True,  # noqa: E712
            Announcement.published_date >= start,
            Announcement.published_date < end,
        ).order_by(Announcement.published_date.desc())
    )
    return [announcement_to_response(a) for a in result.scalars().all()]


@router.get("/{announcement_id}", response_model=AnnouncementResponse)
async def get_announcement(
    announcement_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional)
):
    announcement = await get_announcement_or_404(db, announcement_id)
    if not announcement.is_published and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return announcement_to_response(announcement)


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    data: AnnouncementCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    announcement = Announcement(
        title=data.title,
        slug=await unique_slug(db, Announcement, data.title),
        content=data.content,
        is_published=data.is_published,
        published_date=data.published_date or (utcnow() if data.is_published else None),
        attachment_urls=data.attachment_urls,
        created_by_admin_id=current_user.id,
        tags=await resolve_tags(db, data.tags),
    )
    db.add(announcement)
    await db.flush()

    if announcement.is_published:
        await notify_published(db, NotificationType.ANNOUNCEMENT, announcement)
    invalidate_announcement_cache(db)
    return announcement_to_response(announcement)


@router.put("/{announcement_id}", response_model=AnnouncementResponse)
async def update_announcement(
    announcement_id: str,
    data: AnnouncementUpdate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    announcement = await get_announcement_or_404(db, announcement_id)
    was_published = announcement.is_published
    update_data = data.model_dump(exclude_unset=True)

    tag_names = update_data.pop("tags", None)
    if tag_names is not None:
        announcement.tags = await resolve_tags(db, tag_names)

    for field, value in update_data.items():
        setattr(announcement, field, value)

    if announcement.is_published and not announcement.published_date:
        announcement.published_date = utcnow()
    await db.flush()

    if announcement.is_published and not was_published:
        await notify_published(db, NotificationType.ANNOUNCEMENT, announcement)
    invalidate_announcement_cache(db)
    return announcement_to_response(announcement)


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_announcement(
    announcement_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    announcement = await get_announcement_or_404(db, announcement_id)
    tag_ids = [t.id for t in announcement.tags]
    await db.delete(announcement)
    await db.flush()

    # Remove this announcement's tags that are no longer used anywhere
    if tag_ids:
        in_use = select(announcement_tags.c.tag_id)
        await db.execute(delete(Tag).where(Tag.id.in_(tag_ids), Tag.id.not_in(in_use)))
        await db.flush()

    invalidate_announcement_cache(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
