"""
Tag endpoints. Tags label announcements and are shared across them.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from coalition.db.base import get_db
from coalition.core.deps import require_admin, CurrentUser
from coalition.models.tag import Tag, announcement_tags
from coalition.models.announcement import Announcement
from coalition.schemas.tag import TagCreate, TagAttach, TagResponse
from coalition.schemas.announcement import AnnouncementResponse
from coalition.services import cache
from coalition.services.cache import CacheKeys, CacheTTL
from coalition.api.v1.announcements import announcement_to_response, invalidate_announcement_cache

router = APIRouter()


async def _attach_pair(db: AsyncSession, data: TagAttach) -> tuple[Announcement, Tag]:
    announcement = (await db.execute(
        select(Announcement).where(Announcement.id == data.announcement_id)
    )).scalar_one_or_none()
    tag = (await db.execute(select(Tag).where(Tag.id == data.tag_id))).scalar_one_or_none()
    if announcement is None or tag is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement or tag not found")
    return announcement, tag


@router.get("", response_model=list[TagResponse])
async def list_tags(db: AsyncSession = Depends(get_db)):
    """All tags with the number of announcements using each."""
    cached = await cache.get(CacheKeys.tags_all())
    if cached is not None:
        return cached

    query = (
        select(Tag, func.count(announcement_tags.c.announcement_id))
        .outerjoin(announcement_tags, announcement_tags.c.tag_id == Tag.id)
        .group_by(Tag.id)
        .order_by(Tag.name.asc())
    )
    result = await db.execute(query)
    items = [
        TagResponse(id=tag.id, name=tag.name, announcement_count=count, created=tag.created)
        for tag, count in result.all()
    ]
    await cache.set(CacheKeys.tags_all(), [i.model_dump(mode="json") for i in items], CacheTTL.TAGS)
    return items


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tag name is required")

    existing = await db.execute(select(Tag.id).where(Tag.name == name))
    if existing.first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tag with this name already exists")

    tag = Tag(name=name)
    db.add(tag)
    await db.flush()
    cache.invalidate_on_commit(db, CacheKeys.tags_all())
    return TagResponse(id=tag.id, name=tag.name, announcement_count=0, created=tag.created)


@router.post("/attach", response_model=AnnouncementResponse)
async def attach_tag(
    data: TagAttach,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    announcement, tag = await _attach_pair(db, data)
    if tag not in announcement.tags:
        announcement.tags.append(tag)
        await db.flush()
    invalidate_announcement_cache(db)
    return announcement_to_response(announcement)


@router.post("/detach", response_model=AnnouncementResponse)
async def detach_tag(
    data: TagAttach,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    announcement, tag = await _attach_pair(db, data)
    if tag in announcement.tags:
        announcement.tags.remove(tag)
        await db.flush()
    invalidate_announcement_cache(db)
    return announcement_to_response(announcement)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    tag = (await db.execute(select(Tag).where(Tag.id == tag_id))).scalar_one_or_none()
    if tag is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")

    # Unlink through the ORM so loaded tag collections stay in sync
    linked = await db.execute(
        select(Announcement).join(announcement_tags).where(announcement_tags.c.tag_id == tag_id)
    )
    for announcement in linked.scalars().all():
        announcement.tags.remove(tag)
    await db.delete(tag)
    await db.flush()
    invalidate_announcement_cache(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
