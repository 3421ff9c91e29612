"""
Blog endpoints.
"""
from datetime import datetime
from typing import Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coalition.db.base import get_db
from coalition.core.deps import get_current_user_optional, require_admin, CurrentUser
from coalition.core.permissions import is_admin, parse_csv, tags_overlap
from coalition.models.base import utcnow, ensure_utc
from coalition.models.blog import Blog
from coalition.models.notification import NotificationType
from coalition.schemas.blog import BlogCreate, BlogUpdate, BlogResponse, BlogListResponse
from coalition.schemas.common import MessageResponse
from coalition.services import cache
from coalition.services.cache import CacheKeys, CacheTTL
from coalition.services.notifications import notify_published
from coalition.services.slugs import unique_slug

router = APIRouter()

SORT_FIELDS = {
    "published_date": Blog.published_date,
    "created": Blog.created,
    "title": Blog.title,
}


def blog_to_response(blog: Blog) -> BlogResponse:
    return BlogResponse.model_validate(blog)


def invalidate_blog_cache(db: AsyncSession) -> None:
    cache.invalidate_on_commit(db, patterns=(CacheKeys.BLOGS_PATTERN,))


async def get_blog_or_404(db: AsyncSession, blog_id: str) -> Blog:
    result = await db.execute(select(Blog).where(Blog.id == blog_id))
    blog = result.scalar_one_or_none()
    if blog is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return blog


@router.get("", response_model=BlogListResponse)
async def list_blogs(
    published: Optional[bool] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    tags: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "published_date",
    sort_order: Literal["asc", "desc"] = "desc",
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional)
):
    """
    List blog posts.

    Non-admins only see published posts. Tags are matched if any overlap.
    """
    if sort_by not in SORT_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid sort_by. Must be one of: {', '.join(SORT_FIELDS)}"
        )

    query = select(Blog)
    if is_admin(current_user):
        if published is not None:
            query = query.where(Blog.is_published == published)
    else:
        query = query.where(Blog.is_published == True)  # noqa: E712

    if start_date:
        query = query.where(Blog.published_date >= ensure_utc(start_date))
    if end_date:
        query = query.where(Blog.published_date <= ensure_utc(end_date))
    if search:
        query = query.where(
            Blog.title.ilike(f"%{search}%") |
            Blog.content.ilike(f"%{search}%") |
            Blog.author.ilike(f"%{search}%")
        )

    column = SORT_FIELDS[sort_by]
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), Blog.created.desc())

    result = await db.execute(query)
    blogs = list(result.scalars().all())
    wanted_tags = parse_csv(tags)
    if wanted_tags:
        blogs = [b for b in blogs if tags_overlap(b.tags, wanted_tags)]

    return BlogListResponse(
        items=[blog_to_response(b) for b in blogs[offset:offset + limit]],
        total=len(blogs),
        limit=limit,
        offset=offset,
    )


@router.get("/tags", response_model=list[str])
async def list_blog_tags(db: AsyncSession = Depends(get_db)):
    """Sorted unique tags across published posts."""
    cached = await cache.get(CacheKeys.blog_tags())
    if cached is not None:
        return cached

    result = await db.execute(select(Blog.tags).where(Blog.is_published == True))  # noqa: E712
    names = sorted({tag for tags in result.scalars().all() for tag in (tags or [])})
    await cache.set(CacheKeys.blog_tags(), names, CacheTTL.BLOG_TAGS)
    return names


@router.get("/slug/{slug}", response_model=BlogResponse)
async def get_blog_by_slug(
    slug: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional)
):
    admin = is_admin(current_user)
    if not admin:
        cached = await cache.get(CacheKeys.blog_slug(slug))
        if cached is not None:
            return cached

    result = await db.execute(select(Blog).where(Blog.slug == slug))
    blog = result.scalar_one_or_none()
    if blog is None or (not blog.is_published and not admin):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")

    response = blog_to_response(blog)
    if blog.is_published:
        await cache.set(CacheKeys.blog_slug(slug), response.model_dump(mode="json"), CacheTTL.BLOG_DETAIL)
    return response


@router.get("/{blog_id}", response_model=BlogResponse)
async def get_blog(
    blog_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    return blog_to_response(await get_blog_or_404(db, blog_id))


@router.post("", response_model=BlogResponse, status_code=status.HTTP_201_CREATED)
async def create_blog(
    data: BlogCreate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    """Create a draft post. Publishing is a separate step."""
    blog = Blog(
        title=data.title,
        slug=await unique_slug(db, Blog, data.title),
        content=data.content,
        author=data.author,
        tags=data.tags,
        featured_image_url=data.featured_image_url,
        is_published=False,
    )
    db.add(blog)
    await db.flush()
    invalidate_blog_cache(db)
    return blog_to_response(blog)


@router.put("/{blog_id}", response_model=BlogResponse)
async def update_blog(
    blog_id: str,
    data: BlogUpdate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    blog = await get_blog_or_404(db, blog_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(blog, field, value)
    await db.flush()
    invalidate_blog_cache(db)
    return blog_to_response(blog)


@router.delete("/{blog_id}", response_model=MessageResponse)
async def delete_blog(
    blog_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    blog = await get_blog_or_404(db, blog_id)
    await db.delete(blog)
    await db.flush()
    invalidate_blog_cache(db)
    return MessageResponse(message="Blog deleted successfully")


@router.put("/{blog_id}/publish", response_model=BlogResponse)
async def publish_blog(
    blog_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    blog = await get_blog_or_404(db, blog_id)
    if blog.is_published:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Blog is already published")

    blog.is_published = True
    blog.published_date = utcnow()
    await db.flush()

    await notify_published(db, NotificationType.BLOG, blog)
    invalidate_blog_cache(db)
    return blog_to_response(blog)


@router.put("/{blog_id}/unpublish", response_model=BlogResponse)
async def unpublish_blog(
    blog_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    blog = await get_blog_or_404(db, blog_id)
    blog.is_published = False
    await db.flush()
    invalidate_blog_cache(db)
    return blog_to_response(blog)
