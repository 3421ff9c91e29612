"""
Editable page content endpoints.

Public pages read their copy as one dict per page keyed ``<section>_<key>``.
"""
import logging
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coalition.db.base import get_db
from coalition.core.deps import require_admin, CurrentUser
from coalition.models.page_content import PageContent, CONTENT_TYPES
from coalition.schemas.page_content import (
    PageContentCreate, PageContentUpdate, PageContentResponse, BulkUpdateRequest, BulkUpdateResult
)
from coalition.services import cache
from coalition.services.cache import CacheKeys, CacheTTL

logger = logging.getLogger(__name__)

router = APIRouter()

PAGE_CACHE_CONTROL = "public, max-age=0, must-revalidate"


def structure_page(rows: list[PageContent]) -> dict[str, dict[str, Any]]:
    return {
        f"{row.section}_{row.content_key}": {
            "id": row.id,
            "value": row.content_value,
            "type": row.content_type,
        }
        for row in rows
    }


async def load_page(db: AsyncSession, page: str) -> dict[str, dict[str, Any]]:
    """Build a page's structured content and store it in the cache."""
    result = await db.execute(
        select(PageContent)
        .where(PageContent.page == page)
        .order_by(PageContent.section.asc(), PageContent.content_key.asc())
    )
    content = structure_page(list(result.scalars().all()))
    await cache.set(CacheKeys.page_content(page), content, CacheTTL.PAGE_CONTENT)
    return content


async def get_content_or_404(db: AsyncSession, content_id: str) -> PageContent:
    result = await db.execute(select(PageContent).where(PageContent.id == content_id))
    content = result.scalar_one_or_none()
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page content not found")
    return content


@router.get("", response_model=list[PageContentResponse])
async def list_page_content(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(PageContent).order_by(
            PageContent.page.asc(), PageContent.section.asc(), PageContent.content_key.asc()
        )
    )
    return result.scalars().all()


@router.put("/bulk", response_model=BulkUpdateResult)
async def bulk_update_page_content(
    data: BulkUpdateRequest,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    """Apply many value edits at once. Entries missing an id or value are skipped."""
    updated = []
    for entry in data.updates:
        if not entry.id or entry.content_value is None:
            continue
        content = (await db.execute(
            select(PageContent).where(PageContent.id == entry.id)
        )).scalar_one_or_none()
        if content is None:
            logger.warning(f"Bulk update skipped unknown page content {entry.id}")
            continue
        content.content_value = entry.content_value
        updated.append(content)

    await db.flush()
    cache.invalidate_on_commit(db, patterns=(CacheKeys.PAGE_CONTENT_PATTERN,))
    return BulkUpdateResult(
        message=f"Updated {len(updated)} content items",
        updated_count=len(updated),
        updates=[PageContentResponse.model_validate(c) for c in updated],
    )


@router.get("/{page}")
async def get_page(
    page: str,
    response: Response,
    db: AsyncSession = Depends(get_db)
) -> dict[str, dict[str, Any]]:
    response.headers["Cache-Control"] = PAGE_CACHE_CONTROL
    cached = await cache.get(CacheKeys.page_content(page))
    if cached is not None:
        return cached
    return await load_page(db, page)


@router.post("", response_model=PageContentResponse, status_code=status.HTTP_201_CREATED)
async def create_page_content(
    data: PageContentCreate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    if data.content_type not in CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid content_type. Must be one of: {', '.join(CONTENT_TYPES)}"
        )

    existing = await db.execute(
        select(PageContent.id).where(
            PageContent.page == data.page,
            PageContent.section == data.section,
            PageContent.content_key == data.content_key
        )
    )
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Content for this page, section and key already exists"
        )

    content = PageContent(**data.model_dump())
    db.add(content)
    await db.flush()
    cache.invalidate_on_commit(db, CacheKeys.page_content(content.page))
    return content


@router.put("/{content_id}", response_model=PageContentResponse)
async def update_page_content(
    content_id: str,
    data: PageContentUpdate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    if data.content_value is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="content_value is required")

    content = await get_content_or_404(db, content_id)
    content.content_value = data.content_value
    await db.flush()
    cache.invalidate_on_commit(db, CacheKeys.page_content(content.page))
    return content


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page_content(
    content_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    content = await get_content_or_404(db, content_id)
    page = content.page
    await db.delete(content)
    await db.flush()
    cache.invalidate_on_commit(db, CacheKeys.page_content(page))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
