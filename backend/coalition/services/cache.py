"""
Redis-backed response cache.

Values are stored as JSON. When Redis is not configured or unreachable every
operation becomes a logged no-op so requests fall through to the database.
"""
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from coalition.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[aioredis.Redis] = None

# Session.info slot holding (keys, patterns) awaiting the commit
PENDING_INVALIDATIONS = "cache_invalidations"


class CacheTTL:
    """Time-to-live values in seconds."""
    PAGE_CONTENT = 1800
    ANNOUNCEMENTS_LIST = 300
    ANNOUNCEMENT_DETAIL = 600
    BLOGS_LIST = 300
    BLOG_DETAIL = 600
    BLOG_TAGS = 900
    ALERTS_LIST = 180
    TAGS = 900


class CacheKeys:
    """Key builders. Each resource has a prefix used for pattern invalidation."""

    @staticmethod
    def page_content(page: str) -> str:
        return f"page-content:{page}"

    @staticmethod
    def announcements_list(page: int, per_page: int, visibility: str) -> str:
        return f"announcements:list:{page}:{per_page}:{visibility}"

    @staticmethod
    def announcement_slug(slug: str, visibility: str) -> str:
        return f"announcements:slug:{slug}:{visibility}"

    @staticmethod
    def blog_slug(slug: str) -> str:
        return f"blogs:slug:{slug}"

    @staticmethod
    def blog_tags() -> str:
        return "blogs:tags"

    @staticmethod
    def alerts_list(page: int, limit: int, visibility: str, priority: Optional[str]) -> str:
        return f"alerts:{page}:{limit}:{visibility}:{priority or 'all'}"

    @staticmethod
    def tags_all() -> str:
        return "tags:all"

    PAGE_CONTENT_PATTERN = "page-content:*"
    ANNOUNCEMENTS_PATTERN = "announcements:*"
    BLOGS_PATTERN = "blogs:*"
    ALERTS_PATTERN = "alerts:*"


async def init_cache(redis_url: Optional[str] = None) -> Optional[aioredis.Redis]:
    """Connect to Redis; leaves the cache disabled if it cannot."""
    global _client
    url = redis_url or settings.REDIS_URL
    if not settings.CACHE_ENABLED or not url:
        logger.info("Redis cache disabled")
        return None

    client = aioredis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning(f"Redis not reachable at startup, caching disabled: {e}")
        await client.aclose()
        return None

    _client = client
    logger.info("Redis cache connected")
    return client


async def close_cache() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def set_client(client: Optional[aioredis.Redis]) -> None:
    """Install a client directly (used by tests)."""
    global _client
    _client = client


def is_connected() -> bool:
    return _client is not None


async def get(key: str) -> Optional[Any]:
    if _client is None:
        return None
    try:
        raw = await _client.get(key)
    except RedisError as e:
        logger.warning(f"Cache get failed for {key}: {e}")
        return None
    if raw is None:
        return None
    return json.loads(raw)


async def set(key: str, value: Any, ttl: int) -> None:
    if _client is None:
        return
    try:
        await _client.set(key, json.dumps(value, default=str), ex=ttl)
    except RedisError as e:
        logger.warning(f"Cache set failed for {key}: {e}")


async def delete(*keys: str) -> None:
    if _client is None or not keys:
        return
    try:
        await _client.delete(*keys)
    except RedisError as e:
        logger.warning(f"Cache delete failed for {keys}: {e}")


async def delete_pattern(pattern: str) -> int:
    """Delete every key matching a glob pattern; returns the number removed."""
    if _client is None:
        return 0
    removed = 0
    try:
        batch = []
        async for key in _client.scan_iter(match=pattern, count=100):
            batch.append(key)
            if len(batch) >= 100:
                removed += await _client.delete(*batch)
                batch = []
        if batch:
            removed += await _client.delete(*batch)
    except RedisError as e:
        logger.warning(f"Cache pattern delete failed for {pattern}: {e}")
    return removed


def invalidate_on_commit(db, *keys: str, patterns: tuple[str, ...] = ()) -> None:
    """
    Queue cache keys and patterns to clear once ``db`` commits.

    Clearing before the commit lets a concurrent read cache the old row again,
    so writers queue here and the session owner applies the queue afterwards.
    """
    pending_keys, pending_patterns = db.info.setdefault(PENDING_INVALIDATIONS, ([], []))
    pending_keys.extend(keys)
    pending_patterns.extend(patterns)


def discard_invalidations(db) -> None:
    db.info.pop(PENDING_INVALIDATIONS, None)


async def apply_invalidations(db) -> None:
    """Run the invalidations queued on ``db``. Call only after a commit."""
    pending = db.info.pop(PENDING_INVALIDATIONS, None)
    if pending is None:
        return
    keys, patterns = pending
    await delete(*dict.fromkeys(keys))
    for pattern in dict.fromkeys(patterns):
        await delete_pattern(pattern)


async def clear() -> None:
    if _client is None:
        return
    try:
        await _client.flushdb()
    except RedisError as e:
        logger.warning(f"Cache clear failed: {e}")


async def warm_cache() -> None:
    """Pre-load the public pages most visitors hit first."""
    if _client is None:
        return

    # Routers import this module, so they are loaded lazily here
    from sqlalchemy import select
    from coalition.db.base import async_session_maker
    from coalition.models.page_content import PageContent
    from coalition.api.v1.page_content import load_page
    from coalition.api.v1.announcements import list_announcements
    from coalition.api.v1.blogs import list_blog_tags
    from coalition.api.v1.alerts import list_alerts

    async with async_session_maker() as db:
        try:
            pages = (await db.execute(select(PageContent.page).distinct())).scalars().all()
            for page in pages:
                await load_page(db, page)
            await list_announcements(page=1, perPage=20, published=None, db=db, current_user=None)
            await list_blog_tags(db=db)
            await list_alerts(page=1, limit=10, published=None, priority=None, db=db, current_user=None)
        except Exception:
            logger.exception("Cache warm-up failed")
            return
    logger.info(f"Cache warmed for {len(pages)} pages")
