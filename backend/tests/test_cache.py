"""
Tests for the Redis response cache.
"""
import pytest
from unittest.mock import patch
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coalition.models.page_content import PageContent
from coalition.services import cache
from coalition.services.cache import CacheKeys, CacheTTL


class TestCache:

    @pytest.mark.asyncio
    async def test_set_and_get_json(self, fake_cache):
        await cache.set("page-content:home", {"hero_title": {"value": "Hi"}}, CacheTTL.PAGE_CONTENT)
        assert await cache.get("page-content:home") == {"hero_title": {"value": "Hi"}}
        assert 0 < await fake_cache.ttl("page-content:home") <= CacheTTL.PAGE_CONTENT

    @pytest.mark.asyncio
    async def test_missing_key(self, fake_cache):
        assert await cache.get("nothing") is None

    @pytest.mark.asyncio
    async def test_delete_pattern(self, fake_cache):
        await cache.set(CacheKeys.announcements_list(1, 20, "public"), [], 60)
        await cache.set(CacheKeys.announcement_slug("forum", "admin"), {}, 60)
        await cache.set(CacheKeys.blog_slug("forum"), {}, 60)

        removed = await cache.delete_pattern(CacheKeys.ANNOUNCEMENTS_PATTERN)

        assert removed == 2
        assert await cache.get(CacheKeys.blog_slug("forum")) == {}

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, fake_cache):
        await cache.set(CacheKeys.tags_all(), ["health"], 60)
        await cache.set(CacheKeys.blog_tags(), ["policy"], 60)
        await cache.delete(CacheKeys.tags_all())
        assert await cache.get(CacheKeys.tags_all()) is None

        await cache.clear()
        assert await cache.get(CacheKeys.blog_tags()) is None

    @pytest.mark.asyncio
    async def test_disabled_cache_is_noop(self, fake_cache):
        cache.set_client(None)
        assert cache.is_connected() is False
        await cache.set("key", 1, 60)
        assert await cache.get("key") is None
        assert await cache.delete_pattern("*") == 0
        await cache.delete("key")
        await cache.clear()
        assert await fake_cache.get("key") is None

    def test_key_builders(self):
        assert CacheKeys.page_content("about") == "page-content:about"
        assert CacheKeys.alerts_list(2, 10, "org:abc", None) == "alerts:2:10:org:abc:all"
        assert CacheKeys.alerts_list(1, 10, "admin", "URGENT") == "alerts:1:10:admin:URGENT"


class TestInvalidationQueue:
    """Invalidations queued on a session run only once it commits."""

    @pytest.mark.asyncio
    async def test_applied_after_commit(self, db_session, fake_cache):
        await cache.set(CacheKeys.tags_all(), ["health"], 60)
        await cache.set(CacheKeys.announcements_list(1, 20, "true"), [], 60)

        cache.invalidate_on_commit(db_session, CacheKeys.tags_all())
        cache.invalidate_on_commit(db_session, patterns=(CacheKeys.ANNOUNCEMENTS_PATTERN,))
        assert await cache.get(CacheKeys.tags_all()) == ["health"]

        await db_session.commit()
        await cache.apply_invalidations(db_session)
        assert await cache.get(CacheKeys.tags_all()) is None
        assert await cache.get(CacheKeys.announcements_list(1, 20, "true")) is None
        assert cache.PENDING_INVALIDATIONS not in db_session.info

    @pytest.mark.asyncio
    async def test_discarded_on_rollback(self, db_session, fake_cache):
        await cache.set(CacheKeys.blog_tags(), ["policy"], 60)
        cache.invalidate_on_commit(db_session, CacheKeys.blog_tags())

        cache.discard_invalidations(db_session)
        await cache.apply_invalidations(db_session)
        assert await cache.get(CacheKeys.blog_tags()) == ["policy"]


class TestWarmCache:

    @pytest.mark.asyncio
    async def test_preloads_public_pages(self, db_engine, db_session, fake_cache):
        db_session.add(PageContent(page="home", section="hero", content_key="title", content_value="Welcome"))
        db_session.add(PageContent(page="about", section="intro", content_key="body", content_value="Since 1990"))
        await db_session.commit()

        sessions = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
        with patch("coalition.db.base.async_session_maker", sessions):
            await cache.warm_cache()

        home = await cache.get(CacheKeys.page_content("home"))
        assert home["hero_title"]["value"] == "Welcome"
        assert (await cache.get(CacheKeys.page_content("about")))["intro_body"]["value"] == "Since 1990"
        assert await cache.get(CacheKeys.announcements_list(1, 20, "true")) is not None
        assert await cache.get(CacheKeys.alerts_list(1, 10, "true", None)) is not None
        assert await cache.get(CacheKeys.blog_tags()) == []

    @pytest.mark.asyncio
    async def test_skipped_without_redis(self, fake_cache):
        cache.set_client(None)
        with patch("coalition.db.base.async_session_maker") as sessions:
            await cache.warm_cache()
        sessions.assert_not_called()
