"""
Tests for editable page content.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coalition.api.v1.page_content import load_page, update_page_content
from coalition.models.page_content import PageContent
from coalition.schemas.page_content import PageContentUpdate
from coalition.services import cache
from coalition.services.cache import CacheKeys


async def add_content(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {
        "page": "home",
        "section": "hero",
        "content_key": "title",
        "content_value": "Stronger Together",
        "content_type": "text",
    }
    payload.update(overrides)
    response = await client.post("/api/page-content", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestPageContent:
    """Page content management and the public page view."""

    @pytest.mark.asyncio
    async def test_structured_page(self, client: AsyncClient, admin_headers: dict):
        title = await add_content(client, admin_headers)
        image = await add_content(
            client, admin_headers,
            content_key="image", content_value="pages/home/hero.png", content_type="image"
        )
        await add_content(client, admin_headers, page="about", section="intro", content_key="body")

        response = await client.get("/api/page-content/home")
        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=0, must-revalidate"
        assert response.json() == {
            "hero_image": {"id": image["id"], "value": "pages/home/hero.png", "type": "image"},
            "hero_title": {"id": title["id"], "value": "Stronger Together", "type": "text"},
        }

    @pytest.mark.asyncio
    async def test_unknown_page_is_empty(self, client: AsyncClient):
        response = await client.get("/api/page-content/nowhere")
        assert response.status_code == 200
        assert response.json() == {}

    @pytest.mark.asyncio
    async def test_page_cached_and_invalidated(
        self, client: AsyncClient, admin_headers: dict, fake_cache
    ):
        content = await add_content(client, admin_headers)
        await client.get("/api/page-content/home")
        cached = await cache.get(CacheKeys.page_content("home"))
        assert cached["hero_title"]["value"] == "Stronger Together"

        response = await client.put(
            f"/api/page-content/{content['id']}",
            json={"content_value": "Together We Serve"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert await cache.get(CacheKeys.page_content("home")) is None

        response = await client.get("/api/page-content/home")
        assert response.json()["hero_title"]["value"] == "Together We Serve"

    @pytest.mark.asyncio
    async def test_read_during_update_does_not_leave_stale_cache(
        self, db_engine, db_session, fake_cache
    ):
        row = PageContent(page="home", section="hero", content_key="title", content_value="OLD")
        db_session.add(row)
        await db_session.commit()

        await update_page_content(row.id, PageContentUpdate(content_value="NEW"), db=db_session, _=None)
        # Another request reads the page before the writer commits
        readers = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
        async with readers() as reader:
            stale = await load_page(reader, "home")
        assert stale["hero_title"]["value"] == "OLD"

        await db_session.commit()
        await cache.apply_invalidations(db_session)
        assert await cache.get(CacheKeys.page_content("home")) is None

        async with readers() as reader:
            fresh = await load_page(reader, "home")
        assert fresh["hero_title"]["value"] == "NEW"

    @pytest.mark.asyncio
    async def test_duplicate_key_conflict(self, client: AsyncClient, admin_headers: dict):
        await add_content(client, admin_headers)
        response = await client.post(
            "/api/page-content",
            json={"page": "home", "section": "hero", "content_key": "title", "content_value": "Again"},
            headers=admin_headers
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_content_type(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/page-content",
            json={"page": "home", "section": "hero", "content_key": "video", "content_type": "video"},
            headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bulk_update_skips_bad_entries(self, client: AsyncClient, admin_headers: dict):
        first = await add_content(client, admin_headers)
        second = await add_content(client, admin_headers, content_key="subtitle", content_value="Old")

        response = await client.put(
            "/api/page-content/bulk",
            json={"updates": [
                {"id": first["id"], "content_value": "New title"},
                {"id": second["id"]},
                {"id": "missing", "content_value": "Ignored"},
                {"content_value": "No id"},
            ]},
            headers=admin_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["updated_count"] == 1
        assert data["message"] == "Updated 1 content items"
        assert data["updates"][0]["content_value"] == "New title"

    @pytest.mark.asyncio
    async def test_update_requires_value(self, client: AsyncClient, admin_headers: dict):
        content = await add_content(client, admin_headers)
        response = await client.put(
            f"/api/page-content/{content['id']}",
            json={},
            headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, admin_headers: dict):
        content = await add_content(client, admin_headers)
        response = await client.delete(f"/api/page-content/{content['id']}", headers=admin_headers)
        assert response.status_code == 204

        response = await client.delete(f"/api/page-content/{content['id']}", headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_writes_require_admin(self, client: AsyncClient, org_headers: dict):
        response = await client.post(
            "/api/page-content",
            json={"page": "home", "section": "hero", "content_key": "title"},
            headers=org_headers
        )
        assert response.status_code == 403
