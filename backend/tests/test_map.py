"""
Tests for the organization map and geocoding.
"""
import pytest
import httpx
from unittest.mock import patch, AsyncMock
from httpx import AsyncClient

from coalition.core.config import settings
from coalition.models.organization import OrganizationStatus
from coalition.services.geocoding import geocode_address, GeocodeResult, GeocodingNotConfigured


class TestMapOrganizations:

    @pytest.mark.asyncio
    async def test_only_located_active_organizations(
        self, client: AsyncClient, active_org, other_org, org_factory
    ):
        await org_factory(
            "Hidden Pending", "pending@example.org",
            status=OrganizationStatus.PENDING, latitude=35.0, longitude=-85.0
        )
        response = await client.get("/api/map/organizations")
        assert response.status_code == 200
        data = response.json()
        assert [o["name"] for o in data] == ["Senior Health Network"]
        assert data[0]["latitude"] == 36.16
        assert data[0]["region"] == "MIDDLE"


class TestGeocode:

    @pytest.mark.asyncio
    async def test_empty_address(self, client: AsyncClient):
        response = await client.post("/api/map/geocode", json={"address": "   "})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_not_configured(self, client: AsyncClient):
        with patch.object(settings, "GOOGLE_MAPS_API_KEY", None):
            response = await client.post("/api/map/geocode", json={"address": "1 Main St"})
        assert response.status_code == 501

    @pytest.mark.asyncio
    async def test_found(self, client: AsyncClient):
        result = GeocodeResult(latitude=36.1, longitude=-86.7, formatted_address="1 Main St, Nashville, TN")
        with patch("coalition.api.v1.map.geocode_address", AsyncMock(return_value=result)):
            response = await client.post("/api/map/geocode", json={"address": "1 Main St"})
        assert response.status_code == 200
        assert response.json() == {
            "latitude": 36.1, "longitude": -86.7, "formatted_address": "1 Main St, Nashville, TN"
        }

    @pytest.mark.asyncio
    async def test_not_found(self, client: AsyncClient):
        with patch("coalition.api.v1.map.geocode_address", AsyncMock(return_value=None)):
            response = await client.post("/api/map/geocode", json={"address": "Nowhere"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Address not found"

    @pytest.mark.asyncio
    async def test_upstream_error(self, client: AsyncClient):
        failing = AsyncMock(side_effect=httpx.ConnectError("down"))
        with patch("coalition.api.v1.map.geocode_address", failing):
            response = await client.post("/api/map/geocode", json={"address": "1 Main St"})
        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_service_parses_google_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["address"] == "1 Main St"
            return httpx.Response(200, json={
                "status": "OK",
                "results": [{
                    "formatted_address": "1 Main St, Nashville, TN 37201",
                    "geometry": {"location": {"lat": 36.16, "lng": -86.78}},
                }],
            })

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with patch.object(settings, "GOOGLE_MAPS_API_KEY", "test-key"):
                found = await geocode_address("1 Main St", client=http)
        assert found == GeocodeResult(36.16, -86.78, "1 Main St, Nashville, TN 37201")

    @pytest.mark.asyncio
    async def test_service_zero_results(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}))
        async with httpx.AsyncClient(transport=transport) as http:
            with patch.object(settings, "GOOGLE_MAPS_API_KEY", "test-key"):
                assert await geocode_address("Nowhere", client=http) is None

    @pytest.mark.asyncio
    async def test_service_requires_key(self):
        with patch.object(settings, "GOOGLE_MAPS_API_KEY", None):
            with pytest.raises(GeocodingNotConfigured):
                await geocode_address("1 Main St")
