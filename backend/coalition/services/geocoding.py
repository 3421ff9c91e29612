"""
Address geocoding through the Google Maps Geocoding API.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from coalition.core.config import settings

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingNotConfigured(Exception):
    pass


@dataclass
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: str


async def geocode_address(address: str, client: Optional[httpx.AsyncClient] = None) -> Optional[GeocodeResult]:
    """Return the first match for an address, or None if Google finds nothing."""
    if not settings.GOOGLE_MAPS_API_KEY:
        raise GeocodingNotConfigured("Google Maps API key not configured")

    params = {"address": address, "key": settings.GOOGLE_MAPS_API_KEY}
    if client is None:
        async with httpx.AsyncClient(timeout=10.0) as http:
            response = await http.get(GEOCODE_URL, params=params)
    else:
        response = await client.get(GEOCODE_URL, params=params)
    response.raise_for_status()
    data = response.json()

    if data.get("status") != "OK" or not data.get("results"):
        logger.info(f"Geocoding returned {data.get('status')} for address")
        return None

    first = data["results"][0]
    location = first["geometry"]["location"]
    return GeocodeResult(
        latitude=location["lat"],
        longitude=location["lng"],
        formatted_address=first.get("formatted_address", address),
    )
