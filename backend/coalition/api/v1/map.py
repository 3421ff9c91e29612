"""
Public map of member organizations.
"""
import logging
import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coalition.db.base import get_db
from coalition.models.organization import Organization, OrganizationStatus
from coalition.schemas.map import MapOrganization, GeocodeRequest, GeocodeResponse
from coalition.services.geocoding import geocode_address, GeocodingNotConfigured

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/organizations", response_model=list[MapOrganization])
async def map_organizations(db: AsyncSession = Depends(get_db)):
    """Active organizations that have both coordinates."""
    result = await db.execute(
        select(Organization).where(
            Organization.status == OrganizationStatus.ACTIVE,
            Organization.latitude.is_not(None),
            Organization.longitude.is_not(None)
        ).order_by(Organization.name.asc())
    )
    return result.scalars().all()


@router.post("/geocode", response_model=GeocodeResponse)
async def geocode(data: GeocodeRequest):
    if not data.address or not data.address.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Address is required")

    try:
        found = await geocode_address(data.address.strip())
    except GeocodingNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Geocoding is not configured"
        )
    except httpx.HTTPError as e:
        logger.error(f"Geocoding request failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Geocoding service unavailable")

    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address not found")
    return GeocodeResponse(
        latitude=found.latitude,
        longitude=found.longitude,
        formatted_address=found.formatted_address,
    )
