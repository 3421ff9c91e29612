"""
Pydantic schemas for the organization map.
"""
from typing import Optional
from pydantic import BaseModel

from coalition.models.organization import Region


class MapOrganization(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    region: Optional[Region] = None
    latitude: float
    longitude: float

    class Config:
        from_attributes = True


class GeocodeRequest(BaseModel):
    address: Optional[str] = None


class GeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    formatted_address: str
