"""
Pydantic schemas for Organization endpoints.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, EmailStr

from coalition.models.organization import OrganizationStatus, Region


class OrganizationProfileFields(BaseModel):
    """Fields an organization may edit on its own profile."""
    description: Optional[str] = None
    website: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    phone_number: Optional[str] = Field(None, max_length=50)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    region: Optional[Region] = None
    organization_type: Optional[str] = Field(None, max_length=100)
    organization_size: Optional[str] = Field(None, max_length=50)
    primary_contact_name: Optional[str] = Field(None, max_length=200)
    primary_contact_email: Optional[EmailStr] = None
    primary_contact_phone: Optional[str] = Field(None, max_length=50)
    secondary_contact_name: Optional[str] = Field(None, max_length=200)
    secondary_contact_email: Optional[EmailStr] = None
    tags: Optional[list[str]] = None


class OrganizationRegister(OrganizationProfileFields):
    """Public registration."""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8)


class OrganizationProfileUpdate(OrganizationProfileFields):
    """Self-service profile update."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    notify_announcements: Optional[bool] = None
    notify_blogs: Optional[bool] = None
    notify_alerts: Optional[bool] = None
    notify_surveys: Optional[bool] = None


class OrganizationAdminUpdate(OrganizationProfileUpdate):
    """Admin update; may also change membership state."""
    status: Optional[OrganizationStatus] = None
    membership_active: Optional[bool] = None
    membership_date: Optional[datetime] = None


class DeclineRequest(BaseModel):
    reason: Optional[str] = None


class OrganizationResponse(BaseModel):
    """Organization response (never includes the password hash)."""
    id: str
    name: str
    email: str
    status: OrganizationStatus
    description: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone_number: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    region: Optional[Region] = None
    organization_type: Optional[str] = None
    organization_size: Optional[str] = None
    primary_contact_name: Optional[str] = None
    primary_contact_email: Optional[str] = None
    primary_contact_phone: Optional[str] = None
    secondary_contact_name: Optional[str] = None
    secondary_contact_email: Optional[str] = None
    tags: list[str] = []
    notify_announcements: bool = True
    notify_blogs: bool = True
    notify_alerts: bool = True
    notify_surveys: bool = True
    membership_active: bool = False
    membership_date: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    decline_reason: Optional[str] = None
    last_login_at: Optional[datetime] = None
    email_verified: bool = False
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class OrganizationListResponse(BaseModel):
    """Paginated list of organizations."""
    page: int
    perPage: int
    totalItems: int
    totalPages: int
    items: list[OrganizationResponse]


class OrganizationDirectoryEntry(BaseModel):
    """Public directory listing."""
    id: str
    name: str
    description: Optional[str] = None
    website: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    region: Optional[Region] = None
    organization_type: Optional[str] = None
    tags: list[str] = []

    class Config:
        from_attributes = True


class OrganizationActivity(BaseModel):
    organization_id: str
    last_login_at: Optional[datetime] = None
    created: datetime
    updated: datetime
    survey_responses: int
    alert_responses: int
