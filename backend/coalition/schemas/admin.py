"""
Pydantic schemas for admin management and the dashboard.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, EmailStr


class AdminCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=8)


class AdminUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    password: Optional[str] = Field(None, min_length=8)
    is_active: Optional[bool] = None


class AdminResponse(BaseModel):
    id: str
    email: str
    name: str
    is_active: bool
    last_login_at: Optional[datetime] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class PromoteRequest(BaseModel):
    """Identify the organization to promote by email or id."""
    email: Optional[EmailStr] = None
    organization_id: Optional[str] = None


class DashboardCounts(BaseModel):
    total_organizations: int
    pending_organizations: int
    active_organizations: int
    total_announcements: int
    total_blogs: int
    total_surveys: int
    active_surveys: int
    total_email_subscribers: int
    total_alerts: int


class ActivityItem(BaseModel):
    id: str
    type: str
    title: str
    description: str
    created: datetime


class LocatedOrganization(BaseModel):
    id: str
    name: str
    city: Optional[str] = None
    latitude: float
    longitude: float


class UpcomingDeadline(BaseModel):
    id: str
    title: str
    due_date: datetime


class RecentResponse(BaseModel):
    id: str
    survey_title: str
    organization_name: str
    submitted_date: datetime


class ActionItems(BaseModel):
    pending_approvals: int
    upcoming_deadlines: list[UpcomingDeadline]
    recent_survey_responses: list[RecentResponse]


class GrowthPoint(BaseModel):
    month: str
    organizations: int
    subscribers: int


class SurveyResponseRate(BaseModel):
    id: str
    title: str
    total_sent: int
    total_responded: int
    response_rate: int


class DashboardStats(BaseModel):
    stats: DashboardCounts
    recent_activity: list[ActivityItem]
    organizations_with_location: list[LocatedOrganization]
    action_items: ActionItems
    growth_data: list[GrowthPoint]
    survey_response_rates: list[SurveyResponseRate]
