"""
Pydantic schemas for alerts and alert responses.
"""
from typing import Any, Optional, Union
from datetime import datetime
from pydantic import BaseModel, Field

from coalition.models.alert import AlertPriority
from coalition.schemas.survey import SurveyQuestion


class AlertCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    priority: AlertPriority = AlertPriority.MEDIUM
    is_published: bool = False
    attachment_urls: list[str] = []
    tags: list[str] = []
    questions: Optional[list[SurveyQuestion]] = None


class AlertUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    priority: Optional[AlertPriority] = None
    is_published: Optional[bool] = None
    attachment_urls: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    questions: Optional[list[SurveyQuestion]] = None


class AlertResponseSchema(BaseModel):
    """Alert as returned by the API."""
    id: str
    title: str
    content: str
    priority: AlertPriority
    is_published: bool
    published_date: Optional[datetime] = None
    attachment_urls: list[str] = []
    tags: list[str] = []
    questions: Optional[list[dict[str, Any]]] = None
    created_by_admin_id: Optional[str] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_more: bool


class AlertListResponse(BaseModel):
    data: list[AlertResponseSchema]
    pagination: Pagination


class AlertSubmissionCreate(BaseModel):
    alert_id: str
    responses: Union[dict[str, Any], str]


class AlertSubmissionUpdate(BaseModel):
    responses: Union[dict[str, Any], str]


class AlertSubmissionResponse(BaseModel):
    id: str
    alert_id: str
    organization_id: str
    alert_title: Optional[str] = None
    organization_name: Optional[str] = None
    responses: dict[str, Any]
    submitted_date: datetime
    created: datetime
    updated: datetime
