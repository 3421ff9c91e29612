"""
Pydantic schemas for Announcement endpoints.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    is_published: bool = False
    published_date: Optional[datetime] = None
    attachment_urls: list[str] = []
    tags: list[str] = []


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    is_published: Optional[bool] = None
    published_date: Optional[datetime] = None
    attachment_urls: Optional[list[str]] = None
    tags: Optional[list[str]] = None


class AnnouncementResponse(BaseModel):
    id: str
    title: str
    slug: str
    content: str
    is_published: bool
    published_date: Optional[datetime] = None
    attachment_urls: list[str] = []
    tags: list[str] = []
    created_by_admin_id: Optional[str] = None
    created: datetime
    updated: datetime


class AnnouncementListResponse(BaseModel):
    page: int
    perPage: int
    totalItems: int
    totalPages: int
    items: list[AnnouncementResponse]
