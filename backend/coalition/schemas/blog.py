"""
Pydantic schemas for Blog endpoints.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class BlogCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1, max_length=200)
    tags: list[str] = []
    featured_image_url: Optional[str] = None


class BlogUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1, max_length=200)
    tags: Optional[list[str]] = None
    featured_image_url: Optional[str] = None


class BlogResponse(BaseModel):
    id: str
    title: str
    slug: str
    content: str
    author: str
    tags: list[str] = []
    featured_image_url: Optional[str] = None
    is_published: bool
    published_date: Optional[datetime] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class BlogListResponse(BaseModel):
    items: list[BlogResponse]
    total: int
    limit: int
    offset: int
