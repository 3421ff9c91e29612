"""
Pydantic schemas for page content.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class PageContentCreate(BaseModel):
    page: str = Field(..., min_length=1, max_length=100)
    section: str = Field(..., min_length=1, max_length=100)
    content_key: str = Field(..., min_length=1, max_length=100)
    content_value: str = ""
    content_type: str = "text"


class PageContentUpdate(BaseModel):
    content_value: Optional[str] = None


class BulkUpdateItem(BaseModel):
    id: Optional[str] = None
    content_value: Optional[str] = None


class BulkUpdateRequest(BaseModel):
    updates: list[BulkUpdateItem]


class BulkUpdateResult(BaseModel):
    message: str
    updated_count: int
    updates: list["PageContentResponse"] = []


class PageContentResponse(BaseModel):
    id: str
    page: str
    section: str
    content_key: str
    content_value: str
    content_type: str
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


BulkUpdateResult.model_rebuild()
