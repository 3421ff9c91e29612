"""
Pydantic schemas for Tag endpoints.
"""
from datetime import datetime
from pydantic import BaseModel, Field


class TagCreate(BaseModel):
    name: str = Field(..., max_length=100)


class TagAttach(BaseModel):
    announcement_id: str
    tag_id: str


class TagResponse(BaseModel):
    id: str
    name: str
    announcement_count: int = 0
    created: datetime

    class Config:
        from_attributes = True
