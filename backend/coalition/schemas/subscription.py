"""
Pydantic schemas for email subscriptions.
"""
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, EmailStr

SubscriptionType = Literal["ANNOUNCEMENT", "BLOG", "ALERT", "SURVEY"]


class EmailSubscriptionCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    subscription_types: list[SubscriptionType] = ["ANNOUNCEMENT", "BLOG"]


class EmailSubscriptionUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    subscription_types: Optional[list[SubscriptionType]] = None
    is_active: Optional[bool] = None


class EmailSubscriptionResponse(BaseModel):
    id: str
    email: str
    name: str
    subscription_types: list[str]
    is_active: bool
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True
