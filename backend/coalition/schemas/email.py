"""
Pydantic schemas for email notifications and history.
"""
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, Field, EmailStr

from coalition.models.email_history import EmailStatus
from coalition.models.organization import Region


class ContactForm(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    subject: Optional[str] = Field(None, max_length=300)
    message: str = Field(..., min_length=1)


class CustomEmailRequest(BaseModel):
    """Admin-composed email to member organizations."""
    subject: str = Field(..., min_length=1, max_length=500)
    body: str = Field(..., min_length=1)
    tags: list[str] = []
    regions: list[Region] = []
    organization_ids: list[str] = []
    exclude_organization_ids: list[str] = []
    scheduled_for: Optional[datetime] = None


class SendResult(BaseModel):
    sent: int
    total: int
    errors: list[str] = []


class EmailHistoryResponse(BaseModel):
    id: str
    subject: str
    body: str
    recipient_emails: list[str]
    recipient_count: int
    filters: Optional[dict[str, Any]] = None
    status: EmailStatus
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    created_by_admin_id: Optional[str] = None
    created: datetime

    class Config:
        from_attributes = True


class EmailHistoryListResponse(BaseModel):
    page: int
    perPage: int
    totalItems: int
    totalPages: int
    items: list[EmailHistoryResponse]
