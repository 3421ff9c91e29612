"""
Email history model for admin-composed emails.
"""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.orm import Mapped, mapped_column
import enum
from coalition.models.base import BaseModel


class EmailStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    SENT = "SENT"
    FAILED = "FAILED"


class EmailHistory(BaseModel):
    """Record of a custom email, sent now or scheduled for later."""
    __tablename__ = "email_history"

    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    recipient_emails: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    recipient_count: Mapped[int] = mapped_column(Integer, default=0)

    # Targeting used to build the recipient list
    filters: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    status: Mapped[EmailStatus] = mapped_column(
        Enum(EmailStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=EmailStatus.SENT,
        index=True
    )
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by_admin_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("admin_users.id", ondelete="SET NULL"),
        nullable=True
    )
