"""
Alert model.

Alerts are time-sensitive notices for member organizations. Tagged alerts are
only visible to organizations that share at least one tag.
"""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.orm import Mapped, mapped_column
import enum
from coalition.models.base import BaseModel


class AlertPriority(str, enum.Enum):
    """Alert priority, most urgent first."""
    URGENT = "URGENT"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Alert(BaseModel):
    """Priority notice for member organizations."""
    __tablename__ = "alerts"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[AlertPriority] = mapped_column(
        Enum(AlertPriority, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=AlertPriority.MEDIUM,
        index=True
    )
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    published_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    attachment_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Optional questions organizations can answer (same shape as survey questions)
    questions: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    created_by_admin_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("admin_users.id", ondelete="SET NULL"),
        nullable=True
    )

    def __repr__(self) -> str:
        return f"<Alert {self.title} ({self.priority.value})>"
