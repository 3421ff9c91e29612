"""
Survey model.
"""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column
from coalition.models.base import BaseModel


class Survey(BaseModel):
    """Questionnaire sent to member organizations."""
    __tablename__ = "surveys"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # List of {id, type, text, options, required}
    questions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by_admin_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("admin_users.id", ondelete="SET NULL"),
        nullable=True
    )

    def __repr__(self) -> str:
        return f"<Survey {self.title}>"
