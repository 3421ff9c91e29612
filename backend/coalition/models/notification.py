"""
In-app notification model.
"""
from sqlalchemy import String, Enum
from sqlalchemy.orm import Mapped, mapped_column
import enum
from coalition.models.base import BaseModel


class NotificationType(str, enum.Enum):
    """Kinds of published content."""
    ANNOUNCEMENT = "ANNOUNCEMENT"
    BLOG = "BLOG"
    ALERT = "ALERT"
    SURVEY = "SURVEY"


class Notification(BaseModel):
    """Feed entry pointing at newly published content."""
    __tablename__ = "notifications"

    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content_id: Mapped[str] = mapped_column(String(15), nullable=False)
