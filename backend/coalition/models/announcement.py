"""
Announcement model.
"""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from coalition.models.base import BaseModel
from coalition.models.tag import Tag, announcement_tags


class Announcement(BaseModel):
    """Coalition announcement, optionally published to members."""
    __tablename__ = "announcements"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    published_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    attachment_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_by_admin_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("admin_users.id", ondelete="SET NULL"),
        nullable=True
    )

    tags: Mapped[list[Tag]] = relationship(
        Tag,
        secondary=announcement_tags,
        lazy="selectin",
        order_by=Tag.name
    )

    @property
    def tag_names(self) -> list[str]:
        return sorted(t.name for t in self.tags)

    def __repr__(self) -> str:
        return f"<Announcement {self.slug}>"
