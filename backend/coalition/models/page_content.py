"""
Editable page content model backing the public site's copy and images.
"""
from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from coalition.models.base import BaseModel

CONTENT_TYPES = ("text", "richtext", "image")


class PageContent(BaseModel):
    """One editable value addressed by (page, section, content_key)."""
    __tablename__ = "page_contents"
    __table_args__ = (
        UniqueConstraint("page", "section", "content_key", name="uq_page_contents_page_section_key"),
    )

    page: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    section: Mapped[str] = mapped_column(String(100), nullable=False)
    content_key: Mapped[str] = mapped_column(String(100), nullable=False)
    content_value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content_type: Mapped[str] = mapped_column(String(20), nullable=False, default="text")
