"""
Tag model and the announcement/tag association table.
"""
from sqlalchemy import String, ForeignKey, Table, Column
from sqlalchemy.orm import Mapped, mapped_column
from coalition.models.base import BaseModel
from coalition.db.base import Base


announcement_tags = Table(
    "announcement_tags",
    Base.metadata,
    Column("announcement_id", String(15), ForeignKey("announcements.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(15), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
)


class Tag(BaseModel):
    """Named label shared by announcements."""
    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Tag {self.name}>"
