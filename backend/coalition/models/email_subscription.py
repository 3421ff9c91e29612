"""
Email subscription model for individuals who are not member organizations.
"""
from sqlalchemy import String, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column
from coalition.models.base import BaseModel

DEFAULT_SUBSCRIPTION_TYPES = ["ANNOUNCEMENT", "BLOG"]


class EmailSubscription(BaseModel):
    """Newsletter-style subscriber."""
    __tablename__ = "email_subscriptions"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    subscription_types: Mapped[list] = mapped_column(
        JSON, nullable=False, default=lambda: list(DEFAULT_SUBSCRIPTION_TYPES)
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
