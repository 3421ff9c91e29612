"""
Organization model.

Member organizations register publicly, wait for admin approval and then
manage their own profile and notification preferences.
"""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, Text, Boolean, Float, DateTime, Enum, JSON
from sqlalchemy.orm import Mapped, mapped_column
import enum
from coalition.models.base import BaseModel


class OrganizationStatus(str, enum.Enum):
    """Membership lifecycle of an organization."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DECLINED = "DECLINED"


class Region(str, enum.Enum):
    """Grand divisions of the state."""
    EAST = "EAST"
    MIDDLE = "MIDDLE"
    WEST = "WEST"


class Organization(BaseModel):
    """Member organization account."""
    __tablename__ = "organizations"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[OrganizationStatus] = mapped_column(
        Enum(OrganizationStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=OrganizationStatus.PENDING,
        index=True
    )

    # Profile
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    region: Mapped[Optional[Region]] = mapped_column(
        Enum(Region, values_callable=lambda x: [e.value for e in x]),
        nullable=True
    )
    organization_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    organization_size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Contacts
    primary_contact_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    primary_contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    primary_contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    secondary_contact_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    secondary_contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Targeting tags (JSON array of names)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Email preferences
    notify_announcements: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_blogs: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_alerts: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_surveys: Mapped[bool] = mapped_column(Boolean, default=True)

    # Membership lifecycle
    membership_active: Mapped[bool] = mapped_column(Boolean, default=False)
    membership_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    decline_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    @property
    def contact_email(self) -> str:
        """Address used for notification emails."""
        return (self.primary_contact_email or self.email).strip().lower()

    def __repr__(self) -> str:
        return f"<Organization {self.name} ({self.status.value})>"
