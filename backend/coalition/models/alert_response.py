"""
Alert response model.
"""
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from coalition.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from coalition.models.alert import Alert
    from coalition.models.organization import Organization


class AlertResponse(BaseModel):
    """An organization's answers to an alert's questions."""
    __tablename__ = "alert_responses"
    __table_args__ = (
        UniqueConstraint("alert_id", "organization_id", name="uq_alert_responses_alert_org"),
    )

    alert_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("alerts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    organization_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    responses: Mapped[dict] = mapped_column(JSON, nullable=False)
    submitted_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    alert: Mapped["Alert"] = relationship("Alert", lazy="selectin")
    organization: Mapped["Organization"] = relationship("Organization", lazy="selectin")
