"""
Survey response model.
"""
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from coalition.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from coalition.models.survey import Survey
    from coalition.models.organization import Organization


class SurveyResponse(BaseModel):
    """One organization's answers to a survey."""
    __tablename__ = "survey_responses"
    __table_args__ = (
        UniqueConstraint("survey_id", "organization_id", name="uq_survey_responses_survey_org"),
    )

    survey_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    organization_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Answers keyed by question id
    responses: Mapped[dict] = mapped_column(JSON, nullable=False)
    submitted_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    survey: Mapped["Survey"] = relationship("Survey", lazy="selectin")
    organization: Mapped["Organization"] = relationship("Organization", lazy="selectin")
