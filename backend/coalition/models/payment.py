"""
Payment model recorded from Stripe invoice events.
"""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from coalition.models.base import BaseModel


class Payment(BaseModel):
    """Invoice payment attempt for a membership subscription."""
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("stripe_invoice_id", "status", name="uq_payments_invoice_status"),
    )

    organization_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    stripe_invoice_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # cents
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="usd")
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # succeeded | failed
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
