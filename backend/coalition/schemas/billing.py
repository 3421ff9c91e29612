"""
Pydantic schemas for Stripe membership billing.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class CreateSubscriptionRequest(BaseModel):
    price_id: str


class CancelSubscriptionRequest(BaseModel):
    immediate: bool = False


class SubscriptionInfo(BaseModel):
    id: str
    organization_id: str
    stripe_customer_id: str
    stripe_subscription_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    status: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False

    class Config:
        from_attributes = True


class PaymentInfo(BaseModel):
    id: str
    stripe_invoice_id: str
    amount: int
    currency: str
    status: str
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubscriptionDetail(BaseModel):
    subscription: Optional[SubscriptionInfo] = None
    payments: list[PaymentInfo] = []


class CreateSubscriptionResponse(BaseModel):
    subscription_id: str
    status: str
    client_secret: Optional[str] = None


class PriceInfo(BaseModel):
    id: str
    product: Optional[str] = None
    nickname: Optional[str] = None
    unit_amount: Optional[int] = None
    currency: str
    interval: Optional[str] = None
