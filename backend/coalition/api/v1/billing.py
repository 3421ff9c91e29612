"""
Stripe membership billing endpoints.
"""
import logging
import stripe
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession

from coalition.db.base import get_db
from coalition.core.deps import require_organization, CurrentUser
from coalition.schemas.billing import (
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    CancelSubscriptionRequest,
    SubscriptionInfo,
    SubscriptionDetail,
    PaymentInfo,
    PriceInfo,
)
from coalition.services.billing import BillingService, BillingNotConfigured, BillingError, construct_event

logger = logging.getLogger(__name__)

router = APIRouter()


def get_billing(db: AsyncSession = Depends(get_db)) -> BillingService:
    try:
        return BillingService(db)
    except BillingNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Payments are not configured"
        )


def _stripe_failure(action: str, e: Exception) -> HTTPException:
    logger.error(f"Stripe {action} failed: {e}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Payment provider error during {action}")


@router.get("/subscription", response_model=SubscriptionDetail)
async def get_subscription(
    billing: BillingService = Depends(get_billing),
    current_user: CurrentUser = Depends(require_organization)
):
    subscription, payments = await billing.get_subscription(current_user.id)
    return SubscriptionDetail(
        subscription=SubscriptionInfo.model_validate(subscription) if subscription else None,
        payments=[PaymentInfo.model_validate(p) for p in payments],
    )


@router.post("/subscription", response_model=CreateSubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    data: CreateSubscriptionRequest,
    billing: BillingService = Depends(get_billing),
    current_user: CurrentUser = Depends(require_organization)
):
    try:
        created = await billing.create_subscription(current_user.id, data.price_id)
    except BillingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except stripe.StripeError as e:
        raise _stripe_failure("subscription creation", e)
    return CreateSubscriptionResponse(**created)


@router.post("/subscription/cancel", response_model=SubscriptionInfo)
async def cancel_subscription(
    data: CancelSubscriptionRequest,
    billing: BillingService = Depends(get_billing),
    current_user: CurrentUser = Depends(require_organization)
):
    try:
        subscription = await billing.cancel_subscription(current_user.id, data.immediate)
    except BillingError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except stripe.StripeError as e:
        raise _stripe_failure("cancellation", e)
    return SubscriptionInfo.model_validate(subscription)


@router.get("/prices", response_model=list[PriceInfo])
async def list_prices(billing: BillingService = Depends(get_billing)):
    try:
        return await billing.list_prices()
    except stripe.StripeError as e:
        raise _stripe_failure("price lookup", e)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    billing: BillingService = Depends(get_billing)
):
    """Verify and apply a Stripe webhook event."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = construct_event(payload, signature)
    except BillingNotConfigured:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Payments are not configured"
        )
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature")

    handled = await billing.handle_event(event)
    return {"received": True, "handled": handled}
