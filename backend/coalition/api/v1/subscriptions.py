"""
Email subscription endpoints for individuals outside member organizations.

Registration, lookup by email and update are public so the unsubscribe page
works without an account.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from coalition.db.base import get_db
from coalition.core.deps import require_admin, CurrentUser
from coalition.models.email_subscription import EmailSubscription
from coalition.schemas.subscription import (
    EmailSubscriptionCreate, EmailSubscriptionUpdate, EmailSubscriptionResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_subscription_or_404(db: AsyncSession, subscription_id: str) -> EmailSubscription:
    result = await db.execute(select(EmailSubscription).where(EmailSubscription.id == subscription_id))
    subscription = result.scalar_one_or_none()
    if subscription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return subscription


async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[str] = None) -> bool:
    query = select(EmailSubscription.id).where(func.lower(EmailSubscription.email) == email.lower())
    if exclude_id:
        query = query.where(EmailSubscription.id != exclude_id)
    return (await db.execute(query)).first() is not None


@router.post("/register", response_model=EmailSubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def register_subscription(
    data: EmailSubscriptionCreate,
    db: AsyncSession = Depends(get_db)
):
    email = data.email.strip().lower()
    if await _email_taken(db, email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This email is already subscribed"
        )

    subscription = EmailSubscription(
        email=email,
        name=data.name.strip(),
        subscription_types=list(dict.fromkeys(data.subscription_types)),
        is_active=True,
    )
    db.add(subscription)
    await db.flush()

    logger.info(f"New email subscription {subscription.id}")
    return subscription


@router.get("", response_model=list[EmailSubscriptionResponse])
async def list_subscriptions(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    query = select(EmailSubscription)
    if search:
        query = query.where(or_(
            EmailSubscription.name.ilike(f"%{search}%"),
            EmailSubscription.email.ilike(f"%{search}%")
        ))
    if is_active is not None:
        query = query.where(EmailSubscription.is_active == is_active)

    result = await db.execute(query.order_by(EmailSubscription.name.asc()))
    return result.scalars().all()


@router.get("/by-email", response_model=EmailSubscriptionResponse)
async def get_subscription_by_email(
    email: str = Query(..., min_length=3),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(EmailSubscription).where(func.lower(EmailSubscription.email) == email.strip().lower())
    )
    subscription = result.scalar_one_or_none()
    if subscription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return subscription


@router.get("/{subscription_id}", response_model=EmailSubscriptionResponse)
async def get_subscription(
    subscription_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    return await get_subscription_or_404(db, subscription_id)


@router.put("/{subscription_id}", response_model=EmailSubscriptionResponse)
async def update_subscription(
    subscription_id: str,
    data: EmailSubscriptionUpdate,
    db: AsyncSession = Depends(get_db)
):
    subscription = await get_subscription_or_404(db, subscription_id)
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("email"):
        email = update_data["email"].strip().lower()
        if await _email_taken(db, email, exclude_id=subscription.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This email is already subscribed"
            )
        update_data["email"] = email
    if "subscription_types" in update_data and update_data["subscription_types"] is not None:
        update_data["subscription_types"] = list(dict.fromkeys(update_data["subscription_types"]))

    for field, value in update_data.items():
        if value is not None:
            setattr(subscription, field, value)
    await db.flush()
    return subscription


@router.delete("/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subscription(
    subscription_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    subscription = await get_subscription_or_404(db, subscription_id)
    await db.delete(subscription)
    await db.flush()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
