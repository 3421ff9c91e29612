"""
Stripe membership billing.

Stripe is the source of truth for subscription state; webhook events are
reconciled into local ``Subscription`` and ``Payment`` rows and an
organization's ``membership_active`` flag.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coalition.core.config import settings
from coalition.models.organization import Organization
from coalition.models.subscription import Subscription
from coalition.models.payment import Payment
from coalition.models.base import utcnow

logger = logging.getLogger(__name__)


class BillingNotConfigured(Exception):
    pass


class BillingError(Exception):
    pass


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class BillingService:
    """Wraps the Stripe SDK for one request's database session."""

    def __init__(self, db: AsyncSession):
        if not settings.STRIPE_SECRET_KEY:
            raise BillingNotConfigured("Stripe is not configured")
        stripe.api_key = settings.STRIPE_SECRET_KEY
        self.db = db

    async def _get_organization(self, org_id: str) -> Organization:
        result = await self.db.execute(select(Organization).where(Organization.id == org_id))
        org = result.scalar_one_or_none()
        if org is None:
            raise BillingError("Organization not found")
        return org

    async def _get_subscription(self, org_id: str) -> Optional[Subscription]:
        result = await self.db.execute(
            select(Subscription).where(Subscription.organization_id == org_id)
        )
        return result.scalar_one_or_none()

    async def create_customer(self, org_id: str) -> str:
        """Return the Stripe customer id for an organization, creating one if needed."""
        existing = await self._get_subscription(org_id)
        if existing is not None and existing.stripe_customer_id:
            return existing.stripe_customer_id

        org = await self._get_organization(org_id)
        customer = await asyncio.to_thread(
            stripe.Customer.create,
            email=org.contact_email,
            name=org.name,
            metadata={"organization_id": org.id},
        )
        self.db.add(Subscription(
            organization_id=org.id,
            stripe_customer_id=customer["id"],
            status="incomplete",
        ))
        await self.db.flush()
        return customer["id"]

    async def create_subscription(self, org_id: str, price_id: str) -> dict[str, Any]:
        customer_id = await self.create_customer(org_id)
        local = await self._get_subscription(org_id)
        if local.stripe_subscription_id and local.status in ("active", "trialing"):
            raise BillingError("Organization already has an active subscription")

        created = await asyncio.to_thread(
            stripe.Subscription.create,
            customer=customer_id,
            items=[{"price": price_id}],
            payment_behavior="default_incomplete",
            expand=["latest_invoice.payment_intent"],
            metadata={"organization_id": org_id},
        )

        local.stripe_subscription_id = created["id"]
        local.stripe_price_id = price_id
        local.status = created["status"]
        local.current_period_end = _timestamp(created.get("current_period_end"))
        local.cancel_at_period_end = False
        await self.db.flush()

        # latest_invoice is only an object when the expand above took effect
        invoice = created.get("latest_invoice") or {}
        intent = invoice.get("payment_intent") if hasattr(invoice, "get") else None
        client_secret = intent.get("client_secret") if intent else None

        logger.info(f"Created Stripe subscription {created['id']} for organization {org_id}")
        return {
            "subscription_id": created["id"],
            "status": created["status"],
            "client_secret": client_secret,
        }

    async def cancel_subscription(self, org_id: str, immediate: bool = False) -> Subscription:
        local = await self._get_subscription(org_id)
        if local is None or not local.stripe_subscription_id:
            raise BillingError("No subscription found")

        if immediate:
            canceled = await asyncio.to_thread(stripe.Subscription.cancel, local.stripe_subscription_id)
            local.status = canceled["status"]
            local.cancel_at_period_end = False
            org = await self._get_organization(org_id)
            org.membership_active = False
        else:
            updated = await asyncio.to_thread(
                stripe.Subscription.modify,
                local.stripe_subscription_id,
                cancel_at_period_end=True,
            )
            local.status = updated["status"]
            local.cancel_at_period_end = True
        await self.db.flush()
        return local

    async def get_subscription(self, org_id: str) -> tuple[Optional[Subscription], list[Payment]]:
        local = await self._get_subscription(org_id)
        result = await self.db.execute(
            select(Payment)
            .where(Payment.organization_id == org_id)
            .order_by(Payment.created.desc())
        )
        return local, list(result.scalars().all())

    async def list_prices(self) -> list[dict[str, Any]]:
        prices = await asyncio.to_thread(stripe.Price.list, active=True, type="recurring", limit=20)
        items = []
        for price in prices["data"]:
            recurring = price.get("recurring") or {}
            items.append({
                "id": price["id"],
                "product": price.get("product"),
                "nickname": price.get("nickname"),
                "unit_amount": price.get("unit_amount"),
                "currency": price.get("currency", "usd"),
                "interval": recurring.get("interval"),
            })
        return items

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def _subscription_by_stripe_ids(
        self,
        subscription_id: Optional[str],
        customer_id: Optional[str]
    ) -> Optional[Subscription]:
        if subscription_id:
            result = await self.db.execute(
                select(Subscription).where(Subscription.stripe_subscription_id == subscription_id)
            )
            found = result.scalar_one_or_none()
            if found is not None:
                return found
        if customer_id:
            result = await self.db.execute(
                select(Subscription).where(Subscription.stripe_customer_id == customer_id)
            )
            return result.scalar_one_or_none()
        return None

    async def _record_payment(self, org_id: str, invoice: Any, succeeded: bool) -> Payment:
        """Upsert on (invoice, status) since Stripe may deliver an event more than once."""
        status = "succeeded" if succeeded else "failed"
        result = await self.db.execute(
            select(Payment).where(
                Payment.stripe_invoice_id == invoice.get("id"),
                Payment.status == status,
            )
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            payment = Payment(organization_id=org_id, stripe_invoice_id=invoice.get("id"), status=status)
            self.db.add(payment)
        payment.amount = invoice.get("amount_paid" if succeeded else "amount_due") or 0
        payment.currency = invoice.get("currency", "usd")
        if succeeded and payment.paid_at is None:
            payment.paid_at = utcnow()
        return payment

    async def handle_event(self, event: Any) -> bool:
        """Apply a verified webhook event. Returns False for ignored event types."""
        event_type = event["type"]
        obj = event["data"]["object"]

        if event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
            local = await self._subscription_by_stripe_ids(obj.get("id"), obj.get("customer"))
            if local is None:
                logger.warning(f"Webhook {event_type} for unknown subscription {obj.get('id')}")
                return True
            local.status = obj.get("status", local.status)
            local.current_period_end = _timestamp(obj.get("current_period_end")) or local.current_period_end
            local.cancel_at_period_end = bool(obj.get("cancel_at_period_end", False))
            org = await self._get_organization(local.organization_id)
            if event_type == "customer.subscription.deleted":
                local.status = "canceled"
                org.membership_active = False
            elif local.status in ("active", "trialing"):
                org.membership_active = True
            await self.db.flush()
            return True

        if event_type in ("invoice.payment_succeeded", "invoice.payment_failed"):
            local = await self._subscription_by_stripe_ids(obj.get("subscription"), obj.get("customer"))
            if local is None:
                logger.warning(f"Webhook {event_type} for unknown customer {obj.get('customer')}")
                return True
            succeeded = event_type == "invoice.payment_succeeded"
            await self._record_payment(local.organization_id, obj, succeeded)
            org = await self._get_organization(local.organization_id)
            if succeeded:
                local.status = "active"
                org.membership_active = True
                if not org.membership_date:
                    org.membership_date = utcnow()
            else:
                local.status = "past_due"
            await self.db.flush()
            return True

        logger.debug(f"Ignoring Stripe event {event_type}")
        return False


def construct_event(payload: bytes, signature: Optional[str]) -> Any:
    """Verify a webhook payload; raises ValueError or SignatureVerificationError."""
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise BillingNotConfigured("Stripe webhook secret is not configured")
    return stripe.Webhook.construct_event(payload, signature or "", settings.STRIPE_WEBHOOK_SECRET)
