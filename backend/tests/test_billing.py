"""
Tests for Stripe membership billing.
"""
import pytest
from unittest.mock import patch
from httpx import AsyncClient
from sqlalchemy import select

from coalition.core.config import settings
from coalition.models.subscription import Subscription
from coalition.models.payment import Payment
from coalition.services.billing import BillingService, BillingNotConfigured, construct_event


@pytest.fixture
def stripe_key():
    with patch.object(settings, "STRIPE_SECRET_KEY", "sk_test_123"):
        yield


async def add_subscription(db_session, org, **kwargs) -> Subscription:
    values = {
        "stripe_customer_id": "cus_123",
        "stripe_subscription_id": "sub_123",
        "status": "active",
    }
    values.update(kwargs)
    subscription = Subscription(organization_id=org.id, **values)
    db_session.add(subscription)
    await db_session.flush()
    return subscription


def event(event_type: str, **obj) -> dict:
    return {"type": event_type, "data": {"object": obj}}


class TestBillingNotConfigured:

    @pytest.mark.asyncio
    async def test_endpoints_return_501(self, client: AsyncClient, org_headers: dict):
        response = await client.get("/api/stripe/subscription", headers=org_headers)
        assert response.status_code == 501
        assert response.json()["detail"] == "Payments are not configured"

        response = await client.post("/api/stripe/webhook", content=b"{}")
        assert response.status_code == 501

    @pytest.mark.asyncio
    async def test_service_requires_key(self, db_session):
        with pytest.raises(BillingNotConfigured):
            BillingService(db_session)

    def test_webhook_secret_required(self):
        with patch.object(settings, "STRIPE_WEBHOOK_SECRET", None):
            with pytest.raises(BillingNotConfigured):
                construct_event(b"{}", "sig")


class TestSubscriptionEvents:
    """Subscription lifecycle webhooks."""

    @pytest.mark.asyncio
    async def test_deleted_ends_membership(self, db_session, active_org, stripe_key):
        subscription = await add_subscription(db_session, active_org)
        handled = await BillingService(db_session).handle_event(
            event("customer.subscription.deleted", id="sub_123", customer="cus_123", status="canceled")
        )
        assert handled is True
        assert subscription.status == "canceled"
        assert active_org.membership_active is False

    @pytest.mark.asyncio
    async def test_updated_to_active(self, db_session, active_org, stripe_key):
        active_org.membership_active = False
        subscription = await add_subscription(db_session, active_org, status="incomplete")
        await BillingService(db_session).handle_event(
            event(
                "customer.subscription.updated",
                id="sub_123",
                status="active",
                current_period_end=1767225600,
                cancel_at_period_end=True,
            )
        )
        assert subscription.status == "active"
        assert subscription.cancel_at_period_end is True
        assert subscription.current_period_end.year == 2026
        assert active_org.membership_active is True

    @pytest.mark.asyncio
    async def test_found_by_customer(self, db_session, active_org, stripe_key):
        subscription = await add_subscription(db_session, active_org, stripe_subscription_id=None)
        await BillingService(db_session).handle_event(
            event("customer.subscription.updated", id="sub_new", customer="cus_123", status="past_due")
        )
        assert subscription.status == "past_due"

    @pytest.mark.asyncio
    async def test_unknown_subscription_acknowledged(self, db_session, stripe_key):
        handled = await BillingService(db_session).handle_event(
            event("customer.subscription.updated", id="sub_missing", status="active")
        )
        assert handled is True

    @pytest.mark.asyncio
    async def test_other_events_ignored(self, db_session, stripe_key):
        handled = await BillingService(db_session).handle_event(event("charge.refunded", id="ch_1"))
        assert handled is False


class TestInvoiceEvents:
    """Invoice payment webhooks."""

    @pytest.mark.asyncio
    async def test_payment_succeeded(self, db_session, pending_org, stripe_key):
        subscription = await add_subscription(db_session, pending_org, status="incomplete")
        await BillingService(db_session).handle_event(
            event(
                "invoice.payment_succeeded",
                id="in_1",
                subscription="sub_123",
                customer="cus_123",
                amount_paid=5000,
                currency="usd",
            )
        )
        assert subscription.status == "active"
        assert pending_org.membership_active is True
        assert pending_org.membership_date is not None

        payment = (await db_session.execute(select(Payment))).scalar_one()
        assert payment.amount == 5000
        assert payment.status == "succeeded"
        assert payment.paid_at is not None

    @pytest.mark.asyncio
    async def test_payment_failed(self, db_session, active_org, stripe_key):
        subscription = await add_subscription(db_session, active_org)
        await BillingService(db_session).handle_event(
            event("invoice.payment_failed", id="in_2", subscription="sub_123", amount_due=5000)
        )
        assert subscription.status == "past_due"
        payment = (await db_session.execute(select(Payment))).scalar_one()
        assert payment.status == "failed"
        assert payment.paid_at is None

    @pytest.mark.asyncio
    async def test_redelivered_invoice_recorded_once(self, db_session, active_org, stripe_key):
        await add_subscription(db_session, active_org)
        service = BillingService(db_session)
        paid = event("invoice.payment_succeeded", id="in_3", subscription="sub_123", amount_paid=5000)
        await service.handle_event(paid)
        first_paid_at = (await db_session.execute(select(Payment))).scalar_one().paid_at
        await service.handle_event(paid)

        payments = (await db_session.execute(
            select(Payment).where(Payment.stripe_invoice_id == "in_3")
        )).scalars().all()
        assert len(payments) == 1
        assert payments[0].paid_at == first_paid_at

    @pytest.mark.asyncio
    async def test_failure_then_success_kept_separately(self, db_session, active_org, stripe_key):
        await add_subscription(db_session, active_org)
        service = BillingService(db_session)
        await service.handle_event(
            event("invoice.payment_failed", id="in_4", subscription="sub_123", amount_due=5000)
        )
        await service.handle_event(
            event("invoice.payment_succeeded", id="in_4", subscription="sub_123", amount_paid=5000)
        )
        statuses = (await db_session.execute(
            select(Payment.status).where(Payment.stripe_invoice_id == "in_4").order_by(Payment.status)
        )).scalars().all()
        assert statuses == ["failed", "succeeded"]


class TestBillingEndpoints:

    @pytest.mark.asyncio
    async def test_subscription_detail(
        self, client: AsyncClient, db_session, org_headers: dict, active_org, stripe_key
    ):
        response = await client.get("/api/stripe/subscription", headers=org_headers)
        assert response.status_code == 200
        assert response.json() == {"subscription": None, "payments": []}

        await add_subscription(db_session, active_org)
        response = await client.get("/api/stripe/subscription", headers=org_headers)
        assert response.json()["subscription"]["stripe_subscription_id"] == "sub_123"

    @pytest.mark.asyncio
    async def test_admins_have_no_subscription(self, client: AsyncClient, admin_headers: dict, stripe_key):
        response = await client.get("/api/stripe/subscription", headers=admin_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cancel_without_subscription(self, client: AsyncClient, org_headers: dict, stripe_key):
        response = await client.post("/api/stripe/subscription/cancel", json={}, headers=org_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_webhook_bad_signature(self, client: AsyncClient, stripe_key):
        with patch("coalition.api.v1.billing.construct_event", side_effect=ValueError("bad payload")):
            response = await client.post(
                "/api/stripe/webhook",
                content=b"{}",
                headers={"stripe-signature": "t=1,v1=bad"}
            )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid webhook signature"

    @pytest.mark.asyncio
    async def test_webhook_applies_event(
        self, client: AsyncClient, db_session, active_org, stripe_key
    ):
        subscription = await add_subscription(db_session, active_org)
        verified = event("customer.subscription.deleted", id="sub_123")
        with patch("coalition.api.v1.billing.construct_event", return_value=verified):
            response = await client.post(
                "/api/stripe/webhook",
                content=b"{}",
                headers={"stripe-signature": "t=1,v1=ok"}
            )
        assert response.json() == {"received": True, "handled": True}
        assert subscription.status == "canceled"
