"""
Tests for the contact form, admin-composed emails and notification re-sends.
"""
import pytest
from datetime import timedelta
from unittest.mock import patch, AsyncMock
from httpx import AsyncClient

from coalition.core.config import settings
from coalition.models.base import utcnow
from coalition.services.email import email_service


class TestContactForm:
    """Public contact form."""

    @pytest.mark.asyncio
    async def test_forwards_to_admin_inbox(self, client: AsyncClient, outbox):
        response = await client.post(
            "/api/email-notifications/contact-form",
            json={
                "name": "Casey",
                "email": "casey@example.com",
                "subject": "Membership",
                "message": "How do we join?",
            }
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Message sent successfully"
        assert outbox[0].to == settings.ADMIN_EMAIL
        assert outbox[0].reply_to == "casey@example.com"
        assert outbox[0].subject == "Contact form: Membership"

    @pytest.mark.asyncio
    async def test_delivery_failure(self, client: AsyncClient):
        with patch.object(email_service, "send_contact_form", AsyncMock(return_value=False)):
            response = await client.post(
                "/api/email-notifications/contact-form",
                json={"name": "Casey", "email": "casey@example.com", "message": "Hello"}
            )
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to send message"

    @pytest.mark.asyncio
    async def test_invalid_email(self, client: AsyncClient):
        response = await client.post(
            "/api/email-notifications/contact-form",
            json={"name": "Casey", "email": "not-an-email", "message": "Hello"}
        )
        assert response.status_code == 422


class TestCustomEmail:
    """Admin-composed emails to organizations."""

    @pytest.mark.asyncio
    async def test_send_to_tagged_organizations(
        self, client: AsyncClient, admin_headers: dict, active_org, other_org, outbox
    ):
        response = await client.post(
            "/api/email-notifications/send",
            json={"subject": "Caregiver grants", "body": "Applications open.", "tags": ["caregiving"]},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json() == {"sent": 1, "total": 1, "errors": []}
        assert [m.to for m in outbox] == ["director@caregivers.example.org"]

        response = await client.get("/api/email-notifications/history", headers=admin_headers)
        data = response.json()
        assert data["totalItems"] == 1
        item = data["items"][0]
        assert item["status"] == "SENT"
        assert item["recipient_count"] == 1
        assert item["filters"]["tags"] == ["caregiving"]
        assert item["sent_at"] is not None

    @pytest.mark.asyncio
    async def test_region_and_exclusion_filters(
        self, client: AsyncClient, admin_headers: dict, active_org, other_org, outbox
    ):
        response = await client.post(
            "/api/email-notifications/send",
            json={
                "subject": "Statewide update",
                "body": "News.",
                "regions": ["MIDDLE", "EAST"],
                "exclude_organization_ids": [other_org.id],
            },
            headers=admin_headers
        )
        assert response.json()["total"] == 1
        assert [m.to for m in outbox] == [active_org.email]

    @pytest.mark.asyncio
    async def test_pending_organizations_never_targeted(
        self, client: AsyncClient, admin_headers: dict, pending_org
    ):
        response = await client.post(
            "/api/email-notifications/send",
            json={"subject": "Hello", "body": "Hi", "organization_ids": [pending_org.id]},
            headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "No recipients match the selected filters"

    @pytest.mark.asyncio
    async def test_schedule_for_later(
        self, client: AsyncClient, admin_headers: dict, active_org, outbox
    ):
        when = (utcnow() + timedelta(hours=2)).isoformat()
        response = await client.post(
            "/api/email-notifications/send",
            json={"subject": "Reminder", "body": "Tomorrow.", "scheduled_for": when},
            headers=admin_headers
        )
        assert response.status_code == 202
        assert response.json() == {"sent": 0, "total": 1, "errors": []}
        assert outbox == []

        history = (await client.get("/api/email-notifications/history", headers=admin_headers)).json()
        assert history["items"][0]["status"] == "SCHEDULED"
        assert history["items"][0]["sent_at"] is None

    @pytest.mark.asyncio
    async def test_past_schedule_sends_now(
        self, client: AsyncClient, admin_headers: dict, active_org, outbox
    ):
        when = (utcnow() - timedelta(minutes=5)).isoformat()
        response = await client.post(
            "/api/email-notifications/send",
            json={"subject": "Now", "body": "Now.", "scheduled_for": when},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert len(outbox) == 1

    @pytest.mark.asyncio
    async def test_failed_delivery_recorded(
        self, client: AsyncClient, admin_headers: dict, active_org
    ):
        with patch.object(email_service, "send_custom_email", AsyncMock(return_value=False)):
            response = await client.post(
                "/api/email-notifications/send",
                json={"subject": "Oops", "body": "Fails."},
                headers=admin_headers
            )
        assert response.json()["sent"] == 0
        assert len(response.json()["errors"]) == 1

        history = (await client.get("/api/email-notifications/history", headers=admin_headers)).json()
        assert history["items"][0]["status"] == "FAILED"

    @pytest.mark.asyncio
    async def test_history_pagination(self, client: AsyncClient, admin_headers: dict, active_org):
        for i in range(3):
            await client.post(
                "/api/email-notifications/send",
                json={"subject": f"Update {i}", "body": "Body"},
                headers=admin_headers
            )
        response = await client.get("/api/email-notifications/history?limit=2&page=2", headers=admin_headers)
        data = response.json()
        assert data["totalItems"] == 3
        assert data["totalPages"] == 2
        assert len(data["items"]) == 1

    @pytest.mark.asyncio
    async def test_send_requires_admin(self, client: AsyncClient, org_headers: dict):
        response = await client.post(
            "/api/email-notifications/send",
            json={"subject": "x", "body": "y"},
            headers=org_headers
        )
        assert response.status_code == 403


class TestResend:
    """Manual re-send of content notifications."""

    @pytest.mark.asyncio
    async def test_resend_published_blog(
        self, client: AsyncClient, admin_headers: dict, active_org, outbox
    ):
        blog = (await client.post(
            "/api/blogs",
            json={"title": "Fall Prevention", "content": "Tips.", "author": "Staff"},
            headers=admin_headers
        )).json()

        response = await client.post(f"/api/email-notifications/blog/{blog['id']}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Blog is not published"

        await client.put(f"/api/blogs/{blog['id']}/publish", headers=admin_headers)
        outbox.clear()

        response = await client.post(f"/api/email-notifications/blog/{blog['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["sent"] == 1
        assert len(outbox) == 1

    @pytest.mark.asyncio
    async def test_resend_unknown_survey(self, client: AsyncClient, admin_headers: dict):
        response = await client.post("/api/email-notifications/survey/missing", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Survey not found"

    @pytest.mark.asyncio
    async def test_resend_alert_and_announcement(
        self, client: AsyncClient, admin_headers: dict, active_org, outbox
    ):
        alert = (await client.post(
            "/api/alerts",
            json={"title": "Storm", "content": "Prepare.", "is_published": True},
            headers=admin_headers
        )).json()
        announcement = (await client.post(
            "/api/announcements",
            json={"title": "Forum", "content": "Join.", "is_published": True},
            headers=admin_headers
        )).json()
        outbox.clear()

        response = await client.post(f"/api/email-notifications/alert/{alert['id']}", headers=admin_headers)
        assert response.json() == {"sent": 1, "total": 1, "errors": []}
        response = await client.post(
            f"/api/email-notifications/announcement/{announcement['id']}", headers=admin_headers
        )
        assert response.json()["sent"] == 1
        assert len(outbox) == 2
