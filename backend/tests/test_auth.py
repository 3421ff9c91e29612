"""
Tests for authentication endpoints.
"""
import pytest
from datetime import timedelta
from httpx import AsyncClient

from conftest import TEST_PASSWORD, make_organization
from coalition.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    password_needs_rehash,
    ROLE_ADMIN,
    ROLE_ORGANIZATION,
)


class TestLogin:
    """Login for admins and member organizations."""

    @pytest.mark.asyncio
    async def test_admin_login(self, client: AsyncClient, admin_user):
        response = await client.post(
            "/api/auth/login",
            json={"email": "ADMIN@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "ADMIN"
        assert data["token"]
        assert data["record"]["email"] == "admin@example.com"
        assert "password_hash" not in data["record"]

    @pytest.mark.asyncio
    async def test_organization_login(self, client: AsyncClient, active_org):
        response = await client.post(
            "/api/auth/login",
            json={"email": active_org.email, "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "ORGANIZATION"
        assert data["record"]["id"] == active_org.id
        assert data["record"]["last_login_at"] is not None

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, active_org):
        response = await client.post(
            "/api/auth/login",
            json={"email": active_org.email, "password": "not-the-password"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_pending_organization_cannot_login(self, client: AsyncClient, pending_org):
        """Test that only ACTIVE organizations receive a token."""
        response = await client.post(
            "/api/auth/login",
            json={"email": pending_org.email, "password": TEST_PASSWORD}
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Organization account is not active"

    @pytest.mark.asyncio
    async def test_admin_wins_shared_email(self, client: AsyncClient, db_session, admin_user):
        org = await make_organization(db_session, "Shadow Coalition", "admin@example.com")

        response = await client.post(
            "/api/auth/login",
            json={"email": "admin@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["role"] == "ADMIN"
        assert response.json()["record"]["id"] == admin_user.id

        # The organization's own password is never consulted
        org.password_hash = get_password_hash("OrgOnly456!")
        await db_session.flush()
        response = await client.post(
            "/api/auth/login",
            json={"email": "admin@example.com", "password": "OrgOnly456!"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_disabled_admin_cannot_login(self, client: AsyncClient, db_session, admin_user):
        admin_user.is_active = False
        await db_session.flush()

        response = await client.post(
            "/api/auth/login",
            json={"email": "admin@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin account is disabled"

        response = await client.post(
            "/api/auth/login",
            json={"email": "admin@example.com", "password": "wrong-password"}
        )
        assert response.status_code == 400


class TestCurrentPrincipal:
    """Token resolution."""

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"

    @pytest.mark.asyncio
    async def test_me_with_invalid_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_me_as_organization(self, client: AsyncClient, org_headers: dict, active_org):
        response = await client.get("/api/auth/me", headers=org_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == active_org.id
        assert data["role"] == "ORGANIZATION"
        assert data["name"] == active_org.name

    @pytest.mark.asyncio
    async def test_refresh(self, client: AsyncClient, admin_headers: dict, admin_user):
        response = await client.post("/api/auth/refresh", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "ADMIN"
        assert data["record"]["id"] == admin_user.id

    @pytest.mark.asyncio
    async def test_token_for_deleted_principal(self, client: AsyncClient, headers_for):
        headers = headers_for("missing-id", "ORGANIZATION")
        response = await client.get("/api/auth/me", headers=headers)
        assert response.status_code == 401


class TestTokens:
    """Token and password helpers."""

    def test_round_trip_claims(self):
        claims = decode_token(create_access_token(subject="abc123", role=ROLE_ORGANIZATION))
        assert claims["sub"] == "abc123"
        assert claims["role"] == ROLE_ORGANIZATION

    def test_expired_token_rejected(self):
        token = create_access_token(subject="abc123", role=ROLE_ADMIN, expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            create_access_token(subject="abc123", role="GUEST")

    def test_current_hashes_need_no_upgrade(self):
        hashed = get_password_hash("Secret123!")
        assert hashed.startswith("$pbkdf2-sha256$")
        assert password_needs_rehash(hashed) is False
