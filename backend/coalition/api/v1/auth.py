"""
Authentication endpoints.

Endpoints:
- POST /api/auth/login - Login as an admin or a member organization
- POST /api/auth/refresh - Refresh token
- GET /api/auth/me - Current principal

Logout is handled client-side by discarding the token.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from coalition.db.base import get_db
from coalition.core.security import (
    verify_password,
    get_password_hash,
    password_needs_rehash,
    create_access_token,
    ROLE_ADMIN,
    ROLE_ORGANIZATION,
)
from coalition.core.deps import get_current_user, CurrentUser
from coalition.models.base import utcnow
from coalition.models.admin_user import AdminUser
from coalition.models.organization import Organization, OrganizationStatus
from coalition.schemas.auth import LoginRequest, TokenResponse, PrincipalResponse
from coalition.api.v1.admin import admin_to_response
from coalition.api.v1.organizations import organization_to_response

router = APIRouter()


def _record(user: CurrentUser) -> dict:
    if user.is_admin:
        return admin_to_response(user.record).model_dump(mode="json")
    return organization_to_response(user.record).model_dump(mode="json")


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate with email/password. Admin accounts take precedence."""
    email = credentials.email.lower()

    result = await db.execute(select(AdminUser).where(func.lower(AdminUser.email) == email))
    admin = result.scalar_one_or_none()
    if admin is not None:
        if not verify_password(credentials.password, admin.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email or password")
        if not admin.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin account is disabled")
        if password_needs_rehash(admin.password_hash):
            admin.password_hash = get_password_hash(credentials.password)
        admin.last_login_at = utcnow()
        await db.flush()
        user = CurrentUser(id=admin.id, role=ROLE_ADMIN, email=admin.email, name=admin.name, record=admin)
        return TokenResponse(
            token=create_access_token(subject=admin.id, role=ROLE_ADMIN),
            role=ROLE_ADMIN,
            record=_record(user),
        )

    result = await db.execute(select(Organization).where(func.lower(Organization.email) == email))
    org = result.scalar_one_or_none()
    if org is None or not verify_password(credentials.password, org.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email or password")
    if org.status != OrganizationStatus.ACTIVE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organization account is not active")

    if password_needs_rehash(org.password_hash):
        org.password_hash = get_password_hash(credentials.password)
    org.last_login_at = utcnow()
    await db.flush()
    user = CurrentUser(id=org.id, role=ROLE_ORGANIZATION, email=org.email, name=org.name, record=org)
    return TokenResponse(
        token=create_access_token(subject=org.id, role=ROLE_ORGANIZATION),
        role=ROLE_ORGANIZATION,
        record=_record(user),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(current_user: CurrentUser = Depends(get_current_user)):
    """Issue a fresh token for the current principal."""
    return TokenResponse(
        token=create_access_token(subject=current_user.id, role=current_user.role),
        role=current_user.role,
        record=_record(current_user),
    )


@router.get("/me", response_model=PrincipalResponse)
async def me(current_user: CurrentUser = Depends(get_current_user)):
    return PrincipalResponse(
        id=current_user.id,
        role=current_user.role,
        email=current_user.email,
        name=current_user.name,
    )
