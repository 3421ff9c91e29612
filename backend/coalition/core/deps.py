"""
Authentication dependencies.

A bearer token names its principal with ``sub`` and ``role``. Admin tokens
resolve to ``AdminUser`` rows and organization tokens to ``Organization`` rows.
"""
from dataclasses import dataclass
from typing import Optional, Union
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coalition.db.base import get_db
from coalition.core.security import decode_token, ROLE_ADMIN, ROLE_ORGANIZATION
from coalition.models.admin_user import AdminUser
from coalition.models.organization import Organization

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Authenticated principal."""
    id: str
    role: str
    email: str
    name: str
    record: Union[AdminUser, Organization]

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_organization(self) -> bool:
        return self.role == ROLE_ORGANIZATION


async def _resolve(token: str, db: AsyncSession) -> Optional[CurrentUser]:
    payload = decode_token(token)
    if payload is None:
        return None

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or role not in (ROLE_ADMIN, ROLE_ORGANIZATION):
        return None

    model = AdminUser if role == ROLE_ADMIN else Organization
    result = await db.execute(select(model).where(model.id == subject))
    record = result.scalar_one_or_none()
    if record is None:
        return None
    if role == ROLE_ADMIN and not record.is_active:
        return None

    return CurrentUser(id=record.id, role=role, email=record.email, name=record.name, record=record)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> CurrentUser:
    """Require a valid bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await _resolve(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[CurrentUser]:
    """Resolve the bearer token if present; anonymous callers get None."""
    if credentials is None:
        return None
    return await _resolve(credentials.credentials, db)


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


async def require_organization(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    if not current_user.is_organization:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization account required"
        )
    return current_user
