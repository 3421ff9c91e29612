"""
Admin user management and the admin dashboard.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from coalition.db.base import get_db
from coalition.core.deps import require_admin, CurrentUser
from coalition.core.security import get_password_hash
from coalition.models.admin_user import AdminUser
from coalition.models.organization import Organization, OrganizationStatus
from coalition.schemas.admin import (
    AdminCreate, AdminUpdate, AdminResponse, PromoteRequest, DashboardStats
)
from coalition.services.dashboard import get_dashboard_stats
from coalition.api.v1.organizations import delete_organization_rows

logger = logging.getLogger(__name__)

router = APIRouter()


def admin_to_response(admin: AdminUser) -> AdminResponse:
    """Convert AdminUser model to AdminResponse schema."""
    return AdminResponse(
        id=admin.id,
        email=admin.email,
        name=admin.name,
        is_active=admin.is_active,
        last_login_at=admin.last_login_at,
        created=admin.created,
        updated=admin.updated,
    )


async def get_admin_or_404(db: AsyncSession, admin_id: str) -> AdminUser:
    result = await db.execute(select(AdminUser).where(AdminUser.id == admin_id))
    admin = result.scalar_one_or_none()
    if admin is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")
    return admin


async def _admin_email_taken(db: AsyncSession, email: str, exclude_id: Optional[str] = None) -> bool:
    query = select(AdminUser.id).where(func.lower(AdminUser.email) == email.lower())
    if exclude_id:
        query = query.where(AdminUser.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    """
    Aggregated dashboard data.

    Returns counts, the ten most recent activity items, mapped organizations,
    action items, six months of growth and per-survey response rates.
    """
    return await get_dashboard_stats(db)


@router.post("/promote", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
async def promote_to_admin(
    data: PromoteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    """
    Turn a member organization's account into an admin account.

    The organization row is removed; its email, name and password carry over.
    """
    if not data.email and not data.organization_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either email or organization_id is required"
        )

    if data.email and await _admin_email_taken(db, data.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already an admin")

    if data.organization_id:
        query = select(Organization).where(Organization.id == data.organization_id)
    else:
        query = select(Organization).where(func.lower(Organization.email) == data.email.lower())
    org = (await db.execute(query)).scalar_one_or_none()
    if org is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")

    if await _admin_email_taken(db, org.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already an admin")
    if org.status != OrganizationStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only active organizations can be promoted"
        )

    admin = AdminUser(
        email=org.email,
        name=org.name,
        password_hash=org.password_hash,
        is_active=True,
    )
    await delete_organization_rows(db, org)
    db.add(admin)
    await db.flush()

    logger.info(f"Organization {org.id} promoted to admin {admin.id} by {current_user.id}")
    return admin_to_response(admin)


@router.get("", response_model=list[AdminResponse])
async def list_admins(
    email: Optional[str] = None,
    name: Optional[str] = None,
    is_active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    query = select(AdminUser)
    if email:
        query = query.where(AdminUser.email.ilike(f"%{email}%"))
    if name:
        query = query.where(AdminUser.name.ilike(f"%{name}%"))
    if is_active is not None:
        query = query.where(AdminUser.is_active == is_active)
    result = await db.execute(query.order_by(AdminUser.name.asc()))
    return [admin_to_response(a) for a in result.scalars().all()]


@router.get("/{admin_id}", response_model=AdminResponse)
async def get_admin(
    admin_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    return admin_to_response(await get_admin_or_404(db, admin_id))


@router.post("", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    data: AdminCreate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    if await _admin_email_taken(db, data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admin with this email already exists"
        )
    admin = AdminUser(
        email=data.email.lower(),
        name=data.name,
        password_hash=get_password_hash(data.password),
        is_active=True,
    )
    db.add(admin)
    await db.flush()
    return admin_to_response(admin)


@router.put("/{admin_id}", response_model=AdminResponse)
async def update_admin(
    admin_id: str,
    data: AdminUpdate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    admin = await get_admin_or_404(db, admin_id)
    update_data = data.model_dump(exclude_unset=True)

    new_email = update_data.pop("email", None)
    if new_email and new_email.lower() != admin.email.lower():
        if await _admin_email_taken(db, new_email, exclude_id=admin.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Admin with this email already exists"
            )
        admin.email = new_email.lower()

    password = update_data.pop("password", None)
    if password:
        admin.password_hash = get_password_hash(password)

    for field, value in update_data.items():
        setattr(admin, field, value)

    await db.flush()
    return admin_to_response(admin)


@router.delete("/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_admin(
    admin_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    if admin_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own admin account"
        )
    admin = await get_admin_or_404(db, admin_id)
    await db.delete(admin)
    await db.flush()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
