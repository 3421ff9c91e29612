"""
Organization endpoints.

Organizations register publicly and stay PENDING until an admin approves
them. Approved organizations can sign in and manage their own profile.
"""
import logging
from math import ceil
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete

from coalition.db.base import get_db
from coalition.core.deps import get_current_user, require_admin, require_organization, CurrentUser
from coalition.core.permissions import ensure_admin_or_self, parse_csv, tags_overlap
from coalition.core.security import get_password_hash
from coalition.models.base import utcnow
from coalition.models.organization import Organization, OrganizationStatus, Region
from coalition.models.survey_response import SurveyResponse
from coalition.models.alert_response import AlertResponse
from coalition.models.subscription import Subscription
from coalition.models.payment import Payment
from coalition.schemas.common import MessageResponse
from coalition.schemas.organization import (
    OrganizationRegister, OrganizationProfileUpdate, OrganizationAdminUpdate,
    OrganizationResponse, OrganizationListResponse, OrganizationDirectoryEntry,
    OrganizationActivity, DeclineRequest,
)
from coalition.services.email import email_service

logger = logging.getLogger(__name__)

router = APIRouter()


def organization_to_response(org: Organization) -> OrganizationResponse:
    """Convert Organization model to OrganizationResponse schema."""
    return OrganizationResponse.model_validate(org)


async def get_organization_or_404(db: AsyncSession, org_id: str) -> Organization:
    result = await db.execute(select(Organization).where(Organization.id == org_id))
    org = result.scalar_one_or_none()
    if org is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    return org


async def _ensure_email_available(db: AsyncSession, email: str, exclude_id: str) -> None:
    result = await db.execute(
        select(Organization.id).where(
            func.lower(Organization.email) == email.lower(),
            Organization.id != exclude_id
        )
    )
    if result.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is already in use by another organization"
        )


async def _ensure_name_available(db: AsyncSession, name: str, exclude_id: str) -> None:
    result = await db.execute(
        select(Organization.id).where(Organization.name == name, Organization.id != exclude_id)
    )
    if result.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization name is already in use"
        )


async def _apply_update(db: AsyncSession, org: Organization, data: dict) -> None:
    """Apply a partial update with uniqueness checks on email and name."""
    new_email = data.pop("email", None)
    if new_email and new_email.lower() != org.email.lower():
        await _ensure_email_available(db, new_email, org.id)
        org.email = new_email.lower()
        org.email_verified = False

    new_name = data.pop("name", None)
    if new_name and new_name != org.name:
        await _ensure_name_available(db, new_name, org.id)
        org.name = new_name

    for field, value in data.items():
        setattr(org, field, value)


@router.post("/register", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def register_organization(
    data: OrganizationRegister,
    db: AsyncSession = Depends(get_db)
):
    """Public membership application. The organization starts PENDING."""
    result = await db.execute(
        select(Organization.id).where(or_(
            func.lower(Organization.email) == data.email.lower(),
            Organization.name == data.name
        ))
    )
    if result.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization with this email or name already exists"
        )

    values = data.model_dump(exclude={"password", "email"}, exclude_unset=True)
    org = Organization(
        **values,
        email=data.email.lower(),
        password_hash=get_password_hash(data.password),
        status=OrganizationStatus.PENDING,
    )
    if org.tags is None:
        org.tags = []
    db.add(org)
    await db.flush()

    logger.info(f"Organization registered: {org.name} ({org.id})")
    await email_service.send_registration_notice(org.name, org.email)

    return organization_to_response(org)


@router.get("", response_model=OrganizationListResponse)
async def list_organizations(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    status_filter: Optional[OrganizationStatus] = Query(None, alias="status"),
    region: Optional[Region] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    tags: Optional[str] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    """List organizations (admin only)."""
    query = select(Organization)

    if status_filter:
        query = query.where(Organization.status == status_filter)
    if region:
        query = query.where(Organization.region == region)
    if city:
        query = query.where(Organization.city.ilike(f"%{city}%"))
    if state:
        query = query.where(Organization.state.ilike(f"%{state}%"))
    if search:
        query = query.where(
            Organization.name.ilike(f"%{search}%") |
            Organization.primary_contact_name.ilike(f"%{search}%") |
            Organization.email.ilike(f"%{search}%")
        )

    query = query.order_by(Organization.created.desc())
    wanted_tags = parse_csv(tags)

    if wanted_tags:
        # Tag arrays are JSON, so the has-some filter runs here
        result = await db.execute(query)
        matching = [o for o in result.scalars().all() if tags_overlap(o.tags, wanted_tags)]
        total_items = len(matching)
        orgs = matching[(page - 1) * perPage: page * perPage]
    else:
        count_query = select(func.count()).select_from(query.subquery())
        total_items = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(query.offset((page - 1) * perPage).limit(perPage))
        orgs = result.scalars().all()

    total_pages = ceil(total_items / perPage) if total_items > 0 else 1

    return OrganizationListResponse(
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=total_pages,
        items=[organization_to_response(o) for o in orgs]
    )


@router.get("/directory", response_model=list[OrganizationDirectoryEntry])
async def organization_directory(db: AsyncSession = Depends(get_db)):
    """Public list of active member organizations."""
    result = await db.execute(
        select(Organization)
        .where(Organization.status == OrganizationStatus.ACTIVE)
        .order_by(Organization.name.asc())
    )
    return [OrganizationDirectoryEntry.model_validate(o) for o in result.scalars().all()]


@router.get("/profile", response_model=OrganizationResponse)
async def get_profile(current_user: CurrentUser = Depends(require_organization)):
    return organization_to_response(current_user.record)


@router.put("/profile", response_model=OrganizationResponse)
async def update_profile(
    data: OrganizationProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_organization)
):
    """Update the signed-in organization's own profile and email preferences."""
    org = current_user.record
    await _apply_update(db, org, data.model_dump(exclude_unset=True))
    await db.flush()
    return organization_to_response(org)


@router.delete("/profile/deactivate", response_model=MessageResponse)
async def deactivate_profile(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_organization)
):
    """Leave the coalition. The record is kept as INACTIVE."""
    org = current_user.record
    org.status = OrganizationStatus.INACTIVE
    org.membership_active = False
    await db.flush()
    logger.info(f"Organization {org.id} deactivated its account")
    return MessageResponse(message="Organization account deactivated")


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    org = await get_organization_or_404(db, org_id)
    ensure_admin_or_self(current_user, org_id)
    return organization_to_response(org)


@router.put("/{org_id}", response_model=OrganizationResponse)
async def update_organization(
    org_id: str,
    data: OrganizationAdminUpdate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    org = await get_organization_or_404(db, org_id)
    await _apply_update(db, org, data.model_dump(exclude_unset=True))
    await db.flush()
    return organization_to_response(org)


@router.put("/{org_id}/approve", response_model=OrganizationResponse)
async def approve_organization(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    org = await get_organization_or_404(db, org_id)
    if org.status not in (OrganizationStatus.PENDING, OrganizationStatus.DECLINED):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot approve an organization with status {org.status.value}"
        )

    now = utcnow()
    org.status = OrganizationStatus.ACTIVE
    org.approved_at = now
    org.membership_active = True
    org.membership_date = now
    org.decline_reason = None
    await db.flush()

    logger.info(f"Organization approved: {org.name} ({org.id})")
    await email_service.send_approval_email(org.contact_email, org.name)
    return organization_to_response(org)


@router.put("/{org_id}/decline", response_model=OrganizationResponse)
async def decline_organization(
    org_id: str,
    data: Optional[DeclineRequest] = None,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    org = await get_organization_or_404(db, org_id)
    if org.status != OrganizationStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only pending organizations can be declined"
        )

    reason = data.reason if data else None
    org.status = OrganizationStatus.DECLINED
    org.decline_reason = reason
    await db.flush()

    logger.info(f"Organization declined: {org.name} ({org.id})")
    await email_service.send_decline_email(org.contact_email, org.name, reason)
    return organization_to_response(org)


@router.put("/{org_id}/archive", response_model=OrganizationResponse)
async def archive_organization(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    org = await get_organization_or_404(db, org_id)
    if org.status != OrganizationStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only active organizations can be archived"
        )
    org.status = OrganizationStatus.INACTIVE
    org.membership_active = False
    await db.flush()
    return organization_to_response(org)


@router.put("/{org_id}/unarchive", response_model=OrganizationResponse)
async def unarchive_organization(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    org = await get_organization_or_404(db, org_id)
    if org.status != OrganizationStatus.INACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only archived organizations can be restored"
        )
    org.status = OrganizationStatus.ACTIVE
    org.membership_active = True
    await db.flush()
    return organization_to_response(org)


async def delete_organization_rows(db: AsyncSession, org: Organization) -> None:
    """Delete an organization together with its dependent rows."""
    for model in (SurveyResponse, AlertResponse, Payment, Subscription):
        await db.execute(delete(model).where(model.organization_id == org.id))
    await db.delete(org)
    await db.flush()


@router.delete("/{org_id}", response_model=MessageResponse)
async def delete_organization(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    org = await get_organization_or_404(db, org_id)
    await delete_organization_rows(db, org)
    logger.info(f"Organization deleted: {org_id}")
    return MessageResponse(message="Organization deleted successfully")


@router.get("/{org_id}/activity", response_model=OrganizationActivity)
async def organization_activity(
    org_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    org = await get_organization_or_404(db, org_id)
    survey_count = await db.execute(
        select(func.count()).select_from(SurveyResponse).where(SurveyResponse.organization_id == org_id)
    )
    alert_count = await db.execute(
        select(func.count()).select_from(AlertResponse).where(AlertResponse.organization_id == org_id)
    )
    return OrganizationActivity(
        organization_id=org.id,
        last_login_at=org.last_login_at,
        created=org.created,
        updated=org.updated,
        survey_responses=survey_count.scalar() or 0,
        alert_responses=alert_count.scalar() or 0,
    )
