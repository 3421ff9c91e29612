"""
Alert response endpoints.

Organizations answer the questions attached to a published alert, once per
alert.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coalition.db.base import get_db
from coalition.core.deps import get_current_user, require_admin, require_organization, CurrentUser
from coalition.core.permissions import ensure_admin_or_self, can_view_tagged
from coalition.models.base import utcnow
from coalition.models.alert import Alert
from coalition.models.alert_response import AlertResponse
from coalition.schemas.alert import AlertSubmissionCreate, AlertSubmissionUpdate, AlertSubmissionResponse
from coalition.api.v1.survey_responses import parse_answers

logger = logging.getLogger(__name__)

router = APIRouter()


def alert_submission_to_response(item: AlertResponse) -> AlertSubmissionResponse:
    return AlertSubmissionResponse(
        id=item.id,
        alert_id=item.alert_id,
        organization_id=item.organization_id,
        alert_title=item.alert.title if item.alert else None,
        organization_name=item.organization.name if item.organization else None,
        responses=item.responses,
        submitted_date=item.submitted_date,
        created=item.created,
        updated=item.updated,
    )


async def get_alert_submission_or_404(db: AsyncSession, response_id: str) -> AlertResponse:
    result = await db.execute(select(AlertResponse).where(AlertResponse.id == response_id))
    item = result.scalar_one_or_none()
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert response not found")
    return item


@router.get("", response_model=list[AlertSubmissionResponse])
async def list_alert_responses(
    alert_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    query = select(AlertResponse)
    if alert_id:
        query = query.where(AlertResponse.alert_id == alert_id)
    if organization_id:
        query = query.where(AlertResponse.organization_id == organization_id)
    result = await db.execute(query.order_by(AlertResponse.submitted_date.desc()))
    return [alert_submission_to_response(r) for r in result.scalars().all()]


@router.post("", response_model=AlertSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_alert_response(
    data: AlertSubmissionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_organization)
):
    """Answer a published alert on behalf of the calling organization."""
    alert = (await db.execute(select(Alert).where(Alert.id == data.alert_id))).scalar_one_or_none()
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    if not alert.is_published or not can_view_tagged(current_user, alert.tags):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    existing = await db.execute(
        select(AlertResponse.id).where(
            AlertResponse.alert_id == alert.id,
            AlertResponse.organization_id == current_user.id
        )
    )
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization has already responded to this alert"
        )

    item = AlertResponse(
        alert=alert,
        organization=current_user.record,
        responses=parse_answers(data.responses),
        submitted_date=utcnow(),
    )
    db.add(item)
    await db.flush()

    logger.info(f"Alert response {item.id} submitted for alert {alert.id} by {current_user.id}")
    return alert_submission_to_response(item)


@router.get("/alert/{alert_id}", response_model=list[AlertSubmissionResponse])
async def responses_for_alert(
    alert_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    result = await db.execute(
        select(AlertResponse)
        .where(AlertResponse.alert_id == alert_id)
        .order_by(AlertResponse.submitted_date.desc())
    )
    return [alert_submission_to_response(r) for r in result.scalars().all()]


@router.get("/organization/{organization_id}", response_model=list[AlertSubmissionResponse])
async def alert_responses_for_organization(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    ensure_admin_or_self(current_user, organization_id)
    result = await db.execute(
        select(AlertResponse)
        .where(AlertResponse.organization_id == organization_id)
        .order_by(AlertResponse.submitted_date.desc())
    )
    return [alert_submission_to_response(r) for r in result.scalars().all()]


@router.get("/{response_id}", response_model=AlertSubmissionResponse)
async def get_alert_response(
    response_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    item = await get_alert_submission_or_404(db, response_id)
    ensure_admin_or_self(current_user, item.organization_id)
    return alert_submission_to_response(item)


@router.put("/{response_id}", response_model=AlertSubmissionResponse)
async def update_alert_response(
    response_id: str,
    data: AlertSubmissionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    item = await get_alert_submission_or_404(db, response_id)
    ensure_admin_or_self(current_user, item.organization_id)
    item.responses = parse_answers(data.responses)
    item.submitted_date = utcnow()
    await db.flush()
    return alert_submission_to_response(item)


@router.delete("/{response_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_alert_response(
    response_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    item = await get_alert_submission_or_404(db, response_id)
    await db.delete(item)
    await db.flush()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
