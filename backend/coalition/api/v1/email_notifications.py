"""
Email notification endpoints.

Covers the public contact form, admin-composed emails to member organizations
(sent now or scheduled) and manual re-sends of content notifications.
"""
import logging
from math import ceil
from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from coalition.db.base import get_db
from coalition.core.deps import require_admin, CurrentUser
from coalition.models.base import utcnow, ensure_utc
from coalition.models.announcement import Announcement
from coalition.models.blog import Blog
from coalition.models.alert import Alert
from coalition.models.survey import Survey
from coalition.models.email_history import EmailHistory, EmailStatus
from coalition.schemas.common import MessageResponse
from coalition.schemas.email import (
    ContactForm, CustomEmailRequest, SendResult, EmailHistoryResponse, EmailHistoryListResponse
)
from coalition.services.email import email_service
from coalition.services.notifications import (
    resolve_custom_recipients,
    deliver_custom_email,
    send_announcement_emails,
    send_blog_emails,
    send_alert_emails,
    send_survey_emails,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/contact-form", response_model=MessageResponse)
async def submit_contact_form(data: ContactForm):
    """Forward a public contact form message to the coalition inbox."""
    sent = await email_service.send_contact_form(data.name, data.email, data.message, data.subject)
    if not sent:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send message"
        )
    return MessageResponse(message="Message sent successfully")


@router.post("/send", response_model=SendResult)
async def send_custom_email(
    data: CustomEmailRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    """
    Email active organizations chosen by tags, regions or explicit ids.

    A ``scheduled_for`` in the future stores the email for the scheduler and
    returns 202 instead of sending.
    """
    recipients = await resolve_custom_recipients(
        db,
        tags=data.tags,
        regions=data.regions,
        organization_ids=data.organization_ids,
        exclude_organization_ids=data.exclude_organization_ids,
    )
    if not recipients:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No recipients match the selected filters"
        )

    filters = {
        "tags": data.tags,
        "regions": [r.value for r in data.regions],
        "organization_ids": data.organization_ids,
        "exclude_organization_ids": data.exclude_organization_ids,
    }
    history = EmailHistory(
        subject=data.subject,
        body=data.body,
        recipient_emails=recipients,
        recipient_count=len(recipients),
        filters=filters,
        created_by_admin_id=current_user.id,
    )

    scheduled_for = ensure_utc(data.scheduled_for)
    if scheduled_for and scheduled_for > utcnow():
        history.status = EmailStatus.SCHEDULED
        history.scheduled_for = scheduled_for
        db.add(history)
        await db.flush()
        logger.info(f"Email {history.id} scheduled for {scheduled_for.isoformat()} to {len(recipients)} recipients")
        result = SendResult(sent=0, total=len(recipients))
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=result.model_dump())

    summary = await deliver_custom_email(recipients, data.subject, data.body)
    history.status = EmailStatus.SENT if summary.sent > 0 else EmailStatus.FAILED
    history.sent_at = utcnow()
    db.add(history)
    await db.flush()

    logger.info(f"Custom email {history.id}: {summary.sent}/{summary.total} sent")
    return SendResult(**summary.as_dict())


@router.get("/history", response_model=EmailHistoryListResponse)
async def email_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    total_items = (await db.execute(select(func.count(EmailHistory.id)))).scalar() or 0
    result = await db.execute(
        select(EmailHistory)
        .order_by(EmailHistory.created.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return EmailHistoryListResponse(
        page=page,
        perPage=limit,
        totalItems=total_items,
        totalPages=ceil(total_items / limit) if total_items > 0 else 1,
        items=[EmailHistoryResponse.model_validate(h) for h in result.scalars().all()],
    )


async def _get_published(db: AsyncSession, model, item_id: str, label: str):
    item = (await db.execute(select(model).where(model.id == item_id))).scalar_one_or_none()
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    if not item.is_published:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{label} is not published")
    return item


@router.post("/announcement/{announcement_id}", response_model=SendResult)
async def resend_announcement(
    announcement_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    announcement = await _get_published(db, Announcement, announcement_id, "Announcement")
    summary = await send_announcement_emails(db, announcement)
    return SendResult(**summary.as_dict())


@router.post("/survey/{survey_id}", response_model=SendResult)
async def resend_survey(
    survey_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    survey = await _get_published(db, Survey, survey_id, "Survey")
    summary = await send_survey_emails(db, survey)
    return SendResult(**summary.as_dict())


@router.post("/blog/{blog_id}", response_model=SendResult)
async def resend_blog(
    blog_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    blog = await _get_published(db, Blog, blog_id, "Blog")
    summary = await send_blog_emails(db, blog)
    return SendResult(**summary.as_dict())


@router.post("/alert/{alert_id}", response_model=SendResult)
async def resend_alert(
    alert_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    alert = await _get_published(db, Alert, alert_id, "Alert")
    summary = await send_alert_emails(db, alert)
    return SendResult(**summary.as_dict())
