"""
Background jobs run by APScheduler inside the API process.

- process_scheduled_emails: every minute, sends admin emails whose
  ``scheduled_for`` time has passed.
- send_survey_deadline_reminders: daily, reminds organizations that have not
  answered a survey due within ``SURVEY_REMINDER_DAYS``.
"""
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coalition.core.config import settings
from coalition.db.base import session_scope
from coalition.models.base import utcnow, ensure_utc
from coalition.models.email_history import EmailHistory, EmailStatus
from coalition.models.organization import Organization, OrganizationStatus
from coalition.models.survey import Survey
from coalition.models.survey_response import SurveyResponse
from coalition.services.email import email_service
from coalition.services.notifications import deliver_custom_email

logger = logging.getLogger(__name__)

scheduler: Optional[AsyncIOScheduler] = None


async def process_scheduled_emails(db: AsyncSession) -> int:
    """Send every due scheduled email. Returns the number of history rows processed."""
    now = utcnow()
    result = await db.execute(
        select(EmailHistory).where(
            EmailHistory.status == EmailStatus.SCHEDULED,
            EmailHistory.scheduled_for <= now
        ).order_by(EmailHistory.scheduled_for.asc())
    )
    due = result.scalars().all()

    for entry in due:
        summary = await deliver_custom_email(entry.recipient_emails or [], entry.subject, entry.body)
        entry.status = EmailStatus.SENT if summary.sent > 0 else EmailStatus.FAILED
        entry.sent_at = utcnow()
        logger.info(
            f"Scheduled email {entry.id} processed: {summary.sent}/{summary.total} sent, "
            f"status={entry.status.value}"
        )

    await db.flush()
    return len(due)


async def send_survey_deadline_reminders(db: AsyncSession, days: Optional[int] = None) -> int:
    """Remind non-responding organizations about surveys closing soon. Returns emails sent."""
    now = utcnow()
    horizon = now + timedelta(days=days if days is not None else settings.SURVEY_REMINDER_DAYS)

    result = await db.execute(
        select(Survey).where(
            Survey.is_active == True,  # noqa: E712
            Survey.is_published == True,  # noqa: E712
            Survey.due_date.is_not(None),
            Survey.reminder_sent_at.is_(None),
        )
    )
    surveys = [
        s for s in result.scalars().all()
        if now < ensure_utc(s.due_date) <= horizon
    ]
    if not surveys:
        return 0

    org_result = await db.execute(
        select(Organization).where(
            Organization.status == OrganizationStatus.ACTIVE,
            Organization.notify_surveys == True  # noqa: E712
        )
    )
    organizations = org_result.scalars().all()

    sent = 0
    for survey in surveys:
        responded = await db.execute(
            select(SurveyResponse.organization_id).where(SurveyResponse.survey_id == survey.id)
        )
        responded_ids = set(responded.scalars().all())
        for org in organizations:
            if org.id in responded_ids:
                continue
            if await email_service.send_survey_reminder(
                org.contact_email, survey.title, ensure_utc(survey.due_date), survey.id
            ):
                sent += 1
        survey.reminder_sent_at = now
        logger.info(f"Survey reminder sent for {survey.id}")

    await db.flush()
    return sent


async def _run_job(job: Callable[[AsyncSession], Awaitable[int]]) -> None:
    try:
        async with session_scope() as session:
            await job(session)
    except Exception:
        logger.exception(f"Scheduled job {job.__name__} failed")


async def _scheduled_emails_job() -> None:
    await _run_job(process_scheduled_emails)


async def _survey_reminders_job() -> None:
    await _run_job(send_survey_deadline_reminders)


def start_scheduler() -> AsyncIOScheduler:
    global scheduler
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        _scheduled_emails_job,
        IntervalTrigger(minutes=1),
        id="process_scheduled_emails",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        _survey_reminders_job,
        CronTrigger(hour=9, minute=0),
        id="survey_deadline_reminders",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Background scheduler started")
    return scheduler


def shutdown_scheduler() -> None:
    global scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
