"""
Notification fan-out for published content.

Publishing an announcement, blog, alert or survey creates an in-app
notification and emails every eligible recipient individually:

- ACTIVE organizations whose preference flag for the content type is on and
  (for tagged content) that share at least one tag with it.
- Active individual subscribers who opted into the content type. Alerts and
  surveys are for member organizations only.

Organization addresses prefer the primary contact email; all addresses are
lower-cased and deduplicated. A failure for one recipient never stops the rest.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import quote

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coalition.core.config import settings
from coalition.core.permissions import tags_overlap
from coalition.models.organization import Organization, OrganizationStatus, Region
from coalition.models.email_subscription import EmailSubscription
from coalition.models.notification import Notification, NotificationType
from coalition.models.announcement import Announcement
from coalition.models.blog import Blog
from coalition.models.alert import Alert
from coalition.models.survey import Survey
from coalition.services.email import email_service

logger = logging.getLogger(__name__)

PREFERENCE_FLAGS = {
    NotificationType.ANNOUNCEMENT: "notify_announcements",
    NotificationType.BLOG: "notify_blogs",
    NotificationType.ALERT: "notify_alerts",
    NotificationType.SURVEY: "notify_surveys",
}

ORGANIZATION_ONLY = {NotificationType.ALERT, NotificationType.SURVEY}

SUMMARY_LENGTH = 280


@dataclass
class Recipient:
    email: str
    unsubscribe_url: str


@dataclass
class SendSummary:
    sent: int = 0
    total: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"sent": self.sent, "total": self.total, "errors": self.errors}


def _frontend() -> str:
    return settings.FRONTEND_URL.rstrip("/")


def _summary(text: str) -> str:
    text = " ".join(text.split())
    if len(text) <= SUMMARY_LENGTH:
        return text
    return text[:SUMMARY_LENGTH].rsplit(" ", 1)[0] + "..."


async def create_notification(
    db: AsyncSession,
    type: NotificationType,
    title: str,
    content_id: str
) -> Notification:
    """Add an entry to the in-app notification feed."""
    notification = Notification(type=type, title=title, content_id=content_id)
    db.add(notification)
    await db.flush()
    return notification


async def get_recipients(
    db: AsyncSession,
    content_type: NotificationType,
    tags: Optional[Iterable[str]] = None
) -> list[Recipient]:
    """Resolve the deduplicated recipient list for one content type."""
    tags = list(tags or [])
    flag = getattr(Organization, PREFERENCE_FLAGS[content_type])

    result = await db.execute(
        select(Organization).where(
            Organization.status == OrganizationStatus.ACTIVE,
            flag == True  # noqa: E712
        )
    )
    organizations = result.scalars().all()

    recipients: list[Recipient] = []
    seen: set[str] = set()
    for org in organizations:
        if tags and not tags_overlap(org.tags, tags):
            continue
        address = org.contact_email
        if address in seen:
            continue
        seen.add(address)
        recipients.append(Recipient(email=address, unsubscribe_url=f"{_frontend()}/settings"))

    if content_type in ORGANIZATION_ONLY:
        return recipients

    result = await db.execute(
        select(EmailSubscription).where(EmailSubscription.is_active == True)  # noqa: E712
    )
    for subscriber in result.scalars().all():
        if content_type.value not in (subscriber.subscription_types or []):
            continue
        address = subscriber.email.strip().lower()
        if address in seen:
            continue
        seen.add(address)
        recipients.append(Recipient(
            email=address,
            unsubscribe_url=f"{_frontend()}/unsubscribe?email={quote(address)}"
        ))

    return recipients


async def send_content_emails(
    db: AsyncSession,
    content_type: NotificationType,
    title: str,
    summary: str,
    link: str,
    tags: Optional[Iterable[str]] = None
) -> SendSummary:
    """Email every eligible recipient about one piece of content."""
    recipients = await get_recipients(db, content_type, tags)
    summary_result = SendSummary(total=len(recipients))

    for recipient in recipients:
        try:
            ok = await email_service.send_content_notification(
                recipient.email,
                content_type.value,
                title,
                summary,
                link,
                recipient.unsubscribe_url,
            )
        except Exception as e:
            logger.exception(f"Error emailing {recipient.email}")
            summary_result.errors.append(f"{recipient.email}: {e}")
            continue
        if ok:
            summary_result.sent += 1
        else:
            summary_result.errors.append(f"{recipient.email}: delivery failed")

    logger.info(
        f"{content_type.value} notification '{title}': "
        f"{summary_result.sent}/{summary_result.total} sent"
    )
    return summary_result


async def send_announcement_emails(db: AsyncSession, announcement: Announcement) -> SendSummary:
    return await send_content_emails(
        db,
        NotificationType.ANNOUNCEMENT,
        announcement.title,
        _summary(announcement.content),
        f"{_frontend()}/announcements/{announcement.slug}",
        announcement.tag_names,
    )


async def send_blog_emails(db: AsyncSession, blog: Blog) -> SendSummary:
    return await send_content_emails(
        db,
        NotificationType.BLOG,
        blog.title,
        _summary(blog.content),
        f"{_frontend()}/blog/{blog.slug}",
        blog.tags,
    )


async def send_alert_emails(db: AsyncSession, alert: Alert) -> SendSummary:
    return await send_content_emails(
        db,
        NotificationType.ALERT,
        f"[{alert.priority.value}] {alert.title}",
        _summary(alert.content),
        f"{_frontend()}/alerts/{alert.id}",
        alert.tags,
    )


async def send_survey_emails(db: AsyncSession, survey: Survey) -> SendSummary:
    return await send_content_emails(
        db,
        NotificationType.SURVEY,
        survey.title,
        _summary(survey.description or "A new survey is available for your organization."),
        f"{_frontend()}/surveys/{survey.id}",
    )


_SENDERS = {
    NotificationType.ANNOUNCEMENT: send_announcement_emails,
    NotificationType.BLOG: send_blog_emails,
    NotificationType.ALERT: send_alert_emails,
    NotificationType.SURVEY: send_survey_emails,
}


async def notify_published(db: AsyncSession, content_type: NotificationType, item) -> Optional[SendSummary]:
    """
    Create the in-app notification and send emails after a publish.

    Runs in a savepoint; on error only the fan-out's own writes are rolled
    back and the publish itself still succeeds.
    """
    # The published item must be written before the savepoint opens
    await db.flush()
    try:
        async with db.begin_nested():
            await create_notification(db, content_type, item.title, item.id)
            summary = await _SENDERS[content_type](db, item)
        return summary
    except Exception:
        logger.exception(f"Failed to fan out {content_type.value} notification for {item.id}")
        return None


# ----------------------------------------------------------------------
# Admin-composed emails
# ----------------------------------------------------------------------

async def resolve_custom_recipients(
    db: AsyncSession,
    tags: Iterable[str] = (),
    regions: Iterable[Region] = (),
    organization_ids: Iterable[str] = (),
    exclude_organization_ids: Iterable[str] = ()
) -> list[str]:
    """Addresses of ACTIVE organizations matching the admin's targeting."""
    tags = list(tags)
    regions = list(regions)
    organization_ids = list(organization_ids)
    excluded = set(exclude_organization_ids)

    query = select(Organization).where(Organization.status == OrganizationStatus.ACTIVE)
    if organization_ids:
        query = query.where(Organization.id.in_(organization_ids))
    if regions:
        query = query.where(Organization.region.in_(regions))
    result = await db.execute(query.order_by(Organization.name.asc()))

    emails: list[str] = []
    for org in result.scalars().all():
        if org.id in excluded:
            continue
        if tags and not tags_overlap(org.tags, tags):
            continue
        if org.contact_email not in emails:
            emails.append(org.contact_email)
    return emails


async def deliver_custom_email(recipients: Iterable[str], subject: str, body: str) -> SendSummary:
    recipients = list(recipients)
    summary = SendSummary(total=len(recipients))
    for address in recipients:
        try:
            ok = await email_service.send_custom_email(address, subject, body)
        except Exception as e:
            logger.exception(f"Error emailing {address}")
            summary.errors.append(f"{address}: {e}")
            continue
        if ok:
            summary.sent += 1
        else:
            summary.errors.append(f"{address}: delivery failed")
    return summary
