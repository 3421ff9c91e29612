"""
Admin dashboard aggregation.

Collects counts, recent activity, upcoming survey deadlines, membership
growth and survey response rates in one pass for the admin home page.
"""
from datetime import datetime, timedelta
from typing import Any

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from coalition.models.base import utcnow, ensure_utc
from coalition.models.organization import Organization, OrganizationStatus
from coalition.models.announcement import Announcement
from coalition.models.blog import Blog
from coalition.models.alert import Alert
from coalition.models.survey import Survey
from coalition.models.survey_response import SurveyResponse
from coalition.models.email_subscription import EmailSubscription

RECENT_PER_TYPE = 5
RECENT_TOTAL = 10
GROWTH_MONTHS = 6
DEADLINE_WINDOW_DAYS = 7


async def _count(db: AsyncSession, model, *criteria) -> int:
    query = select(func.count()).select_from(model)
    if criteria:
        query = query.where(*criteria)
    result = await db.execute(query)
    return result.scalar() or 0


async def _newest(db: AsyncSession, model) -> list:
    result = await db.execute(select(model).order_by(model.created.desc()).limit(RECENT_PER_TYPE))
    return list(result.scalars().all())


def _month_starts(now: datetime, months: int) -> list[datetime]:
    """First instant of each of the last ``months`` calendar months, oldest first."""
    current = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return [current - relativedelta(months=offset) for offset in range(months - 1, -1, -1)]


def growth_series(
    org_created: list[datetime],
    subscriber_created: list[datetime],
    now: datetime,
    months: int = GROWTH_MONTHS
) -> list[dict[str, Any]]:
    """Cumulative totals at the end of each month."""
    org_created = [ensure_utc(d) for d in org_created]
    subscriber_created = [ensure_utc(d) for d in subscriber_created]
    series = []
    for start in _month_starts(now, months):
        end = start + relativedelta(months=1)
        series.append({
            "month": start.strftime("%b %y"),
            "organizations": sum(1 for d in org_created if d < end),
            "subscribers": sum(1 for d in subscriber_created if d < end),
        })
    return series


async def get_dashboard_stats(db: AsyncSession) -> dict[str, Any]:
    now = utcnow()

    stats = {
        "total_organizations": await _count(db, Organization),
        "pending_organizations": await _count(db, Organization, Organization.status == OrganizationStatus.PENDING),
        "active_organizations": await _count(db, Organization, Organization.status == OrganizationStatus.ACTIVE),
        "total_announcements": await _count(db, Announcement),
        "total_blogs": await _count(db, Blog),
        "total_surveys": await _count(db, Survey),
        "active_surveys": await _count(db, Survey, Survey.is_active == True),  # noqa: E712
        "total_email_subscribers": await _count(db, EmailSubscription),
        "total_alerts": await _count(db, Alert),
    }

    # Recent activity across content types
    activity = []
    for org in await _newest(db, Organization):
        activity.append({
            "id": org.id,
            "type": "organization",
            "title": org.name,
            "description": (
                "New registration (pending)"
                if org.status == OrganizationStatus.PENDING
                else "Organization registered"
            ),
            "created": ensure_utc(org.created),
        })
    for item in await _newest(db, Announcement):
        activity.append({
            "id": item.id, "type": "announcement", "title": item.title,
            "description": "Announcement published" if item.is_published else "Announcement drafted",
            "created": ensure_utc(item.created),
        })
    for item in await _newest(db, Survey):
        activity.append({
            "id": item.id, "type": "survey", "title": item.title,
            "description": "Survey created", "created": ensure_utc(item.created),
        })
    for item in await _newest(db, Blog):
        activity.append({
            "id": item.id, "type": "blog", "title": item.title,
            "description": f"Blog post by {item.author}", "created": ensure_utc(item.created),
        })
    for item in await _newest(db, Alert):
        activity.append({
            "id": item.id, "type": "alert", "title": item.title,
            "description": f"{item.priority.value.capitalize()} priority alert", "created": ensure_utc(item.created),
        })
    activity.sort(key=lambda a: a["created"], reverse=True)

    # Map pins
    located = await db.execute(
        select(Organization).where(
            Organization.status == OrganizationStatus.ACTIVE,
            Organization.latitude.is_not(None),
            Organization.longitude.is_not(None),
        ).order_by(Organization.name.asc())
    )
    organizations_with_location = [
        {"id": o.id, "name": o.name, "city": o.city, "latitude": o.latitude, "longitude": o.longitude}
        for o in located.scalars().all()
    ]

    # Action items
    deadline_cutoff = now + timedelta(days=DEADLINE_WINDOW_DAYS)
    upcoming = await db.execute(
        select(Survey).where(
            Survey.is_active == True,  # noqa: E712
            Survey.due_date.is_not(None),
            Survey.due_date >= now,
            Survey.due_date <= deadline_cutoff,
        ).order_by(Survey.due_date.asc()).limit(5)
    )
    recent_responses = await db.execute(
        select(SurveyResponse)
        .where(SurveyResponse.submitted_date >= now - timedelta(days=7))
        .order_by(SurveyResponse.submitted_date.desc())
        .limit(10)
    )
    action_items = {
        "pending_approvals": stats["pending_organizations"],
        "upcoming_deadlines": [
            {"id": s.id, "title": s.title, "due_date": ensure_utc(s.due_date)}
            for s in upcoming.scalars().all()
        ],
        "recent_survey_responses": [
            {
                "id": r.id,
                "survey_title": r.survey.title,
                "organization_name": r.organization.name,
                "submitted_date": ensure_utc(r.submitted_date),
            }
            for r in recent_responses.scalars().all()
        ],
    }

    # Growth
    org_dates = await db.execute(select(Organization.created))
    sub_dates = await db.execute(select(EmailSubscription.created))
    growth_data = growth_series(list(org_dates.scalars().all()), list(sub_dates.scalars().all()), now)

    # Survey response rates
    active_orgs = stats["active_organizations"]
    published = await db.execute(
        select(Survey).where(Survey.is_published == True).order_by(Survey.created.desc())  # noqa: E712
    )
    survey_response_rates = []
    for survey in published.scalars().all():
        responded = await _count(db, SurveyResponse, SurveyResponse.survey_id == survey.id)
        survey_response_rates.append({
            "id": survey.id,
            "title": survey.title,
            "total_sent": active_orgs,
            "total_responded": responded,
            "response_rate": round(responded / active_orgs * 100) if active_orgs else 0,
        })

    return {
        "stats": stats,
        "recent_activity": activity[:RECENT_TOTAL],
        "organizations_with_location": organizations_with_location,
        "action_items": action_items,
        "growth_data": growth_data,
        "survey_response_rates": survey_response_rates,
    }
