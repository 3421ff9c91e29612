"""
Tests for the background email jobs.
"""
import pytest
from datetime import timedelta

from coalition.models.base import utcnow
from coalition.models.email_history import EmailHistory, EmailStatus
from coalition.models.survey import Survey
from coalition.models.survey_response import SurveyResponse
from coalition.services.scheduler import process_scheduled_emails, send_survey_deadline_reminders


async def add_scheduled(db_session, minutes: int, recipients: list[str]) -> EmailHistory:
    entry = EmailHistory(
        subject="Quarterly update",
        body="See you at the meeting.",
        recipient_emails=recipients,
        recipient_count=len(recipients),
        status=EmailStatus.SCHEDULED,
        scheduled_for=utcnow() + timedelta(minutes=minutes),
    )
    db_session.add(entry)
    await db_session.flush()
    return entry


async def add_survey(db_session, title: str, due_in_days, **kwargs) -> Survey:
    values = {"is_active": True, "is_published": True, "questions": []}
    values.update(kwargs)
    survey = Survey(
        title=title,
        due_date=utcnow() + timedelta(days=due_in_days) if due_in_days is not None else None,
        **values,
    )
    db_session.add(survey)
    await db_session.flush()
    return survey


class TestScheduledEmails:

    @pytest.mark.asyncio
    async def test_sends_due_emails_only(self, db_session, outbox):
        due = await add_scheduled(db_session, -5, ["a@example.org", "b@example.org"])
        later = await add_scheduled(db_session, 60, ["c@example.org"])

        processed = await process_scheduled_emails(db_session)

        assert processed == 1
        assert due.status == EmailStatus.SENT
        assert due.sent_at is not None
        assert later.status == EmailStatus.SCHEDULED
        assert sorted(m.to for m in outbox) == ["a@example.org", "b@example.org"]

    @pytest.mark.asyncio
    async def test_no_recipients_marks_failed(self, db_session, outbox):
        entry = await add_scheduled(db_session, -1, [])
        assert await process_scheduled_emails(db_session) == 1
        assert entry.status == EmailStatus.FAILED
        assert outbox == []

    @pytest.mark.asyncio
    async def test_nothing_due(self, db_session):
        await add_scheduled(db_session, 30, ["a@example.org"])
        assert await process_scheduled_emails(db_session) == 0


class TestSurveyReminders:

    @pytest.mark.asyncio
    async def test_reminds_non_responders(self, db_session, active_org, other_org, outbox):
        survey = await add_survey(db_session, "Needs Survey", 2)
        db_session.add(SurveyResponse(survey_id=survey.id, organization_id=active_org.id, responses={}))
        await db_session.flush()

        sent = await send_survey_deadline_reminders(db_session, days=3)

        assert sent == 1
        assert [m.to for m in outbox] == [other_org.contact_email]
        assert outbox[0].subject.startswith("Reminder: Needs Survey is due")
        assert survey.reminder_sent_at is not None

        outbox.clear()
        assert await send_survey_deadline_reminders(db_session, days=3) == 0
        assert outbox == []

    @pytest.mark.asyncio
    async def test_skips_surveys_outside_window(self, db_session, active_org, outbox):
        await add_survey(db_session, "Far off", 10)
        await add_survey(db_session, "Past due", -1)
        await add_survey(db_session, "Open ended", None)
        await add_survey(db_session, "Closed", 1, is_active=False)
        await add_survey(db_session, "Draft", 1, is_published=False)

        assert await send_survey_deadline_reminders(db_session, days=3) == 0
        assert outbox == []

    @pytest.mark.asyncio
    async def test_respects_opt_out(self, db_session, active_org, outbox):
        active_org.notify_surveys = False
        await db_session.flush()
        survey = await add_survey(db_session, "Needs Survey", 1)

        assert await send_survey_deadline_reminders(db_session, days=3) == 0
        assert survey.reminder_sent_at is not None
