"""
Email delivery for coalition notifications.

Two backends are supported:

- ``log``: messages are written to the application log and kept in an
  in-memory outbox (development and tests).
- ``ses``: messages are sent through AWS SES with boto3.
"""
import asyncio
import html as html_lib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from coalition.core.config import settings

logger = logging.getLogger(__name__)

BRAND = "Tennessee Coalition for Better Aging"


class EmailDeliveryError(Exception):
    """Raised when the provider rejects a message."""


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    body: str
    html: Optional[str] = None
    reply_to: Optional[str] = None


def _layout(title: str, inner: str, footer: str = "") -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <style>
        body {{ font-family: 'Segoe UI', Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ text-align: center; padding: 20px 0; font-size: 22px; font-weight: bold; color: #1f4e79; }}
        .content {{ background: #f8fafc; border-radius: 12px; padding: 30px; margin: 20px 0; }}
        .button {{ display: inline-block; background: #1f4e79; color: white !important; padding: 12px 24px; text-decoration: none; border-radius: 8px; font-weight: 600; }}
        .footer {{ text-align: center; color: #64748b; font-size: 13px; padding: 20px 0; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">{BRAND}</div>
        <div class="content">
            <h2>{html_lib.escape(title)}</h2>
            {inner}
        </div>
        <div class="footer">{footer}</div>
    </div>
</body>
</html>
"""


def _paragraphs(text: str) -> str:
    return "".join(
        f"<p>{html_lib.escape(p).replace(chr(10), '<br>')}</p>"
        for p in text.split("\n\n") if p.strip()
    )


class EmailService:
    """
    Email service for sending notifications.

    The backend is chosen by ``EMAIL_BACKEND``. In ``log`` mode every message
    is appended to ``outbox`` instead of leaving the process.
    """

    def __init__(self, backend: Optional[str] = None):
        self.backend = backend or settings.EMAIL_BACKEND
        self.from_email = settings.SES_FROM_EMAIL
        self.reply_to = settings.SES_REPLY_TO_EMAIL
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")
        self.outbox: list[OutgoingEmail] = []
        self._ses = None

    def _ses_client(self):
        if self._ses is None:
            self._ses = boto3.client(
                "ses",
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            )
        return self._ses

    def _send_ses(self, message: OutgoingEmail) -> None:
        body = {"Text": {"Data": message.body, "Charset": "UTF-8"}}
        if message.html:
            body["Html"] = {"Data": message.html, "Charset": "UTF-8"}
        reply_to = message.reply_to or self.reply_to
        kwargs = {
            "Source": self.from_email,
            "Destination": {"ToAddresses": [message.to]},
            "Message": {
                "Subject": {"Data": message.subject, "Charset": "UTF-8"},
                "Body": body,
            },
        }
        if reply_to:
            kwargs["ReplyToAddresses"] = [reply_to]
        try:
            self._ses_client().send_email(**kwargs)
        except (BotoCoreError, ClientError) as e:
            raise EmailDeliveryError(str(e)) from e

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html: Optional[str] = None,
        reply_to: Optional[str] = None
    ) -> bool:
        """
        Send an email.

        Args:
            to: Recipient email address
            subject: Email subject line
            body: Plain text body
            html: Optional HTML body
            reply_to: Optional Reply-To address

        Returns:
            True if the email was sent or logged
        """
        message = OutgoingEmail(to=to, subject=subject, body=body, html=html, reply_to=reply_to)
        if self.backend == "ses":
            try:
                await asyncio.to_thread(self._send_ses, message)
            except EmailDeliveryError as e:
                logger.error(f"Failed to send email to {to}: {e}")
                return False
            logger.info(f"Email sent: to={to}, subject={subject}")
            return True

        self.outbox.append(message)
        logger.info(f"Email logged: to={to}, subject={subject}")
        return True

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def send_registration_notice(self, organization_name: str, organization_email: str) -> bool:
        """Tell the coalition admins a new organization is waiting for approval."""
        review_url = f"{self.frontend_url}/admin/organizations"
        subject = f"New organization registration: {organization_name}"
        body = (
            f"{organization_name} ({organization_email}) registered and is waiting for approval.\n\n"
            f"Review pending organizations: {review_url}"
        )
        inner = _paragraphs(body.split("\n\n")[0]) + f'<p><a class="button" href="{review_url}">Review registrations</a></p>'
        return await self.send_email(settings.ADMIN_EMAIL, subject, body, _layout("New registration", inner))

    async def send_approval_email(self, to: str, organization_name: str) -> bool:
        login_url = f"{self.frontend_url}/login"
        subject = f"Welcome to the {BRAND}"
        body = (
            f"Hello {organization_name},\n\n"
            "Your membership application has been approved. You can now sign in to read alerts, "
            "answer surveys and manage your organization profile.\n\n"
            f"Sign in: {login_url}"
        )
        inner = _paragraphs("\n\n".join(body.split("\n\n")[:2])) + f'<p><a class="button" href="{login_url}">Sign in</a></p>'
        return await self.send_email(to, subject, body, _layout("Membership approved", inner))

    async def send_decline_email(self, to: str, organization_name: str, reason: Optional[str] = None) -> bool:
        subject = "Update on your membership application"
        body = (
            f"Hello {organization_name},\n\n"
            "Thank you for your interest in the coalition. We are unable to approve your "
            "membership application at this time."
        )
        if reason:
            body += f"\n\nReason: {reason}"
        return await self.send_email(to, subject, body, _layout("Membership application", _paragraphs(body)))

    async def send_contact_form(self, name: str, email: str, message: str, subject: Optional[str] = None) -> bool:
        """Forward a public contact form submission to the admin inbox."""
        subject_line = f"Contact form: {subject or 'New message'}"
        body = f"From: {name} <{email}>\n\n{message}"
        return await self.send_email(
            settings.ADMIN_EMAIL,
            subject_line,
            body,
            _layout("New contact form message", _paragraphs(body)),
            reply_to=email,
        )

    async def send_content_notification(
        self,
        to: str,
        content_type: str,
        title: str,
        summary: str,
        link: str,
        unsubscribe_url: str
    ) -> bool:
        """Announce newly published content to one recipient."""
        label = content_type.capitalize()
        subject = f"New {label.lower()}: {title}"
        body = (
            f"{summary}\n\n"
            f"Read more: {link}\n\n"
            f"Manage your email preferences: {unsubscribe_url}"
        )
        inner = (
            f"<h3>{html_lib.escape(title)}</h3>"
            + _paragraphs(summary)
            + f'<p><a class="button" href="{link}">View {label.lower()}</a></p>'
        )
        footer = f'<a href="{unsubscribe_url}">Manage email preferences</a>'
        return await self.send_email(to, subject, body, _layout(f"New {label}", inner, footer))

    async def send_custom_email(self, to: str, subject: str, body: str) -> bool:
        settings_url = f"{self.frontend_url}/settings"
        footer = f'<a href="{settings_url}">Manage email preferences</a>'
        return await self.send_email(to, subject, body, _layout(subject, _paragraphs(body), footer))

    async def send_survey_reminder(self, to: str, survey_title: str, due_date: datetime, survey_id: str) -> bool:
        survey_url = f"{self.frontend_url}/surveys/{survey_id}"
        formatted = due_date.strftime("%A, %B %d, %Y")
        subject = f"Reminder: {survey_title} is due {formatted}"
        body = (
            f"Your organization has not yet responded to \"{survey_title}\".\n\n"
            f"Responses are due {formatted}.\n\n"
            f"Respond now: {survey_url}"
        )
        inner = _paragraphs("\n\n".join(body.split("\n\n")[:2])) + f'<p><a class="button" href="{survey_url}">Open survey</a></p>'
        return await self.send_email(to, subject, body, _layout("Survey reminder", inner))


# Singleton instance
email_service = EmailService()
