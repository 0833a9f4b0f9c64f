"""Notification email delivery through Resend."""

import asyncio
from html import escape

import resend
import structlog

from app.config import Settings

logger = structlog.get_logger(__name__)

EMAIL_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #2563eb;">{title}</h2>
  <p>{body}</p>
  <p>Best regards,<br>MedBook Team</p>
</div>
"""


def render_notification_email(title: str, body: str) -> str:
    """Render a notification as the HTML body of an email."""
    return EMAIL_TEMPLATE.format(title=escape(title), body=escape(body))


class EmailService:
    """Sends notification emails with the Resend API."""

    def __init__(self, api_key: str, from_address: str):
        """Initialize service with the Resend key and sender address."""
        resend.api_key = api_key
        self.from_address = from_address

    async def send_email(self, to: str, subject: str, html: str) -> str | None:
        """
        Send one email.

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body

        Returns:
            Resend email ID
        """
        params = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        response = await asyncio.to_thread(resend.Emails.send, params)
        email_id = response.get("id")

        logger.info("email_sent", to=to, subject=subject, email_id=email_id)
        return email_id


def build_email_service(settings: Settings) -> EmailService | None:
    """Email sender from settings, or None when no Resend key is configured."""
    if not settings.resend_api_key:
        return None
    return EmailService(settings.resend_api_key, settings.email_from_address)
