"""
Email Service
Render and send transactional emails to attendees
"""

from pathlib import Path
from typing import NamedTuple, Optional

import aiosmtplib
import structlog
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from app.config import settings

logger = structlog.get_logger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

SUBJECTS = {
    "registration_confirmation": "You're registered: {{ seminar_title }}",
    "makeup_approved": "Makeup request approved - {{ seminar_title }}",
    "makeup_denied": "Makeup request update - {{ seminar_title }}",
    "session_reminder": "Reminder: Session {{ session_number }} is tomorrow",
    "certificate_ready": "Your CE certificate is ready",
}

env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


class EmailResult(NamedTuple):
    success: bool
    error: Optional[str] = None


class EmailService:
    """Service for sending emails"""

    @staticmethod
    def render(template: str, variables: dict) -> tuple:
        """
        Render subject, plain-text and HTML bodies for a template

        Raises:
            KeyError: If the template has no subject
            TemplateNotFound: If the body files are missing
        """
        context = {"app_name": settings.APP_NAME, "app_url": settings.APP_URL, **variables}
        subject = env.from_string(SUBJECTS[template]).render(**context)
        html_body = env.get_template(f"{template}.html").render(**context)
        text_body = env.get_template(f"{template}.txt").render(**context)
        return subject, text_body, html_body

    @staticmethod
    async def send(template: str, recipient: str, variables: Optional[dict] = None) -> EmailResult:
        """
        Send a templated email

        Args:
            template: Template name (see SUBJECTS)
            recipient: Recipient email
            variables: Values for the template

        Returns:
            EmailResult; failures are reported, never raised
        """
        if not recipient:
            return EmailResult(False, "Recipient email is missing")

        try:
            subject, text_body, html_body = EmailService.render(template, variables or {})
        except (KeyError, TemplateNotFound) as e:
            logger.error("email_template_missing", template=template, error=str(e))
            return EmailResult(False, f"Unknown email template: {template}")

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = settings.EMAIL_FROM
        message["To"] = recipient
        if settings.EMAIL_REPLY_TO:
            message["Reply-To"] = settings.EMAIL_REPLY_TO

        message.attach(MIMEText(text_body, "plain"))
        message.attach(MIMEText(html_body, "html"))

        if not (settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD):
            # Development mode - no SMTP configured
            logger.info("email_dev_mode", template=template, to=recipient, subject=subject)
            return EmailResult(True)

        try:
            async with aiosmtplib.SMTP(hostname=settings.SMTP_HOST, port=settings.SMTP_PORT) as smtp:
                await smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                await smtp.sendmail(settings.EMAIL_FROM, recipient, message.as_string())
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning("email_send_failed", template=template, to=recipient, error=str(e))
            return EmailResult(False, str(e))

        logger.info("email_sent", template=template, to=recipient)
        return EmailResult(True)


# Create singleton instance
email_service = EmailService()
