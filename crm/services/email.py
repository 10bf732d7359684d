"""SMTP email delivery for owner notifications."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

import anyio

from crm.core.settings import settings

logger = logging.getLogger(__name__)


class EmailNotConfigured(RuntimeError):
    pass


def _build_message(to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = formataddr((settings.email_from_name, settings.smtp_username or ""))
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    return message


def _deliver(message: EmailMessage) -> None:
    if not (settings.smtp_host and settings.smtp_username and settings.smtp_password):
        raise EmailNotConfigured("SMTP settings are incomplete")

    smtp_cls = smtplib.SMTP_SSL if settings.smtp_use_ssl else smtplib.SMTP
    with smtp_cls(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as server:
        if not settings.smtp_use_ssl:
            server.ehlo()
            server.starttls()
            server.ehlo()
        server.login(settings.smtp_username, settings.smtp_password)
        server.send_message(message)


async def send_email(to: str, subject: str, body: str) -> tuple[bool, str | None]:
    """Send a plain-text email without blocking the event loop.

    Delivery problems are logged and reported through the return value; they
    never raise to the caller.
    """
    message = _build_message(to, subject, body)
    try:
        await anyio.to_thread.run_sync(_deliver, message)
    except (EmailNotConfigured, smtplib.SMTPException, OSError) as exc:
        logger.warning("Email delivery to %s failed: %s", to, exc)
        return False, str(exc)
    logger.info("Email sent to %s subject=%r", to, subject)
    return True, None
