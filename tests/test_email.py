import smtplib

import pytest

from crm.core.settings import settings
from crm.services import email as email_module
from crm.services.exports import ExportRequestContext, build_owner_notification, notify_owner


@pytest.fixture
def smtp_settings(monkeypatch):
    monkeypatch.setattr(settings, "smtp_username", "crm@example.com")
    monkeypatch.setattr(settings, "smtp_password", "app-password")
    monkeypatch.setattr(settings, "email_from_name", "Loan CRM Portal")


@pytest.mark.asyncio
async def test_send_email_delivers_message(monkeypatch, smtp_settings):
    delivered = []
    monkeypatch.setattr(email_module, "_deliver", delivered.append)

    sent, error = await email_module.send_email("owner@example.com", "Hello", "Body text")

    assert (sent, error) == (True, None)
    message = delivered[0]
    assert message["To"] == "owner@example.com"
    assert message["Subject"] == "Hello"
    assert message["From"] == "Loan CRM Portal <crm@example.com>"
    assert message.get_content().strip() == "Body text"


@pytest.mark.asyncio
async def test_send_email_reports_smtp_failure(monkeypatch, smtp_settings):
    def _boom(message):
        raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    monkeypatch.setattr(email_module, "_deliver", _boom)

    sent, error = await email_module.send_email("owner@example.com", "Hello", "Body")

    assert sent is False
    assert "bad credentials" in error


@pytest.mark.asyncio
async def test_send_email_without_smtp_credentials(monkeypatch):
    monkeypatch.setattr(settings, "smtp_username", None)
    monkeypatch.setattr(settings, "smtp_password", None)

    sent, error = await email_module.send_email("owner@example.com", "Hello", "Body")

    assert sent is False
    assert error == "SMTP settings are incomplete"


def test_owner_notification_contents():
    ctx = ExportRequestContext(
        requester_name="Asha",
        requester_email="asha@example.com",
        requester_role="manager",
        requester_ip="203.0.113.9",
        purpose="export_cases",
    )

    subject, body = build_owner_notification(ctx, "482913", 300)

    assert subject == "OTP Request: export_cases"
    assert body.startswith("OTP for EXPORT CASES: 482913\n")
    assert "Role: manager" in body
    assert "IP: 203.0.113.9" in body
    assert "Valid for 5 minutes." in body


@pytest.mark.asyncio
async def test_notify_owner_never_raises(monkeypatch):
    calls = []

    async def failing_send(to, subject, body):
        calls.append(to)
        return False, "timeout"

    monkeypatch.setattr(settings, "owner_email", "owner@example.com")
    assert await notify_owner("s", "b", send=failing_send) is False
    assert calls == ["owner@example.com"]

    monkeypatch.setattr(settings, "owner_email", None)
    assert await notify_owner("s", "b", send=failing_send) is False
    assert calls == ["owner@example.com"]
