import pytest
from fastapi import HTTPException

from crm.core.settings import settings
from crm.services.login_guard import LoginGuard
from tests.conftest import FakeClock


@pytest.fixture
def guard(monkeypatch):
    monkeypatch.setattr(settings, "login_attempt_limit", 3)
    monkeypatch.setattr(settings, "login_lockout_minutes", 15)
    clock = FakeClock()
    return LoginGuard(clock=clock), clock


def test_lock_applies_on_the_failure_that_reaches_the_limit(guard):
    login_guard, _ = guard
    login_guard.record_failure("a@example.com")
    login_guard.record_failure("a@example.com")

    with pytest.raises(HTTPException) as exc:
        login_guard.record_failure("a@example.com")

    assert exc.value.status_code == 429
    with pytest.raises(HTTPException):
        login_guard.ensure_allowed("a@example.com")
    login_guard.ensure_allowed("b@example.com")


def test_lock_expires_after_window(guard):
    login_guard, clock = guard
    login_guard.record_failure("a@example.com")
    login_guard.record_failure("a@example.com")
    with pytest.raises(HTTPException):
        login_guard.record_failure("a@example.com")

    clock.advance(15 * 60 + 1)

    login_guard.ensure_allowed("a@example.com")


def test_old_failures_fall_out_of_window(guard):
    login_guard, clock = guard
    login_guard.record_failure("a@example.com")
    login_guard.record_failure("a@example.com")
    clock.advance(16 * 60)

    login_guard.record_failure("a@example.com")

    login_guard.ensure_allowed("a@example.com")


def test_success_clears_failures(guard):
    login_guard, _ = guard
    login_guard.record_failure("a@example.com")
    login_guard.record_failure("a@example.com")
    login_guard.record_success("a@example.com")

    login_guard.record_failure("a@example.com")

    login_guard.ensure_allowed("a@example.com")
