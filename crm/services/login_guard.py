"""Per-account lockout after repeated failed logins.

State is process local; the slowapi limiter on the login route already caps
request volume per client address across instances.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import HTTPException, status

from crm.core.settings import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoginGuard:
    def __init__(self, clock: Clock = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._failures: dict[str, deque[datetime]] = {}
        self._locked_until: dict[str, datetime] = {}

    @staticmethod
    def _window() -> timedelta:
        return timedelta(minutes=settings.login_lockout_minutes)

    def ensure_allowed(self, email: str) -> None:
        now = self._clock()
        with self._lock:
            until = self._locked_until.get(email)
            if until is None:
                return
            if until > now:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail="Too many login attempts; try later",
                )
            del self._locked_until[email]

    def record_failure(self, email: str) -> None:
        """Count a failed attempt; the attempt that reaches the limit locks the account."""
        now = self._clock()
        window = self._window()
        with self._lock:
            failures = self._failures.setdefault(email, deque())
            while failures and now - failures[0] > window:
                failures.popleft()
            failures.append(now)
            if len(failures) < settings.login_attempt_limit:
                return
            self._locked_until[email] = now + window
            del self._failures[email]
        logger.warning("Login locked for %s after %s failures", email, settings.login_attempt_limit)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Account temporarily locked due to failed attempts",
        )

    def record_success(self, email: str) -> None:
        with self._lock:
            self._failures.pop(email, None)
            self._locked_until.pop(email, None)

    def reset(self) -> None:
        with self._lock:
            self._failures.clear()
            self._locked_until.clear()


login_guard = LoginGuard()
