"""Owner-approved one-time codes scoped by purpose.

A code is issued for ``(purpose, identifier)``, delivered out of band, and
redeemed at most once. Issuing again for the same key replaces the pending
code. Failed verifications report one of ``not_found``, ``expired`` or
``mismatch``; only a mismatch keeps the pending code for a retry.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal

from crm.core.settings import settings
from crm.services.otp_store import OTPRecord, OTPStore

logger = logging.getLogger(__name__)

OWNER_IDENTIFIER = "owner"

FailureReason = Literal["not_found", "expired", "mismatch"]

OTP_FAILURE_MESSAGES: dict[str, str] = {
    "not_found": "OTP not found",
    "expired": "OTP expired",
    "mismatch": "Invalid OTP",
}


def failure_message(reason: str | None) -> str:
    return OTP_FAILURE_MESSAGES.get(reason or "", "OTP verification failed")


def generate_otp(length: int = 6) -> str:
    """Uniform random code in ``[10**(length-1), 10**length - 1]``."""
    if length < 1:
        raise ValueError("OTP length must be positive")
    low = 10 ** (length - 1)
    high = 10**length - 1
    return str(low + secrets.randbelow(high - low + 1))


def _otp_key(purpose: str, identifier: str) -> str:
    return f"{purpose}:{identifier}"


@dataclass(frozen=True, slots=True)
class OTPVerification:
    ok: bool
    reason: FailureReason | None = None

    @property
    def message(self) -> str | None:
        return None if self.ok else failure_message(self.reason)


class OTPService:
    def __init__(
        self,
        store: OTPStore,
        *,
        ttl_seconds: int | None = None,
        length: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.otp_ttl_seconds
        self.length = length if length is not None else settings.otp_length
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def issue(self, purpose: str, identifier: str = OWNER_IDENTIFIER) -> str:
        """Store a fresh code for the key, replacing any pending one, and return it."""
        code = generate_otp(self.length)
        record = OTPRecord(code=code, expires_at=self._clock() + timedelta(seconds=self.ttl_seconds))
        await self.store.set(_otp_key(purpose, identifier), record, self.ttl_seconds)
        logger.info("Issued OTP purpose=%s identifier=%s ttl=%ss", purpose, identifier, self.ttl_seconds)
        return code

    async def verify(self, purpose: str, code: str, identifier: str = OWNER_IDENTIFIER) -> OTPVerification:
        key = _otp_key(purpose, identifier)
        record = await self.store.get(key)
        if record is None:
            return self._fail(purpose, "not_found")
        if record.is_expired(self._clock()):
            await self.store.delete(key)
            return self._fail(purpose, "expired")
        if not secrets.compare_digest(record.code.encode(), str(code).strip().encode()):
            return self._fail(purpose, "mismatch")
        # A concurrent redemption of the same code may have won the delete.
        if not await self.store.delete_if_match(key, record):
            return self._fail(purpose, "not_found")
        logger.info("Redeemed OTP purpose=%s identifier=%s", purpose, identifier)
        return OTPVerification(ok=True)

    @staticmethod
    def _fail(purpose: str, reason: FailureReason) -> OTPVerification:
        logger.info("OTP verification failed purpose=%s reason=%s", purpose, reason)
        return OTPVerification(ok=False, reason=reason)
