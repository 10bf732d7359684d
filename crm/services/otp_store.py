"""Key-value backends for one-time codes.

Every backend exposes the same four coroutines so the protocol in
``crm.services.otp`` never touches storage details. ``delete_if_match`` is the
compare-and-delete primitive that makes redemption at-most-once.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from redis.asyncio import Redis

from crm.core.settings import settings
from crm.utils.redis_client import get_redis_client, redis_key


@dataclass(frozen=True, slots=True)
class OTPRecord:
    code: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def to_json(self) -> str:
        return json.dumps({"code": self.code, "expires_at": self.expires_at.isoformat()})

    @classmethod
    def from_json(cls, raw: str) -> "OTPRecord":
        data = json.loads(raw)
        return cls(code=str(data["code"]), expires_at=datetime.fromisoformat(data["expires_at"]))


class OTPStore(Protocol):
    async def get(self, key: str) -> OTPRecord | None: ...

    async def set(self, key: str, record: OTPRecord, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def delete_if_match(self, key: str, record: OTPRecord) -> bool: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryOTPStore:
    """Process-local store; codes do not survive a restart or span instances."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow, retention_seconds: int = 600) -> None:
        self._records: dict[str, OTPRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._retention = timedelta(seconds=retention_seconds)

    def __len__(self) -> int:
        return len(self._records)

    async def get(self, key: str) -> OTPRecord | None:
        with self._lock:
            return self._records.get(key)

    async def set(self, key: str, record: OTPRecord, ttl_seconds: int) -> None:
        with self._lock:
            self._purge_expired_locked()
            self._records[key] = record

    async def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    async def delete_if_match(self, key: str, record: OTPRecord) -> bool:
        with self._lock:
            if self._records.get(key) != record:
                return False
            del self._records[key]
            return True

    def _purge_expired_locked(self) -> None:
        # Expired records stay for the retention window so a late verify reports "expired".
        cutoff = self._clock() - self._retention
        for stale in [key for key, value in self._records.items() if value.is_expired(cutoff)]:
            del self._records[stale]


_COMPARE_AND_DELETE = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisOTPStore:
    """Shared store for multi-instance deployments.

    Keys outlive ``ttl_seconds`` by ``retention_seconds`` so a late verify can
    still be told the code expired rather than never existed.
    """

    def __init__(self, redis: Redis, retention_seconds: int = 600) -> None:
        self._redis = redis
        self._retention_seconds = retention_seconds

    @staticmethod
    def _key(key: str) -> str:
        return redis_key("otp", key)

    async def get(self, key: str) -> OTPRecord | None:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        return OTPRecord.from_json(raw)

    async def set(self, key: str, record: OTPRecord, ttl_seconds: int) -> None:
        await self._redis.set(self._key(key), record.to_json(), ex=ttl_seconds + self._retention_seconds)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def delete_if_match(self, key: str, record: OTPRecord) -> bool:
        deleted = await self._redis.eval(_COMPARE_AND_DELETE, 1, self._key(key), record.to_json())
        return bool(deleted)


_memory_store: InMemoryOTPStore | None = None


def get_otp_store() -> OTPStore:
    """Return the configured backend; the in-memory store is a process singleton."""
    global _memory_store
    if settings.otp_store_backend == "redis":
        return RedisOTPStore(get_redis_client(), retention_seconds=settings.otp_expired_retention_seconds)
    if _memory_store is None:
        _memory_store = InMemoryOTPStore(retention_seconds=settings.otp_expired_retention_seconds)
    return _memory_store
