from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from sqlalchemy import text

from crm import __version__
from crm.core.settings import settings
from crm.db.session import engine
from crm.utils.redis_client import get_redis_client

Check = Callable[[], Awaitable[None]]


async def check_database() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def check_redis() -> None:
    await get_redis_client().ping()


def uses_redis() -> bool:
    """Redis is a hard dependency only for the shared OTP store or limiter."""
    limiter_storage = settings.rate_limit_storage_uri or settings.redis_url
    return settings.otp_store_backend == "redis" or limiter_storage.startswith(("redis://", "rediss://"))


def readiness_checks() -> dict[str, Check]:
    checks: dict[str, Check] = {"database": check_database}
    if uses_redis():
        checks["redis"] = check_redis
    return checks


async def _run(check: Check) -> dict[str, Any]:
    started = time.perf_counter()
    try:
        await check()
    except Exception as exc:  # reported, not raised: readiness must always answer
        return {"status": "error", "error": str(exc)}
    return {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 2)}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def live_payload() -> dict[str, str]:
    return {"status": "ok", "timestamp": _now()}


async def ready_payload() -> dict[str, Any]:
    results = {name: await _run(check) for name, check in readiness_checks().items()}
    ready = all(result["status"] == "ok" for result in results.values())
    return {
        "status": "ok" if ready else "degraded",
        "ready": ready,
        "environment": settings.environment,
        "version": __version__,
        "otp_store": settings.otp_store_backend,
        "timestamp": _now(),
        "checks": results,
    }
