import asyncio
import json
import logging
from datetime import timedelta

import pytest

from crm.core.settings import settings
from crm.services import otp as otp_module
from crm.services import otp_store as store_module
from crm.services.otp import OTPService, failure_message, generate_otp
from crm.services.otp_store import InMemoryOTPStore, OTPRecord, RedisOTPStore, get_otp_store


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex

    async def delete(self, key):
        self.data.pop(key, None)

    async def eval(self, script, numkeys, key, expected):
        if self.data.get(key) == expected:
            del self.data[key]
            return 1
        return 0


class InterleavingStore(InMemoryOTPStore):
    """Yields after every read so concurrent verifies all see the record first."""

    async def get(self, key):
        record = await super().get(key)
        await asyncio.sleep(0)
        return record


def _fixed_codes(monkeypatch, *codes: str) -> None:
    iterator = iter(codes)
    monkeypatch.setattr(otp_module, "generate_otp", lambda length=6: next(iterator))


def test_generate_otp_is_fixed_length_numeric():
    for _ in range(200):
        code = generate_otp(6)
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != "0"
    assert 1 <= int(generate_otp(1)) <= 9
    with pytest.raises(ValueError):
        generate_otp(0)


def test_failure_messages():
    assert failure_message("not_found") == "OTP not found"
    assert failure_message("expired") == "OTP expired"
    assert failure_message("mismatch") == "Invalid OTP"
    assert failure_message("something-else") == "OTP verification failed"


@pytest.mark.asyncio
async def test_round_trip_redeems_exactly_once(otp_service):
    code = await otp_service.issue("export_cases")

    first = await otp_service.verify("export_cases", code)
    second = await otp_service.verify("export_cases", code)

    assert first.ok is True
    assert first.message is None
    assert second.ok is False
    assert second.reason == "not_found"


@pytest.mark.asyncio
async def test_code_expires_after_ttl(otp_service, otp_store, clock):
    code = await otp_service.issue("export_cases")
    clock.advance(301)

    result = await otp_service.verify("export_cases", code)

    assert result.ok is False
    assert result.message == "OTP expired"
    assert len(otp_store) == 0
    assert (await otp_service.verify("export_cases", code)).reason == "not_found"


@pytest.mark.asyncio
async def test_code_is_valid_at_the_ttl_boundary(otp_service, clock):
    code = await otp_service.issue("export_leads")
    clock.advance(300)

    assert (await otp_service.verify("export_leads", code)).ok is True


@pytest.mark.asyncio
async def test_mismatch_keeps_code_for_retry(otp_service, monkeypatch):
    _fixed_codes(monkeypatch, "123456")
    await otp_service.issue("export_customers")

    wrong = await otp_service.verify("export_customers", "654321")
    right = await otp_service.verify("export_customers", " 123456 ")

    assert wrong.reason == "mismatch"
    assert wrong.message == "Invalid OTP"
    assert right.ok is True


@pytest.mark.asyncio
async def test_reissue_replaces_pending_code(otp_service, monkeypatch):
    _fixed_codes(monkeypatch, "111111", "222222")
    await otp_service.issue("export_cases")
    await otp_service.issue("export_cases")

    assert (await otp_service.verify("export_cases", "111111")).reason == "mismatch"
    assert (await otp_service.verify("export_cases", "222222")).ok is True


@pytest.mark.asyncio
async def test_codes_are_scoped_by_purpose(otp_service):
    code = await otp_service.issue("export_cases")

    assert (await otp_service.verify("export_leads", code)).reason == "not_found"
    assert (await otp_service.verify("export_cases", code)).ok is True


@pytest.mark.asyncio
async def test_concurrent_redemption_succeeds_once(clock):
    service = OTPService(InterleavingStore(clock=clock), ttl_seconds=300, clock=clock)
    code = await service.issue("export_cases")

    results = await asyncio.gather(*(service.verify("export_cases", code) for _ in range(5)))

    assert sum(1 for result in results if result.ok) == 1
    assert {result.reason for result in results if not result.ok} == {"not_found"}


@pytest.mark.asyncio
async def test_issued_code_is_never_logged(otp_service, caplog, monkeypatch):
    _fixed_codes(monkeypatch, "987654")
    with caplog.at_level(logging.DEBUG, logger="crm.services.otp"):
        await otp_service.issue("export_cases")
        await otp_service.verify("export_cases", "000000")
        await otp_service.verify("export_cases", "987654")

    assert "987654" not in caplog.text
    assert "reason=mismatch" in caplog.text


@pytest.mark.asyncio
async def test_memory_store_sweeps_only_past_retention_on_set(clock):
    store = InMemoryOTPStore(clock=clock, retention_seconds=600)
    await store.set("stale:owner", OTPRecord("111111", clock() + timedelta(seconds=5)), 5)
    clock.advance(10)

    await store.set("fresh:owner", OTPRecord("222222", clock() + timedelta(seconds=300)), 300)
    assert await store.get("stale:owner") is not None

    clock.advance(600)
    await store.set("fresh:owner", OTPRecord("333333", clock() + timedelta(seconds=300)), 300)

    assert len(store) == 1
    assert await store.get("stale:owner") is None


@pytest.mark.asyncio
async def test_late_verify_reports_expired_after_other_codes_are_issued(otp_service, clock):
    code = await otp_service.issue("export_cases")
    clock.advance(301)
    await otp_service.issue("export_leads")

    first = await otp_service.verify("export_cases", code)
    again = await otp_service.verify("export_cases", code)

    assert first.reason == "expired"
    assert again.reason == "not_found"


@pytest.mark.asyncio
async def test_memory_store_compare_and_delete(clock):
    store = InMemoryOTPStore(clock=clock)
    record = OTPRecord("111111", clock() + timedelta(seconds=300))
    await store.set("k", record, 300)

    assert await store.delete_if_match("k", OTPRecord("999999", record.expires_at)) is False
    assert await store.delete_if_match("k", record) is True
    assert await store.delete_if_match("k", record) is False


@pytest.mark.asyncio
async def test_redis_store_keeps_expired_codes_for_retention_window(clock):
    redis = FakeRedis()
    service = OTPService(RedisOTPStore(redis, retention_seconds=600), ttl_seconds=300, clock=clock)

    code = await service.issue("export_cases")

    stored = json.loads(redis.data["crm:otp:export_cases:owner"])
    assert stored["code"] == code
    assert redis.expiry["crm:otp:export_cases:owner"] == 900

    clock.advance(301)
    assert (await service.verify("export_cases", code)).reason == "expired"
    assert redis.data == {}


@pytest.mark.asyncio
async def test_redis_store_round_trip(clock):
    redis = FakeRedis()
    service = OTPService(RedisOTPStore(redis), ttl_seconds=300, clock=clock)
    code = await service.issue("export_leads")

    assert (await service.verify("export_leads", "000000" if code != "000000" else "111111")).reason == "mismatch"
    assert (await service.verify("export_leads", code)).ok is True
    assert (await service.verify("export_leads", code)).reason == "not_found"


def test_get_otp_store_selects_backend(monkeypatch):
    monkeypatch.setattr(store_module, "_memory_store", None)
    monkeypatch.setattr(settings, "otp_store_backend", "memory")
    first = get_otp_store()
    assert isinstance(first, InMemoryOTPStore)
    assert get_otp_store() is first

    monkeypatch.setattr(settings, "otp_store_backend", "redis")
    monkeypatch.setattr(store_module, "get_redis_client", lambda: FakeRedis())
    assert isinstance(get_otp_store(), RedisOTPStore)
