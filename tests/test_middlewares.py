import pytest

from crm.middlewares.trust_proxies import TrustedProxiesMiddleware


async def _run(proxies_count: int, forwarded: str | None) -> tuple[str, int]:
    seen = {}

    async def app(scope, receive, send):
        seen["client"] = scope["client"]

    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded is not None else []
    scope = {"type": "http", "headers": headers, "client": ("10.0.0.1", 4321)}
    await TrustedProxiesMiddleware(app, proxies_count=proxies_count)(scope, None, None)
    return seen["client"]


@pytest.mark.asyncio
async def test_single_proxy_uses_last_hop():
    assert await _run(1, "203.0.113.9") == ("203.0.113.9", 4321)


@pytest.mark.asyncio
async def test_spoofed_left_entries_are_ignored():
    assert await _run(1, "6.6.6.6, 198.51.100.7") == ("198.51.100.7", 4321)
    assert await _run(2, "6.6.6.6, 198.51.100.7, 10.0.0.2") == ("198.51.100.7", 4321)


@pytest.mark.asyncio
async def test_header_is_not_trusted_without_proxies():
    assert await _run(0, "203.0.113.9") == ("10.0.0.1", 4321)
    assert await _run(1, None) == ("10.0.0.1", 4321)
