from types import SimpleNamespace

import pytest
from starlette.requests import Request
from starlette.responses import Response

from app.core.exceptions import RateLimitedException
from app.ratelimit import config as rl_config, dependency as rl_dep
from app.ratelimit.config import RatePolicy
from app.ratelimit.store import MemoryRateLimitStore


def _make_request(headers=None, client=("10.1.2.3", 5555)):
    headers = headers or {}
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/v1/verify-phone",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


@pytest.fixture
def enabled_limits(monkeypatch):
    monkeypatch.setattr(
        rl_config, "settings", SimpleNamespace(enabled=True, default_policy="general")
    )
    store = MemoryRateLimitStore()
    rl_dep.set_store(store)
    yield store
    rl_dep.set_store(None)


def test_unknown_policy_is_rejected_at_declaration():
    with pytest.raises(KeyError):
        rl_dep.rate_limit("no-such-policy")


@pytest.mark.asyncio
async def test_disabled_limits_skip_store(monkeypatch):
    monkeypatch.setattr(rl_config, "settings", SimpleNamespace(enabled=False))
    calls = []

    class _Store(MemoryRateLimitStore):
        def admit(self, key, config):
            calls.append(key)
            return False

    rl_dep.set_store(_Store())
    try:
        res = Response()
        await rl_dep.rate_limit("general")(_make_request(), res)
    finally:
        rl_dep.set_store(None)

    assert calls == []
    assert "X-RateLimit-Limit" not in res.headers


@pytest.mark.asyncio
async def test_admitted_request_gets_policy_headers(enabled_limits):
    res = Response()
    await rl_dep.rate_limit("payments")(_make_request(), res)

    assert res.headers["X-RateLimit-Policy"] == "payments"
    assert res.headers["X-RateLimit-Limit"] == "100"
    assert res.headers["X-RateLimit-Window"] == "900"
    window = enabled_limits.window_for("payments:10.1.2.3")
    assert window is not None and window.count == 1


@pytest.mark.asyncio
async def test_exhausted_quota_raises_with_retry_after(enabled_limits, monkeypatch):
    monkeypatch.setitem(
        rl_config.POLICIES,
        "phone_verification",
        RatePolicy(window_duration_ms=60_000, max_requests=2),
    )
    dep = rl_dep.rate_limit("phone_verification")

    await dep(_make_request(), Response())
    await dep(_make_request(), Response())
    with pytest.raises(RateLimitedException) as exc_info:
        await dep(_make_request(), Response())

    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 60
    assert exc_info.value.headers == {"Retry-After": "60"}


@pytest.mark.asyncio
async def test_quota_is_per_client_and_per_policy(enabled_limits, monkeypatch):
    monkeypatch.setitem(
        rl_config.POLICIES,
        "phone_verification",
        RatePolicy(window_duration_ms=60_000, max_requests=1),
    )
    dep = rl_dep.rate_limit("phone_verification")

    await dep(_make_request(client=("10.0.0.1", 1)), Response())
    await dep(_make_request(client=("10.0.0.2", 1)), Response())
    with pytest.raises(RateLimitedException):
        await dep(_make_request(client=("10.0.0.1", 1)), Response())

    # A different policy keeps its own window for the same client
    await rl_dep.rate_limit("general")(_make_request(client=("10.0.0.1", 1)), Response())


def test_store_built_from_settings_is_memory_without_redis(monkeypatch):
    monkeypatch.setattr(
        rl_config, "settings", SimpleNamespace(enabled=True, redis_url="", memory_shards=4)
    )
    rl_dep.set_store(None)
    try:
        store = rl_dep.get_store()
        assert isinstance(store, MemoryRateLimitStore)
        assert rl_dep.get_store() is store
    finally:
        rl_dep.set_store(None)
