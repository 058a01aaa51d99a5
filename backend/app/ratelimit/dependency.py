from __future__ import annotations

import logging
import threading
from typing import Optional

from fastapi import Request, Response

from ..core.exceptions import RateLimitedException
from . import config as rl_config
from .headers import set_policy_headers
from .identity import resolve_client_key
from .metrics import rl_decisions
from .store import MemoryRateLimitStore, RateLimitStore

logger = logging.getLogger(__name__)

_store: Optional[RateLimitStore] = None
_store_lock = threading.Lock()


def _build_store() -> RateLimitStore:
    if rl_config.settings.redis_url:
        from .redis_backend import RedisRateLimitStore

        logger.info("Rate limiting backed by Redis (shared quota)")
        return RedisRateLimitStore()
    logger.info(
        "Rate limiting backed by process memory: quotas are per instance, "
        "set RATE_LIMIT_REDIS_URL to share them"
    )
    return MemoryRateLimitStore(shards=rl_config.settings.memory_shards)


def get_store() -> RateLimitStore:
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = _build_store()
    return _store


def set_store(store: Optional[RateLimitStore]) -> None:
    """Swap the process-wide store (None rebuilds it lazily from settings)."""
    global _store
    with _store_lock:
        _store = store


def rate_limit(policy_name: str):
    # FastAPI dependency to attach on routes
    if policy_name not in rl_config.POLICIES:
        raise KeyError(f"Unknown rate limit policy: {policy_name}")

    async def dep(request: Request, response: Response) -> None:
        if not rl_config.settings.enabled:
            return

        policy = rl_config.get_policy(policy_name)
        client_key = resolve_client_key(request)
        admitted = get_store().admit(f"{policy_name}:{client_key}", policy)

        set_policy_headers(response, policy_name, policy.max_requests, policy.window_seconds)

        if admitted:
            rl_decisions.labels(policy=policy_name, action="allow").inc()
            return

        rl_decisions.labels(policy=policy_name, action="block").inc()
        logger.warning("Rate limit exceeded for %s on policy %s", client_key, policy_name)
        raise RateLimitedException(
            message="Too many requests, please try again later",
            retry_after=policy.window_seconds,
            hint="Wait before retrying",
        )

    return dep
