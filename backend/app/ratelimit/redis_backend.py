import logging

import redis

from . import config as rl_config
from .config import RatePolicy
from .metrics import rl_eval_errors
from .store import RateLimitStore

logger = logging.getLogger(__name__)


def get_redis(url: str | None = None):
    return redis.Redis.from_url(url or rl_config.settings.redis_url, decode_responses=True)


# Lua script implementing a fixed window counter
# KEYS[1] = storage key
# ARGV[1] = window_ms
# Returns: request count in the current window (including this one)
FIXED_WINDOW_LUA = r"""
local current = redis.call('INCR', KEYS[1])
if current == 1 then
  redis.call('PEXPIRE', KEYS[1], tonumber(ARGV[1]))
end
return current
"""


class RedisRateLimitStore(RateLimitStore):
    """
    Fixed-window counters shared by every instance pointing at the same Redis.

    INCR and PEXPIRE run in one Lua script, so the first request of a window
    always sets its expiry and concurrent requests see a consistent count.
    Expired windows are dropped by Redis itself.
    """

    def __init__(self, client=None, namespace: str | None = None) -> None:
        self._redis = client if client is not None else get_redis()
        self._namespace = namespace or rl_config.settings.namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:rl:{key}"

    def admit(self, key: str, config: RatePolicy) -> bool:
        try:
            count = int(
                self._redis.eval(FIXED_WINDOW_LUA, 1, self._key(key), config.window_duration_ms)
            )
        except redis.RedisError as exc:
            # Fail open while Redis is unavailable
            policy = key.split(":", 1)[0]
            rl_eval_errors.labels(policy=policy).inc()
            logger.warning("Rate limit store unavailable, admitting request: %s", exc)
            return True
        return count <= config.max_requests

    def reset(self) -> None:
        for redis_key in self._redis.scan_iter(match=f"{self._namespace}:rl:*"):
            self._redis.delete(redis_key)


__all__ = ["get_redis", "FIXED_WINDOW_LUA", "RedisRateLimitStore"]
