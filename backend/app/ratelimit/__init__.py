"""Fixed-window request rate limiting.

The default store is in-process: each instance keeps its own quota. Point
``RATE_LIMIT_REDIS_URL`` at a shared Redis for a deployment-wide quota.
"""

from .config import POLICIES, RatePolicy, get_policy
from .dependency import get_store, rate_limit, set_store
from .identity import resolve_client_key
from .store import MemoryRateLimitStore, RateLimitStore

__all__ = [
    "POLICIES",
    "RatePolicy",
    "get_policy",
    "rate_limit",
    "get_store",
    "set_store",
    "resolve_client_key",
    "RateLimitStore",
    "MemoryRateLimitStore",
]
