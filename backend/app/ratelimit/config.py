from dataclasses import dataclass
import os
from typing import Dict


@dataclass(frozen=True)
class RatePolicy:
    """Fixed-window policy: at most ``max_requests`` per ``window_duration_ms``."""

    window_duration_ms: int
    max_requests: int

    @property
    def window_seconds(self) -> int:
        return max(1, -(-self.window_duration_ms // 1000))


@dataclass(frozen=True)
class RateLimitSettings:
    enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    # Empty means the in-process store; set to share quotas across instances
    redis_url: str = os.getenv("RATE_LIMIT_REDIS_URL", "")
    namespace: str = os.getenv("RATE_LIMIT_NAMESPACE", "roomrental")
    memory_shards: int = int(os.getenv("RATE_LIMIT_MEMORY_SHARDS", "16"))
    default_policy: str = os.getenv("RATE_LIMIT_DEFAULT_POLICY", "general")


settings = RateLimitSettings()

FIFTEEN_MINUTES_MS = 15 * 60 * 1000

# name -> (window_duration_ms, max_requests)
_DEFAULT_POLICIES: Dict[str, tuple[int, int]] = {
    # OTP issue/confirm: each request can send an SMS or burn an attempt
    "phone_verification": (FIFTEEN_MINUTES_MS, 5),
    "payments": (FIFTEEN_MINUTES_MS, 100),
    "general": (FIFTEEN_MINUTES_MS, 1000),
}


def _policy_from_env(name: str, window_ms: int, max_requests: int) -> RatePolicy:
    prefix = f"RATE_LIMIT_{name.upper()}"
    return RatePolicy(
        window_duration_ms=int(os.getenv(f"{prefix}_WINDOW_MS", str(window_ms))),
        max_requests=int(os.getenv(f"{prefix}_MAX_REQUESTS", str(max_requests))),
    )


def _build_policies() -> Dict[str, RatePolicy]:
    return {
        name: _policy_from_env(name, window_ms, max_requests)
        for name, (window_ms, max_requests) in _DEFAULT_POLICIES.items()
    }


POLICIES: Dict[str, RatePolicy] = _build_policies()


def get_policy(name: str) -> RatePolicy:
    """Return the named policy, falling back to the default policy."""
    policy = POLICIES.get(name)
    if policy is None:
        policy = POLICIES[settings.default_policy]
    return policy


def reload_config() -> Dict[str, object]:
    """Re-read RATE_LIMIT_* env vars. Returns the merged view for introspection."""
    global settings, POLICIES

    settings = RateLimitSettings(
        enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
        redis_url=os.getenv("RATE_LIMIT_REDIS_URL", ""),
        namespace=os.getenv("RATE_LIMIT_NAMESPACE", "roomrental"),
        memory_shards=int(os.getenv("RATE_LIMIT_MEMORY_SHARDS", "16")),
        default_policy=os.getenv("RATE_LIMIT_DEFAULT_POLICY", "general"),
    )
    POLICIES = _build_policies()
    return {
        "enabled": settings.enabled,
        "backend": "redis" if settings.redis_url else "memory",
        "policies": {name: vars(policy) for name, policy in POLICIES.items()},
    }
