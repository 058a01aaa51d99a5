"""Fixed-window admission stores.

``MemoryRateLimitStore`` keeps its windows in this process only. Every
instance behind a load balancer therefore enforces its own quota, so the
effective global limit is ``max_requests`` times the number of instances.
Configure ``RATE_LIMIT_REDIS_URL`` to share one quota through
``RedisRateLimitStore`` instead. Neither store survives a Redis flush or a
process restart; windows are ephemeral.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple
import zlib

from .config import RatePolicy

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class RateLimitStore(ABC):
    """Admission control keyed by client identity."""

    @abstractmethod
    def admit(self, key: str, config: RatePolicy) -> bool:
        """Count one request for ``key``; True if it fits in the current window."""

    def reset(self) -> None:
        """Forget all windows."""


@dataclass
class RateWindow:
    count: int
    reset_at_ms: int


class MemoryRateLimitStore(RateLimitStore):
    """
    In-process fixed-window counters.

    Windows are spread over ``shards`` dicts, each guarded by its own lock;
    the read-compare-increment for a key happens entirely under its shard's
    lock. Expired windows are swept on every admission check.
    """

    def __init__(self, shards: int = 16, clock: Optional[Clock] = None) -> None:
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self._shards: List[Tuple[Dict[str, RateWindow], threading.Lock]] = [
            ({}, threading.Lock()) for _ in range(shards)
        ]
        self._clock = clock or _monotonic_ms

    def _shard(self, key: str) -> Tuple[Dict[str, RateWindow], threading.Lock]:
        return self._shards[zlib.crc32(key.encode("utf-8")) % len(self._shards)]

    def _sweep(self, now_ms: int) -> None:
        for windows, lock in self._shards:
            with lock:
                expired = [k for k, w in windows.items() if w.reset_at_ms <= now_ms]
                for k in expired:
                    del windows[k]

    def admit(self, key: str, config: RatePolicy) -> bool:
        now_ms = self._clock()
        self._sweep(now_ms)

        windows, lock = self._shard(key)
        with lock:
            window = windows.get(key)
            if window is None or window.reset_at_ms <= now_ms:
                windows[key] = RateWindow(count=1, reset_at_ms=now_ms + config.window_duration_ms)
                return config.max_requests > 0
            if window.count >= config.max_requests:
                return False
            window.count += 1
            return True

    def window_for(self, key: str) -> Optional[RateWindow]:
        """Current window for ``key`` (None if never seen or swept)."""
        windows, lock = self._shard(key)
        with lock:
            window = windows.get(key)
            return RateWindow(window.count, window.reset_at_ms) if window else None

    def __len__(self) -> int:
        total = 0
        for windows, lock in self._shards:
            with lock:
                total += len(windows)
        return total

    def reset(self) -> None:
        for windows, lock in self._shards:
            with lock:
                windows.clear()
