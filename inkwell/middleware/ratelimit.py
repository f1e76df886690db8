import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol


@dataclass
class RateLimitDecision:
    allowed: bool
    key: str
    count: int
    max_calls: int
    reset_at: float
    retry_after: int

    def as_details(self) -> dict:
        return {
            "retryAfterSeconds": self.retry_after,
            "limitResetAt": datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat(),
            "currentRequests": self.count,
            "maxRequests": self.max_calls,
        }


class RateLimiter(Protocol):
    def hit(self, key: str, now: float | None = None) -> RateLimitDecision: ...

    def reset(self) -> None: ...


class FixedWindowRateLimiter:
    """Process-local fixed-window counter.

    Windows are aligned to multiples of ``window_seconds``. State lives in
    this process only, so several server instances each enforce their own
    budget; swap in a shared store for multi-instance deployments.
    """

    def __init__(self, *, window_seconds: int, max_calls: int):
        self.window = window_seconds
        self.max_calls = max_calls

        self._buckets: dict[str, tuple[int, float]] = {}
        self._next_sweep = 0.0
        self._lock = threading.Lock()

    def _window_end(self, now: float) -> float:
        return (math.floor(now / self.window) + 1) * self.window

    def _evict_expired(self, now: float) -> None:
        # at most one sweep per window; caller holds the lock
        if now < self._next_sweep:
            return
        self._buckets = {k: v for k, v in self._buckets.items() if v[1] > now}
        self._next_sweep = self._window_end(now)

    def hit(self, key: str, now: float | None = None) -> RateLimitDecision:
        now = time.time() if now is None else now
        with self._lock:
            count, reset_at = self._buckets.get(key, (0, self._window_end(now)))
            if now >= reset_at:
                count, reset_at = 0, self._window_end(now)

            count += 1
            self._buckets[key] = (count, reset_at)
            self._evict_expired(now)

        return RateLimitDecision(
            allowed=count <= self.max_calls,
            key=key,
            count=count,
            max_calls=self.max_calls,
            reset_at=reset_at,
            retry_after=max(1, math.ceil(reset_at - now)),
        )

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    global _limiter
    if _limiter is None:
        from inkwell.config import settings
        _limiter = FixedWindowRateLimiter(
            window_seconds=settings.rate_limit_window_seconds,
            max_calls=settings.rate_limit_max_calls,
        )
    return _limiter


def set_rate_limiter(limiter: RateLimiter | None) -> None:
    global _limiter
    _limiter = limiter
