"""Unit tests for the fixed-window rate limiter."""

from datetime import datetime

from inkwell.middleware.ratelimit import FixedWindowRateLimiter


class TestFixedWindowRateLimiter:
    def test_allows_budget_then_denies(self):
        limiter = FixedWindowRateLimiter(window_seconds=60, max_calls=3)
        decisions = [limiter.hit("user:1", now=120.0 + i) for i in range(4)]
        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert decisions[-1].count == 4

    def test_window_is_aligned_and_resets(self):
        limiter = FixedWindowRateLimiter(window_seconds=60, max_calls=1)
        assert limiter.hit("k", now=170.0).allowed
        denied = limiter.hit("k", now=175.0)
        assert not denied.allowed
        assert denied.reset_at == 180.0
        assert denied.retry_after == 5
        assert limiter.hit("k", now=180.0).allowed

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(window_seconds=60, max_calls=1)
        assert limiter.hit("user:1", now=0.0).allowed
        assert limiter.hit("ip:10.0.0.1", now=0.0).allowed
        assert not limiter.hit("user:1", now=1.0).allowed

    def test_details_payload(self):
        limiter = FixedWindowRateLimiter(window_seconds=60, max_calls=0)
        details = limiter.hit("k", now=30.0).as_details()
        assert details["retryAfterSeconds"] == 30
        assert details["maxRequests"] == 0
        assert datetime.fromisoformat(details["limitResetAt"]).timestamp() == 60.0

    def test_reset_clears_counters(self):
        limiter = FixedWindowRateLimiter(window_seconds=60, max_calls=1)
        limiter.hit("k", now=0.0)
        limiter.reset()
        assert limiter.hit("k", now=1.0).allowed

    def test_expired_buckets_are_evicted(self):
        limiter = FixedWindowRateLimiter(window_seconds=60, max_calls=5)
        for i in range(10):
            limiter.hit(f"ip:10.0.0.{i}", now=10.0)
        limiter.hit("ip:10.0.1.1", now=61.0)

        assert list(limiter._buckets) == ["ip:10.0.1.1"]

    def test_live_buckets_survive_a_sweep(self):
        limiter = FixedWindowRateLimiter(window_seconds=60, max_calls=1)
        limiter.hit("old", now=10.0)
        assert limiter.hit("k", now=70.0).allowed

        assert set(limiter._buckets) == {"k"}
        assert not limiter.hit("k", now=71.0).allowed
