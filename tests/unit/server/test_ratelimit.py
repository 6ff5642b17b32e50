"""Unit tests for homefs.server.ratelimit."""

import pytest

from homefs.server.ratelimit import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
@pytest.mark.server
class TestRateLimiter:
    """Tests for the sliding-window limiter."""

    def test_allows_up_to_limit(self):
        limiter = RateLimiter(3, 60, clock=FakeClock())

        assert [limiter.allow("a") for _ in range(4)] == [True, True, True, False]

    def test_clients_are_independent(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())

        assert limiter.allow("a")
        assert not limiter.allow("a")
        assert limiter.allow("b")

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(2, 60, clock=clock)
        limiter.allow("a")
        clock.now += 30
        limiter.allow("a")
        assert not limiter.allow("a")

        clock.now += 31  # first hit has left the window
        assert limiter.allow("a")
        assert not limiter.allow("a")

    def test_retry_after(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 60, clock=clock)

        assert limiter.retry_after("a") == 0
        limiter.allow("a")
        clock.now += 15.5

        assert limiter.retry_after("a") == 45

    def test_retry_after_is_at_least_one(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 60, clock=clock)
        limiter.allow("a")
        clock.now += 59.99

        assert limiter.retry_after("a") == 1

    def test_reset(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())
        limiter.allow("a")

        limiter.reset()

        assert limiter.allow("a")

    def test_non_positive_limit_disables(self):
        limiter = RateLimiter(0, 60, clock=FakeClock())
        assert all(limiter.allow("a") for _ in range(100))

    def test_retry_after_forgets_expired_client(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 60, clock=clock)
        limiter.allow("a")
        clock.now += 61

        assert limiter.retry_after("a") == 0
        assert len(limiter) == 0

    def test_idle_clients_are_swept(self):
        clock = FakeClock()
        limiter = RateLimiter(5, 60, clock=clock)
        for i in range(100):
            limiter.allow(f"10.0.0.{i}")
        assert len(limiter) == 100

        clock.now += 61
        limiter.allow("10.0.1.1")

        assert len(limiter) == 1

    def test_active_clients_survive_sweep(self):
        clock = FakeClock()
        limiter = RateLimiter(5, 60, clock=clock)
        limiter.allow("idle")
        clock.now += 30
        limiter.allow("active")
        clock.now += 31

        limiter.allow("other")

        assert len(limiter) == 2
        assert limiter.retry_after("active") == 0
