"""
Tests for the in-memory sliding-window limiter.
"""

import pytest

from estate_assistant.exceptions import RateLimitError
from estate_assistant.utils.rate_limit import SlidingWindowRateLimiter


def make_limiter(window_seconds=10, max_requests=2):
    return SlidingWindowRateLimiter("test", window_seconds, max_requests, "slow down")


def test_rejects_once_window_is_full():
    limiter = make_limiter()
    limiter.check("1.2.3.4", now=0)
    limiter.check("1.2.3.4", now=1)

    with pytest.raises(RateLimitError) as exc_info:
        limiter.check("1.2.3.4", now=2)

    assert exc_info.value.retry_after == 8
    limiter.check("5.6.7.8", now=2)


def test_requests_are_allowed_again_after_window():
    limiter = make_limiter()
    limiter.check("1.2.3.4", now=0)
    limiter.check("1.2.3.4", now=1)

    limiter.check("1.2.3.4", now=10.5)


def test_idle_clients_are_forgotten():
    limiter = make_limiter(window_seconds=1, max_requests=5)
    for i in range(10_000):
        limiter.check(f"10.0.{i // 256}.{i % 256}", now=0)
    assert limiter.tracked_clients == 10_000

    limiter.check("192.168.0.1", now=1e9)

    assert limiter.tracked_clients == 1


def test_active_clients_survive_a_sweep():
    limiter = make_limiter(window_seconds=10, max_requests=2)
    limiter.check("idle", now=0)
    limiter.check("busy", now=9)
    limiter.check("busy", now=9.5)

    limiter.check("new", now=12)

    assert limiter.tracked_clients == 2
    with pytest.raises(RateLimitError):
        limiter.check("busy", now=12)
