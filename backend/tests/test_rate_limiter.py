"""
Tests for the per-user fixed-window rate limiter.

A fake millisecond clock drives the windows so nothing sleeps.
"""

import pytest

from agora.config import Settings
from agora.services.rate_limiter import (
    CREATE_ARGUMENT,
    RATE_ARGUMENT,
    RateLimiter,
    RateLimitPolicy,
    policy_for,
)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock(now=1_000_000.0)


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock)


def test_allows_up_to_max_then_denies(limiter):
    results = [limiter.check_rate_limit("u1", CREATE_ARGUMENT, 2, 60_000) for _ in range(3)]

    assert results == [True, True, False]


def test_window_resets_after_elapsing(limiter, clock):
    for _ in range(2):
        assert limiter.check_rate_limit("u1", CREATE_ARGUMENT, 2, 60_000)
    assert not limiter.check_rate_limit("u1", CREATE_ARGUMENT, 2, 60_000)

    clock.advance(60_001)

    assert limiter.check_rate_limit("u1", CREATE_ARGUMENT, 2, 60_000)


def test_window_still_closed_at_exact_boundary(limiter, clock):
    limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)

    clock.advance(60_000)

    assert not limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)


def test_denied_attempts_do_not_extend_the_window(limiter, clock):
    limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)

    for _ in range(5):
        clock.advance(10_000)
        assert not limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)

    clock.advance(10_001)
    assert limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)


def test_keys_are_independent_per_user_and_action(limiter):
    assert limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)
    assert not limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)

    assert limiter.check_rate_limit("u2", CREATE_ARGUMENT, 1, 60_000)
    assert limiter.check_rate_limit("u1", RATE_ARGUMENT, 1, 60_000)


def test_defaults_are_five_per_minute(limiter):
    results = [limiter.check_rate_limit("u1", "anything") for _ in range(6)]

    assert results == [True] * 5 + [False]


def test_reset_single_subject(limiter):
    limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)
    limiter.check_rate_limit("u2", CREATE_ARGUMENT, 1, 60_000)

    limiter.reset("u1")

    assert limiter.check_rate_limit("u1", CREATE_ARGUMENT, 1, 60_000)
    assert not limiter.check_rate_limit("u2", CREATE_ARGUMENT, 1, 60_000)


def test_policy_from_settings():
    settings = Settings(create_argument_max=7, create_argument_window_ms=90_000)

    policy = policy_for(CREATE_ARGUMENT, settings)

    assert policy == RateLimitPolicy(max_count=7, window_ms=90_000)
    assert policy.window_seconds == 90


def test_check_uses_policy_limits(limiter):
    policy = RateLimitPolicy(max_count=3, window_ms=300_000)

    results = [limiter.check("u1", RATE_ARGUMENT, policy) for _ in range(4)]

    assert results == [True, True, True, False]
