"""Unit tests for the sliding-window rate limiter."""

from datetime import timedelta

from banter.config import Settings
from banter.kernel.rate_limit import (
    RateLimitPolicy,
    SlidingWindowRateLimiter,
    default_policies,
    normalize_action,
)


def _limiter(clock, limit=2, window=timedelta(milliseconds=1000), **kwargs):
    return SlidingWindowRateLimiter({"x": RateLimitPolicy(limit, window)}, clock=clock, **kwargs)


class TestSlidingWindow:
    """Admission, denial and window expiry."""

    def test_two_per_second(self, clock):
        """limit=2 window=1s: allow, allow, deny with reset at first event + window."""
        limiter = _limiter(clock)
        first_event = clock()

        d1 = limiter.check("s", "x")
        assert d1.allowed is True
        assert d1.remaining == 1

        clock.advance(milliseconds=100)
        d2 = limiter.check("s", "x")
        assert d2.allowed is True
        assert d2.remaining == 0

        clock.advance(milliseconds=100)
        d3 = limiter.check("s", "x")
        assert d3.allowed is False
        assert d3.remaining == 0
        assert d3.reset_time == first_event + timedelta(milliseconds=1000)

    def test_remaining_strictly_decreases_to_zero(self, clock):
        limiter = _limiter(clock, limit=5, window=timedelta(minutes=1))
        remaining = []
        for _ in range(5):
            decision = limiter.check("s", "x")
            assert decision.allowed is True
            remaining.append(decision.remaining)
            clock.advance(seconds=1)
        assert remaining == [4, 3, 2, 1, 0]
        assert limiter.check("s", "x").allowed is False

    def test_allowed_again_once_first_event_leaves_window(self, clock):
        limiter = _limiter(clock)
        start = clock()
        limiter.check("s", "x")
        limiter.check("s", "x")
        assert limiter.check("s", "x").allowed is False

        clock.now = start + timedelta(milliseconds=1000)
        decision = limiter.check("s", "x")
        assert decision.allowed is True

    def test_denials_are_not_recorded(self, clock):
        """Repeated denied calls do not push the reset time out."""
        limiter = _limiter(clock, limit=1)
        start = clock()
        limiter.check("s", "x")
        for _ in range(3):
            clock.advance(milliseconds=200)
            denied = limiter.check("s", "x")
            assert denied.allowed is False
            assert denied.reset_time == start + timedelta(milliseconds=1000)

    def test_subjects_are_independent(self, clock):
        limiter = _limiter(clock, limit=1)
        assert limiter.check("a", "x").allowed is True
        assert limiter.check("a", "x").allowed is False
        assert limiter.check("b", "x").allowed is True

    def test_retry_after_follows_limiter_clock(self, clock):
        limiter = _limiter(clock, limit=1, window=timedelta(minutes=1))
        assert limiter.check("s", "x").retry_after_seconds is None
        clock.advance(seconds=20)
        denied = limiter.check("s", "x")
        assert denied.reset_time == clock() + timedelta(seconds=40)
        assert denied.retry_after_seconds == 40


class TestActions:
    """Action naming and unknown actions."""

    def test_unknown_action_is_unbounded(self, clock):
        limiter = _limiter(clock)
        decision = limiter.check("s", "something_else")
        assert decision.allowed is True
        assert decision.remaining is None
        assert decision.reset_time is None

    def test_hyphenated_action_names_match(self, limiter):
        first = limiter.check("s", "conversation-start")
        second = limiter.check("s", "conversation_start")
        assert first.remaining == 9
        assert second.remaining == 8

    def test_normalize_action(self):
        assert normalize_action(" Conversation-Start ") == "conversation_start"

    def test_disabled_limiter_always_allows(self, clock):
        limiter = _limiter(clock, limit=1, enabled=False)
        for _ in range(5):
            decision = limiter.check("s", "x")
            assert decision.allowed is True
            assert decision.remaining is None

    def test_default_policies_from_settings(self):
        policies = default_policies(Settings())
        assert policies["message"].limit == 100
        assert policies["conversation_start"].limit == 10
        assert policies["message"].window == timedelta(hours=1)


class TestPrune:
    """Eviction of stale windows."""

    def test_prune_evicts_expired_windows(self, clock):
        limiter = _limiter(clock)
        limiter.check("a", "x")
        limiter.check("b", "x")
        assert len(limiter) == 2

        clock.advance(seconds=2)
        assert limiter.prune() == 2
        assert len(limiter) == 0

    def test_prune_keeps_live_windows(self, clock):
        limiter = _limiter(clock, window=timedelta(hours=1))
        limiter.check("a", "x")
        clock.advance(minutes=10)
        assert limiter.prune() == 0
        assert len(limiter) == 1
