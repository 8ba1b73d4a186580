"""
Pytest fixtures for Banter tests.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from banter.content.catalog import ContentCatalog
from banter.engines.conversation.character_selector import CharacterSelector
from banter.kernel.rate_limit import RateLimitPolicy, SlidingWindowRateLimiter
from banter.orchestration.conversation_store import ConversationStore


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog() -> ContentCatalog:
    return ContentCatalog()


@pytest.fixture
def selector(catalog: ContentCatalog) -> CharacterSelector:
    return CharacterSelector(catalog, rng=random.Random(1234))


@pytest.fixture
def store(selector: CharacterSelector, clock: FakeClock) -> ConversationStore:
    return ConversationStore(selector, clock=clock)


@pytest.fixture
def limiter(clock: FakeClock) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        {
            "message": RateLimitPolicy(limit=100, window=timedelta(hours=1)),
            "conversation_start": RateLimitPolicy(limit=10, window=timedelta(hours=1)),
        },
        clock=clock,
    )


@pytest.fixture
def lesson_config(catalog: ContentCatalog) -> dict:
    return {"lesson_id": "basic_weaving", "level": "bronze", "lesson": catalog.get_lesson("basic_weaving")}


@pytest.fixture
def scenario_config(catalog: ContentCatalog) -> dict:
    return {"scenario_id": "coffee_shop", "scenario": catalog.get_scenario("coffee_shop")}
