"""
System smoke test: full API flow in-process.

Verifies health, lesson and scenario catalogs, conversation start, messaging
with real and fallback replies, ownership checks, rate limiting and end-of-
conversation summaries. Services are swapped for fresh, deterministic ones via
dependency overrides.
"""

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from banter.api.deps import get_catalog, get_coach_service, get_rate_limiter, get_reply_service, get_store
from banter.engines.conversation.coaching import CoachService
from banter.engines.conversation.reply_service import ReplyService
from banter.kernel.rate_limit import RateLimitPolicy, SlidingWindowRateLimiter
from banter.main import app

API = "/api/v1"
OTHER_DEVICE = {"User-Agent": "another-device/1.0"}


class FakeGenerator:
    """Scripted text generator."""

    def __init__(self, reply: str = "*smiles* Nice to meet you!", error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, system_prompt, history, user_message):
        self.calls.append((system_prompt, history, user_message))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest_asyncio.fixture
async def client(store, limiter, catalog, generator):
    """Async client wired to fresh in-memory services."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    app.dependency_overrides[get_catalog] = lambda: catalog
    replies = ReplyService(generator, timeout_seconds=1)
    coach = CoachService(generator, timeout_seconds=1)
    app.dependency_overrides[get_reply_service] = lambda: replies
    app.dependency_overrides[get_coach_service] = lambda: coach
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


async def _start_lesson(client: AsyncClient, **body) -> dict:
    r = await client.post(f"{API}/lessons/basic_weaving/start", json=body or {"level": "bronze"})
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["conversations"]["total_conversations"] == 0
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_request_id_echoed_and_root(client: AsyncClient):
    r = await client.get("/", headers={"X-Request-ID": "trace-123"})
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "trace-123"
    assert r.json()["api"]["v1"] == API


@pytest.mark.asyncio
async def test_catalog_endpoints(client: AsyncClient):
    lessons = (await client.get(f"{API}/lessons")).json()
    assert [l["id"] for l in lessons] == ["basic_weaving", "asking_questions", "stories"]
    assert lessons[0]["levels"] == ["bronze", "silver", "gold"]

    scenarios = (await client.get(f"{API}/scenarios")).json()
    assert {s["id"] for s in scenarios} == {"coffee_shop", "house_party"}

    characters = (await client.get(f"{API}/scenarios/coffee_shop/characters")).json()
    assert [c["name"] for c in characters] == ["Alex", "Jordan", "Maya"]

    missions = (await client.get(f"{API}/scenarios/missions")).json()
    assert "give_compliment" in {m["id"] for m in missions}

    r = await client.get(f"{API}/scenarios/moon_base/characters")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_lesson_flow(client: AsyncClient, generator: FakeGenerator):
    """Start, message, history, stats, end."""
    started = await _start_lesson(client, level="silver")
    cid = started["conversation_id"]
    assert started["kind"] == "lesson"
    assert started["character"]["name"] == "Riley"
    assert started["starter_message"]
    assert started["rate_limit"] == {"remaining": 9, "limit": 10}

    r = await client.post(f"{API}/conversations/{cid}/messages", json={"message": "hi there"})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["response"] == "Nice to meet you!"
    assert data["mood"] == "😊"
    assert data["fallback_used"] is False
    assert data["warning"] is None
    assert data["mission_progress"] is None
    assert data["stats"]["message_count"] == 3
    assert "silver level" in generator.calls[0][0]

    history = (await client.get(f"{API}/conversations/{cid}/history")).json()
    assert [m["role"] for m in history["messages"]] == ["assistant", "user", "assistant"]
    assert history["messages"][1]["content"] == "hi there"

    limited = (await client.get(f"{API}/conversations/{cid}/history", params={"limit": 1})).json()
    assert limited["total_count"] == 1

    stats = (await client.get(f"{API}/conversations/{cid}/stats")).json()
    assert stats["message_count"] == 3
    assert stats["user_message_count"] == 1
    assert stats["character"] == "Riley"

    listing = (await client.get(f"{API}/conversations")).json()
    assert [c["conversation_id"] for c in listing["conversations"]] == [cid]

    r = await client.post(f"{API}/conversations/{cid}/end")
    assert r.status_code == 200
    ended = r.json()
    assert ended["status"] == "completed"
    assert ended["message_count"] == 3
    assert ended["feedback"]
    assert ended["performance"] is None

    r = await client.post(f"{API}/conversations/{cid}/messages", json={"message": "one more"})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_scenario_flow_with_mission(client: AsyncClient):
    r = await client.post(
        f"{API}/scenarios/coffee_shop/start",
        json={"character_id": "bubbly_nervous", "mission": "give_compliment"},
    )
    assert r.status_code == 201, r.text
    started = r.json()
    cid = started["conversation_id"]
    assert started["character"]["name"] == "Maya"
    assert started["mission"]["id"] == "give_compliment"
    assert started["mood"] == "😰"

    r = await client.post(f"{API}/conversations/{cid}/messages", json={"message": "I love your jacket"})
    progress = r.json()["mission_progress"]
    assert progress["completed"] is True
    assert progress["progress"] == 100

    ended = (await client.post(f"{API}/conversations/{cid}/end")).json()
    assert ended["kind"] == "scenario"
    assert ended["mission_result"]["completed"] is True
    assert ended["performance"]["rating"] in {"excellent", "good", "fair", "needs_improvement"}
    assert "Successfully completed mission objective" in ended["performance"]["strengths"]
    assert 'Mission "Give a Compliment" completed successfully!' in ended["feedback"]


@pytest.mark.asyncio
async def test_scenario_start_validation(client: AsyncClient):
    r = await client.post(f"{API}/scenarios/moon_base/start", json={})
    assert r.status_code == 404

    r = await client.post(f"{API}/scenarios/coffee_shop/start", json={"character_id": "self_centered"})
    assert r.status_code == 400

    r = await client.post(f"{API}/scenarios/coffee_shop/start", json={"mission": "rob_bank"})
    assert r.status_code == 400

    r = await client.post(f"{API}/scenarios/coffee_shop/start", json={})
    assert r.status_code == 201
    assert r.json()["character"]["id"] in {"quiet_observer", "laid_back_guy", "bubbly_nervous"}


@pytest.mark.asyncio
async def test_fallback_reply_is_flagged(client: AsyncClient, generator: FakeGenerator):
    generator.error = RuntimeError("DeepSeek API key not configured")
    cid = (await _start_lesson(client))["conversation_id"]

    r = await client.post(f"{API}/conversations/{cid}/messages", json={"message": "hello"})
    assert r.status_code == 200
    data = r.json()
    assert data["fallback_used"] is True
    assert data["warning"] == "Using fallback response"
    assert data["response"]


@pytest.mark.asyncio
async def test_ownership_and_missing(client: AsyncClient):
    cid = (await _start_lesson(client))["conversation_id"]

    r = await client.get(f"{API}/conversations/{cid}/history", headers=OTHER_DEVICE)
    assert r.status_code == 403

    r = await client.post(f"{API}/conversations/{cid}/messages", json={"message": "hi"}, headers=OTHER_DEVICE)
    assert r.status_code == 403

    r = await client.get(f"{API}/conversations/lesson_nobody_1_abc/stats")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_message_validation(client: AsyncClient):
    cid = (await _start_lesson(client))["conversation_id"]

    r = await client.post(f"{API}/conversations/{cid}/messages", json={"message": "   "})
    assert r.status_code == 400

    r = await client.post(f"{API}/conversations/{cid}/messages", json={"message": "x" * 501})
    assert r.status_code == 400

    r = await client.post(f"{API}/conversations/{cid}/messages", json={})
    assert r.status_code == 422

    r = await client.post(f"{API}/lessons/basic_weaving/start", json={"level": "platinum"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_pause_resume(client: AsyncClient):
    cid = (await _start_lesson(client))["conversation_id"]

    r = await client.post(f"{API}/conversations/{cid}/pause")
    assert r.json()["status"] == "paused"

    r = await client.post(f"{API}/conversations/{cid}/messages", json={"message": "hi"})
    assert r.status_code == 409

    r = await client.post(f"{API}/conversations/{cid}/resume")
    assert r.json()["status"] == "active"

    await client.post(f"{API}/conversations/{cid}/end")
    r = await client.post(f"{API}/conversations/{cid}/pause")
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_conversation_start_rate_limit(client: AsyncClient, clock):
    limiter = SlidingWindowRateLimiter(
        {"conversation_start": RateLimitPolicy(limit=1, window=timedelta(hours=1))},
        clock=clock,
    )
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    await _start_lesson(client)
    r = await client.post(f"{API}/lessons/basic_weaving/start", json={"level": "bronze"})
    assert r.status_code == 429
    data = r.json()
    assert data["code"] == "rate_limited"
    assert data["action"] == "conversation_start"
    assert data["limit"] == 1
    assert data["reset_time"] is not None
    assert r.headers["Retry-After"] == "3600"


@pytest.mark.asyncio
async def test_lesson_coach_feedback(client: AsyncClient, generator: FakeGenerator):
    cid = (await _start_lesson(client))["conversation_id"]
    url = f"{API}/lessons/basic_weaving/feedback"

    r = await client.post(url, json={"conversation_id": cid, "feedback_type": "pep_talk"})
    assert r.status_code == 400

    r = await client.post(url, json={"conversation_id": cid})
    assert r.status_code == 200
    data = r.json()
    assert data["feedback"] == "Start practicing first, then I can give you feedback!"
    assert data["assessment"] is None

    await client.post(
        f"{API}/conversations/{cid}/messages",
        json={"message": "Speaking of oat milk, have you tried the new place?"},
    )
    generator.reply = "Nice thread pick-up! Try adding a detail about yourself."

    r = await client.post(url, json={"conversation_id": cid, "feedback_type": "advice"})
    assert r.status_code == 200
    data = r.json()
    assert data["feedback"] == "Nice thread pick-up! Try adding a detail about yourself."
    assert data["warning"] is None
    assert data["assessment"]["skill_demonstrated"] is True
    assert data["assessment"]["message_count"] == 1
    assert data["stats"]["message_count"] == 3

    system_prompt, history, summary = generator.calls[-1]
    assert "social skills coach providing advice feedback" in system_prompt
    assert history == []
    assert "STUDENT: Speaking of oat milk" in summary


@pytest.mark.asyncio
async def test_coach_feedback_falls_back(client: AsyncClient, generator: FakeGenerator):
    cid = (await _start_lesson(client))["conversation_id"]
    await client.post(f"{API}/conversations/{cid}/messages", json={"message": "hello"})
    generator.error = RuntimeError("DeepSeek API key not configured")

    r = await client.post(
        f"{API}/lessons/basic_weaving/feedback",
        json={"conversation_id": cid, "feedback_type": "final_review"},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["feedback"] == "Great job practicing! Continue working on these skills in real conversations."
    assert data["warning"] == "Basic feedback provided due to AI service issue"
    assert data["recommendations"] == ["Keep practicing", "Review lesson materials"]


@pytest.mark.asyncio
async def test_coach_feedback_access(client: AsyncClient):
    cid = (await _start_lesson(client))["conversation_id"]

    r = await client.post(
        f"{API}/lessons/basic_weaving/feedback",
        json={"conversation_id": cid},
        headers=OTHER_DEVICE,
    )
    assert r.status_code == 403

    r = await client.post(f"{API}/lessons/basic_weaving/feedback", json={"conversation_id": "lesson_x_1_abc"})
    assert r.status_code == 404

    r = await client.post(f"{API}/lessons/stories/feedback", json={"conversation_id": cid})
    assert r.status_code == 400

    scenario = (await client.post(f"{API}/scenarios/coffee_shop/start", json={})).json()
    r = await client.post(
        f"{API}/lessons/basic_weaving/feedback",
        json={"conversation_id": scenario["conversation_id"]},
    )
    assert r.status_code == 400
