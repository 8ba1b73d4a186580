"""
Scenario Feedback - mission progress and end-of-practice assessment.

Scoring (0-100):
- Message count: >=10 -> 40, >=6 -> 30, >=3 -> 20, otherwise 10
- Average user message length: >=30 -> 30, >=15 -> 20, >=5 -> 10
- Duration: 3-10 minutes -> 20, at least 1 minute -> 10
- Mission completed: +10

Rating: >=80 excellent, >=60 good, >=40 fair, otherwise needs_improvement.
"""

from datetime import timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from banter.engines.conversation.stats import round_half_up
from banter.kernel.models.conversation import MissionInfo, Turn, TurnRole

# Mission id -> phrases that count as attempting the objective
MISSION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "get_contact_info": ("number", "contact", "reach you"),
    "make_plans": ("want to", "should we", "let's"),
    "give_compliment": ("love", "great", "nice", "awesome"),
}


class MissionProgress(BaseModel):
    mission_id: str
    criteria: Tuple[str, ...] = ()
    completed: bool = False
    progress: int = 0


class ScenarioPerformance(BaseModel):
    """Metrics an assessment is computed from."""

    duration: timedelta
    message_count: int
    user_message_count: int
    average_response_length: int
    mission_completed: Optional[bool] = None  # None when the scenario had no mission


class PerformanceAssessment(BaseModel):
    rating: str
    strengths: List[str]
    suggestions: List[str]


def _user_messages(history: Sequence[Turn]) -> List[str]:
    return [t.content for t in history if t.role == TurnRole.USER]


def _question_count(messages: Sequence[str]) -> int:
    return sum(1 for m in messages if "?" in m)


def check_mission_progress(
    mission: Optional[MissionInfo],
    history: Sequence[Turn],
) -> Optional[MissionProgress]:
    """Keyword heuristic over the user's messages. None when there is no mission."""
    if mission is None:
        return None

    messages = _user_messages(history)
    keywords = MISSION_KEYWORDS.get(mission.id, ())
    completed = any(k in m.lower() for m in messages for k in keywords)

    return MissionProgress(
        mission_id=mission.id,
        criteria=mission.success_criteria,
        completed=completed,
        progress=100 if completed else min(90, len(messages) * 20),
    )


def measure_performance(
    history: Sequence[Turn],
    message_count: int,
    duration: timedelta,
    mission_progress: Optional[MissionProgress] = None,
) -> ScenarioPerformance:
    messages = _user_messages(history)
    average = round_half_up(sum(len(m) for m in messages) / len(messages)) if messages else 0
    return ScenarioPerformance(
        duration=duration,
        message_count=message_count,
        user_message_count=len(messages),
        average_response_length=average,
        mission_completed=mission_progress.completed if mission_progress else None,
    )


def performance_score(performance: ScenarioPerformance) -> int:
    score = 0

    if performance.message_count >= 10:
        score += 40
    elif performance.message_count >= 6:
        score += 30
    elif performance.message_count >= 3:
        score += 20
    else:
        score += 10

    if performance.average_response_length >= 30:
        score += 30
    elif performance.average_response_length >= 15:
        score += 20
    elif performance.average_response_length >= 5:
        score += 10

    minutes = performance.duration.total_seconds() / 60
    if 3 <= minutes <= 10:
        score += 20
    elif minutes >= 1:
        score += 10

    if performance.mission_completed:
        score += 10

    return score


def performance_rating(performance: ScenarioPerformance) -> str:
    score = performance_score(performance)
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "needs_improvement"


def identify_strengths(performance: ScenarioPerformance, history: Sequence[Turn]) -> List[str]:
    strengths = []
    if performance.message_count >= 8:
        strengths.append("Maintained conversation well")
    if performance.average_response_length > 25:
        strengths.append("Provided detailed, thoughtful responses")
    if _question_count(_user_messages(history)) >= 2:
        strengths.append("Asked engaging questions")
    if performance.mission_completed:
        strengths.append("Successfully completed mission objective")
    return strengths or ["Participated in conversation practice"]


def generate_suggestions(performance: ScenarioPerformance, history: Sequence[Turn]) -> List[str]:
    suggestions = []
    if performance.message_count < 6:
        suggestions.append("Try to keep conversations going longer")
    if performance.average_response_length < 15:
        suggestions.append("Add more detail to your responses")
    if _question_count(_user_messages(history)) < 2:
        suggestions.append("Ask more questions to show interest")
    if performance.mission_completed is False:
        suggestions.append("Focus on completing the mission objective")
    return suggestions or ["Keep practicing to improve your skills"]


def assess(performance: ScenarioPerformance, history: Sequence[Turn]) -> PerformanceAssessment:
    return PerformanceAssessment(
        rating=performance_rating(performance),
        strengths=identify_strengths(performance, history),
        suggestions=generate_suggestions(performance, history),
    )


def summary_feedback(
    performance: ScenarioPerformance,
    mission: Optional[MissionInfo] = None,
) -> str:
    """Short encouragement line shown when a scenario ends."""
    parts = ["Great conversation practice!"]
    if performance.message_count >= 8:
        parts.append("You kept the conversation going well.")
    if performance.average_response_length > 20:
        parts.append("Your responses were detailed and engaging.")
    if mission is not None and performance.mission_completed:
        parts.append(f'Mission "{mission.name}" completed successfully!')
    return " ".join(parts)
