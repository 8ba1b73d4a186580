"""
Lesson Coaching - coach feedback on a lesson practice in progress.

Assessment (each 0-1):
- effort: 0.4 + user messages / 10, capped at 0.9
- naturalness: average user message length / 100, capped at 0.8 (0.3 for
  messages of 10 characters or fewer on average)
- mastery: 0.8 at gold or 0.6 otherwise when the lesson skill was shown, else 0.3
- overall: mean of the three

A level is completed with at least six turns, an overall grade of 0.7, the
skill shown and the level's floors met (see LEVEL_FLOORS).
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from banter.engines.conversation.reply_service import ReplyGenerator
from banter.engines.conversation.stats import round_half_up
from banter.kernel.models.character import Character
from banter.kernel.models.conversation import LEVEL_ORDER, LessonInfo, Turn, TurnRole
from banter.logging_config import get_logger

logger = get_logger(__name__)

FEEDBACK_INSTRUCTIONS: Dict[str, str] = {
    "instant": "Give quick, encouraging feedback on how they're doing so far. Be specific about what's working.",
    "advice": "Give specific advice for their next response. What should they try to improve their skill?",
    "end_practice": (
        "Provide comprehensive feedback. What did they do well? "
        "What should they work on? Specific next steps."
    ),
    "final_review": (
        "Summarize the entire practice session. "
        "Key learning points and encouragement for continued practice."
    ),
}
FEEDBACK_TYPES = tuple(FEEDBACK_INSTRUCTIONS)

# Used when the coach model is unavailable
BASIC_FEEDBACK: Dict[str, str] = {
    "instant": "You're doing well! Keep practicing the core techniques.",
    "advice": "Try to focus on the main skill for this lesson in your next response.",
    "end_practice": "Good practice session! Review the lesson objectives and keep working on them.",
    "final_review": "Great job practicing! Continue working on these skills in real conversations.",
}
BASIC_RECOMMENDATIONS = ("Keep practicing", "Review lesson materials")
FALLBACK_WARNING = "Basic feedback provided due to AI service issue"

NO_PRACTICE_FEEDBACK = "Start practicing first, then I can give you feedback!"
NO_PRACTICE_RECOMMENDATIONS = ("Begin the conversation to get personalized feedback",)

MIN_TURNS_FOR_COMPLETION = 6
PASSING_GRADE = 0.7

# Level -> minimum effort / naturalness / mastery on top of the shown skill
LEVEL_FLOORS: Dict[str, Dict[str, float]] = {
    "bronze": {"effort_level": 0.6},
    "silver": {"effort_level": 0.7, "naturalness": 0.6},
    "gold": {"effort_level": 0.8, "naturalness": 0.7, "mastery": 0.7},
}

_WEAVING_PHRASES = (
    "speaking of", "that reminds me", "on the topic of", "by the way",
    "while we're", "in relation to", "talking about", "this brings",
)
_OPEN_QUESTION_STARTS = ("how", "what", "why", "when", "where", "tell me")
_STORY_MARKERS = ("so", "then", "after that", "finally", "first", "next")


class LessonAssessment(BaseModel):
    skill_demonstrated: bool
    effort_level: float
    naturalness: float
    mastery: float
    overall_grade: float
    message_count: int
    average_length: int
    completed: bool


def _weaving(messages: Sequence[str]) -> bool:
    return any(p in m.lower() for m in messages for p in _WEAVING_PHRASES)


def _questions(messages: Sequence[str]) -> bool:
    asked = sum(1 for m in messages if "?" in m)
    open_ended = sum(1 for m in messages if m.lower().startswith(_OPEN_QUESTION_STARTS))
    return asked >= 2 and open_ended >= 1


def _stories(messages: Sequence[str]) -> bool:
    long_messages = [m.lower() for m in messages if len(m) > 50]
    return any(marker in m for m in long_messages for marker in _STORY_MARKERS)


SKILL_CHECKS: Dict[str, Callable[[Sequence[str]], bool]] = {
    "basic_weaving": _weaving,
    "asking_questions": _questions,
    "stories": _stories,
}


def skill_demonstrated(lesson_id: str, messages: Sequence[str]) -> bool:
    check = SKILL_CHECKS.get(lesson_id)
    return bool(check and check(messages))


def is_level_completed(level: str, turn_count: int, assessment: LessonAssessment) -> bool:
    if level not in LEVEL_FLOORS:
        return False
    if turn_count < MIN_TURNS_FOR_COMPLETION or assessment.overall_grade < PASSING_GRADE:
        return False
    if not assessment.skill_demonstrated:
        return False
    return all(getattr(assessment, name) >= floor for name, floor in LEVEL_FLOORS[level].items())


def assess_lesson(lesson_id: str, level: str, history: Sequence[Turn]) -> LessonAssessment:
    """Heuristic assessment of the user's turns so far."""
    messages = [t.content for t in history if t.role == TurnRole.USER]
    count = len(messages)
    average = sum(len(m) for m in messages) / count if count else 0.0
    shown = skill_demonstrated(lesson_id, messages)

    effort = min(0.9, 0.4 + count / 10)
    naturalness = min(0.8, average / 100) if average > 10 else 0.3
    mastery = (0.8 if level == "gold" else 0.6) if shown else 0.3

    assessment = LessonAssessment(
        skill_demonstrated=shown,
        effort_level=round(effort, 2),
        naturalness=round(naturalness, 2),
        mastery=mastery,
        overall_grade=round((effort + naturalness + mastery) / 3, 2),
        message_count=count,
        average_length=round_half_up(average),
        completed=False,
    )
    completed = is_level_completed(level, len(history), assessment)
    return assessment.model_copy(update={"completed": completed})


def recommendations(assessment: LessonAssessment, lesson: LessonInfo, level: str) -> List[str]:
    recs = []
    if not assessment.skill_demonstrated:
        recs.append(f"Focus on practicing the core {lesson.title.lower()} technique")
    if assessment.naturalness < 0.6:
        recs.append("Try to make your responses feel more natural and conversational")
    if assessment.effort_level < 0.6:
        recs.append("Try engaging more actively in the conversation")
    if assessment.completed:
        position = LEVEL_ORDER.index(level) if level in LEVEL_ORDER else len(LEVEL_ORDER) - 1
        if position + 1 < len(LEVEL_ORDER):
            recs.append(f"Great job! Ready to try {LEVEL_ORDER[position + 1]} level")
        else:
            recs.append("Excellent! Try practicing this skill in scenarios")
    return recs


def build_coach_prompt(lesson: LessonInfo, level: str, character: Character, feedback_type: str) -> str:
    level_info = lesson.levels.get(level)
    lines = [
        f"You are an expert social skills coach providing {feedback_type} feedback.",
        "",
        "LESSON CONTEXT:",
        f"- Lesson: {lesson.title} ({level} level)",
    ]
    if level_info is not None:
        if level_info.learning_objective:
            lines.append(f"- Learning objective: {level_info.learning_objective}")
        if level_info.success_criteria:
            lines.append(f"- Success criteria: {', '.join(level_info.success_criteria)}")

    lines += [
        "",
        "PRACTICE PARTNER:",
        f"- Character: {character.display_name} ({character.type})",
    ]
    if character.core_traits.persona:
        lines.append(f"- Personality: {character.core_traits.persona}")
    if character.behavioral_rules:
        lines.append(f"- How they typically react: {', '.join(character.behavioral_rules[:3])}")

    lines += [
        "",
        "FEEDBACK INSTRUCTIONS:",
        FEEDBACK_INSTRUCTIONS[feedback_type],
        "",
        "Keep feedback:",
        "- Encouraging but honest",
        "- Specific with examples from their conversation",
        "- Under 150 words",
        "- Focused on the lesson objectives",
        "- Actionable for their next practice",
    ]
    return "\n".join(lines)


def summarize_conversation(history: Sequence[Turn], character: Character) -> str:
    partner = character.display_name.upper()
    transcript = "\n".join(
        f"{'STUDENT' if t.role == TurnRole.USER else partner}: {t.content}" for t in history
    )
    return f"CONVERSATION TO ANALYZE:\n{transcript}\n\nProvide specific, constructive feedback:"


@dataclass(frozen=True)
class CoachFeedback:
    feedback: str
    assessment: Optional[LessonAssessment]
    recommendations: List[str] = field(default_factory=list)
    warning: Optional[str] = None
    fallback_used: bool = False


class CoachService:
    """Asks the text generator for coach feedback, with canned feedback as fallback."""

    def __init__(self, generator: Optional[ReplyGenerator], *, timeout_seconds: float = 30.0):
        self.generator = generator
        self.timeout_seconds = timeout_seconds

    async def _generate(self, system_prompt: str, summary: str) -> str:
        if self.generator is None:
            raise RuntimeError("Text generation is not configured")
        raw = await asyncio.wait_for(
            self.generator.generate(system_prompt, [], summary),
            timeout=self.timeout_seconds,
        )
        if not raw or not raw.strip():
            raise RuntimeError("Empty reply from text generator")
        return raw.strip()

    async def coach(
        self,
        lesson: LessonInfo,
        level: str,
        character: Character,
        history: Sequence[Turn],
        feedback_type: str = "instant",
    ) -> CoachFeedback:
        """
        Raises ValueError for an unknown feedback type. Never fails on the
        generator: errors and timeouts produce the basic feedback with a warning.
        """
        if feedback_type not in FEEDBACK_INSTRUCTIONS:
            raise ValueError(f"Invalid feedback type: {feedback_type!r}")

        if not any(t.role == TurnRole.USER for t in history):
            return CoachFeedback(
                feedback=NO_PRACTICE_FEEDBACK,
                assessment=None,
                recommendations=list(NO_PRACTICE_RECOMMENDATIONS),
            )

        assessment = assess_lesson(lesson.id, level, history)
        try:
            text = await self._generate(
                build_coach_prompt(lesson, level, character, feedback_type),
                summarize_conversation(history, character),
            )
        except asyncio.TimeoutError:
            error = f"Coach feedback timed out after {self.timeout_seconds:g}s"
        except Exception as exc:
            error = str(exc) or type(exc).__name__
        else:
            return CoachFeedback(
                feedback=text,
                assessment=assessment,
                recommendations=recommendations(assessment, lesson, level),
            )

        logger.warning(
            "Coach feedback failed, using basic feedback",
            extra={"lesson_id": lesson.id, "feedback_type": feedback_type, "error": error},
        )
        return CoachFeedback(
            feedback=BASIC_FEEDBACK[feedback_type],
            assessment=assessment,
            recommendations=list(BASIC_RECOMMENDATIONS),
            warning=FALLBACK_WARNING,
            fallback_used=True,
        )
