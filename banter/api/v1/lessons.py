"""
Lesson endpoints - browse lessons, start a lesson conversation and get coach
feedback on it.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status

from banter.ai.prompts import process_reply
from banter.api.deps import Catalog, Coach, RateLimitGuard, Store, SubjectId
from banter.engines.conversation.coaching import FEEDBACK_TYPES
from banter.kernel.errors import InvalidConversationConfig
from banter.kernel.models.conversation import LEVEL_ORDER, ConversationKind, LessonConfig, TurnRole
from banter.kernel.rate_limit import ACTION_CONVERSATION_START, RateLimitDecision
from banter.logging_config import get_logger
from banter.schemas.common import RateLimitInfo
from banter.schemas.conversation import (
    CharacterResponse,
    CoachFeedbackRequest,
    CoachFeedbackResponse,
    ConversationStartResponse,
    LessonResponse,
    LessonStartRequest,
)

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=List[LessonResponse])
async def list_lessons(catalog: Catalog):
    """All available lessons."""
    return [
        LessonResponse(
            id=lesson.id,
            title=lesson.title,
            category=lesson.category,
            description=lesson.description,
            setting=lesson.setting,
            levels=[lvl for lvl in LEVEL_ORDER if lvl in lesson.levels],
        )
        for lesson in catalog.list_lessons()
    ]


@router.post(
    "/{lesson_id}/start",
    response_model=ConversationStartResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_lesson(
    lesson_id: str,
    body: LessonStartRequest,
    subject_id: SubjectId,
    store: Store,
    catalog: Catalog,
    decision: Annotated[RateLimitDecision, Depends(RateLimitGuard(ACTION_CONVERSATION_START))],
):
    """
    Start practising a lesson at a level.

    The persona defaults to the practice partner unless character_id is given.
    An opening line from the persona is added to the conversation.
    """
    lesson = catalog.get_lesson(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")

    try:
        conversation_id = store.start(
            subject_id,
            ConversationKind.LESSON,
            {
                "lesson_id": lesson.id,
                "level": body.level,
                "lesson": lesson,
                "character_id": body.character_id,
            },
        )
    except InvalidConversationConfig as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    record = store.get(conversation_id)
    greeting = catalog.lesson_greeting(lesson, record.character)
    store.add_message(conversation_id, TurnRole.ASSISTANT, greeting)
    processed = process_reply(greeting)

    return ConversationStartResponse(
        conversation_id=conversation_id,
        kind=ConversationKind.LESSON.value,
        character=CharacterResponse.from_character(record.character),
        starter_message=processed.text,
        mood=processed.mood,
        rate_limit=RateLimitInfo(remaining=decision.remaining, limit=decision.limit),
    )


@router.post("/{lesson_id}/feedback", response_model=CoachFeedbackResponse)
async def coach_feedback(
    lesson_id: str,
    body: CoachFeedbackRequest,
    subject_id: SubjectId,
    store: Store,
    catalog: Catalog,
    coach: Coach,
):
    """
    Coach feedback on a lesson conversation.

    Types: instant (how it's going), advice (for the next reply), end_practice
    and final_review. Falls back to basic feedback with a warning when the
    coach model is unavailable.
    """
    if body.feedback_type not in FEEDBACK_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid feedback type")

    record = store.get(body.conversation_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    if record.subject_id != subject_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    if not isinstance(record.config, LessonConfig) or record.config.lesson_id != lesson_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Conversation is not a practice of this lesson",
        )

    lesson = record.config.lesson or catalog.get_lesson(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")

    result = await coach.coach(
        lesson,
        record.config.level,
        record.character,
        store.turns(record.id),
        body.feedback_type,
    )
    if result.fallback_used:
        logger.info(
            "Basic coach feedback returned",
            extra={"conversation_id": record.id, "feedback_type": body.feedback_type},
        )

    return CoachFeedbackResponse(
        feedback=result.feedback,
        assessment=result.assessment,
        recommendations=result.recommendations,
        warning=result.warning,
        stats=store.stats(record.id),
    )
