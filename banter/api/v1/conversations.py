"""
Conversation endpoints - messaging, history, stats and lifecycle.

Every endpoint resolves the conversation for the calling subject:
404 if it does not exist (or was reaped), 403 if it belongs to someone else.
"""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from banter.api.deps import RateLimitGuard, Replies, Store, SubjectId
from banter.config import get_settings
from banter.engines.conversation.feedback import (
    assess,
    check_mission_progress,
    measure_performance,
    summary_feedback,
)
from banter.engines.conversation.stats import round_half_up
from banter.kernel.models.conversation import (
    ConversationKind,
    ConversationRecord,
    ConversationStats,
    ConversationStatus,
    ScenarioConfig,
)
from banter.kernel.rate_limit import ACTION_MESSAGE, RateLimitDecision
from banter.logging_config import get_logger
from banter.orchestration.conversation_store import DEFAULT_HISTORY_LIMIT, ConversationStore
from banter.schemas.common import RateLimitInfo
from banter.schemas.conversation import (
    ConversationEndResponse,
    ConversationListItem,
    ConversationListResponse,
    HistoryMessage,
    HistoryResponse,
    MessageRequest,
    MessageResponse,
    MessageStats,
    StatusResponse,
)

logger = get_logger(__name__)
router = APIRouter()

FALLBACK_WARNING = "Using fallback response"
LESSON_END_FEEDBACK = "Good practice session! Focus on the main skill and keep working on it."


def _owned_record(store: ConversationStore, conversation_id: str, subject_id: str) -> ConversationRecord:
    record = store.get(conversation_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    if record.subject_id != subject_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    return record


def _mission(record: ConversationRecord):
    return record.config.mission if isinstance(record.config, ScenarioConfig) else None


@router.get("", response_model=ConversationListResponse)
async def list_conversations(subject_id: SubjectId, store: Store):
    """The caller's active conversations."""
    items = [
        ConversationListItem(
            conversation_id=r.id,
            kind=r.kind.value,
            status=r.status.value,
            character=r.character.display_name,
            message_count=r.message_count,
            start_time=r.start_time,
            last_activity=r.last_activity,
        )
        for r in store.user_conversations(subject_id)
    ]
    return ConversationListResponse(conversations=items, total=len(items))


@router.post("/{conversation_id}/messages", response_model=MessageResponse)
async def send_message(
    conversation_id: str,
    body: MessageRequest,
    subject_id: SubjectId,
    store: Store,
    replies: Replies,
    decision: Annotated[RateLimitDecision, Depends(RateLimitGuard(ACTION_MESSAGE))],
):
    """
    Send a message and get the persona's reply.

    Flow:
    1. Validate the message and ownership
    2. Append the user turn and generate a reply (fallback on failure)
    3. Report mission progress for scenarios with a mission
    """
    settings = get_settings()
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    if len(message) > settings.max_message_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Message too long (max {settings.max_message_length} characters)",
        )

    record = _owned_record(store, conversation_id, subject_id)
    if record.status != ConversationStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Conversation is {record.status.value}",
        )

    result = await replies.respond(store, record, message)
    if result is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conversation is no longer active")

    mission_progress = check_mission_progress(_mission(record), store.turns(conversation_id))
    stats = store.stats(conversation_id)

    return MessageResponse(
        conversation_id=conversation_id,
        response=result.text,
        mood=result.mood,
        character_state=result.character_state,
        character=record.character.display_name,
        fallback_used=result.fallback_used,
        warning=FALLBACK_WARNING if result.fallback_used else None,
        mission_progress=mission_progress,
        stats=MessageStats(
            message_count=stats.message_count if stats else record.message_count,
            duration_seconds=stats.duration_seconds if stats else 0,
        ),
        rate_limit=RateLimitInfo(remaining=decision.remaining, limit=decision.limit),
    )


@router.get("/{conversation_id}/history", response_model=HistoryResponse)
async def get_history(
    conversation_id: str,
    subject_id: SubjectId,
    store: Store,
    limit: int = Query(DEFAULT_HISTORY_LIMIT, description="Most recent turns to return"),
):
    """Most recent turns, oldest first."""
    _owned_record(store, conversation_id, subject_id)
    messages = [HistoryMessage(**m) for m in store.history(conversation_id, limit)]
    return HistoryResponse(conversation_id=conversation_id, messages=messages, total_count=len(messages))


@router.get("/{conversation_id}/stats", response_model=ConversationStats)
async def get_stats(conversation_id: str, subject_id: SubjectId, store: Store):
    _owned_record(store, conversation_id, subject_id)
    stats = store.stats(conversation_id)
    if stats is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return stats


@router.post("/{conversation_id}/pause", response_model=StatusResponse)
async def pause_conversation(conversation_id: str, subject_id: SubjectId, store: Store):
    record = _owned_record(store, conversation_id, subject_id)
    if not store.pause(conversation_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot pause a {record.status.value} conversation",
        )
    return StatusResponse(conversation_id=conversation_id, status=record.status.value)


@router.post("/{conversation_id}/resume", response_model=StatusResponse)
async def resume_conversation(conversation_id: str, subject_id: SubjectId, store: Store):
    record = _owned_record(store, conversation_id, subject_id)
    if not store.resume(conversation_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot resume a {record.status.value} conversation",
        )
    return StatusResponse(conversation_id=conversation_id, status=record.status.value)


@router.post("/{conversation_id}/end", response_model=ConversationEndResponse)
async def end_conversation(conversation_id: str, subject_id: SubjectId, store: Store, replies: Replies):
    """
    End a conversation and get a summary.

    Scenarios also get mission result, a performance rating, strengths and
    suggestions. A reply still being generated is recorded first. The
    conversation stays readable for a few seconds afterwards.
    """
    _owned_record(store, conversation_id, subject_id)
    summary = await replies.end(store, conversation_id)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    stats = store.stats(conversation_id)

    response = ConversationEndResponse(
        conversation_id=summary.id,
        kind=summary.kind.value,
        status=summary.status.value,
        character=summary.character.display_name,
        message_count=summary.message_count,
        duration_seconds=round_half_up(summary.duration_seconds),
        end_time=summary.end_time,
        stats=stats,
        feedback=LESSON_END_FEEDBACK,
    )

    if summary.kind == ConversationKind.SCENARIO:
        mission = summary.config.mission
        mission_result = check_mission_progress(mission, summary.history)
        performance = measure_performance(
            summary.history,
            summary.message_count,
            summary.duration or timedelta(0),
            mission_result,
        )
        response.feedback = summary_feedback(performance, mission)
        response.mission_result = mission_result
        response.performance = assess(performance, summary.history)
        logger.info(
            "Scenario assessed",
            extra={
                "conversation_id": summary.id,
                "rating": response.performance.rating,
                "mission_completed": performance.mission_completed,
            },
        )

    return response
