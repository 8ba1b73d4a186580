"""
Pydantic schemas for API request/response validation.
"""

from banter.schemas.common import ErrorResponse, HealthResponse, RateLimitErrorResponse, RateLimitInfo
from banter.schemas.conversation import (
    CharacterResponse,
    CoachFeedbackRequest,
    CoachFeedbackResponse,
    ConversationEndResponse,
    ConversationListItem,
    ConversationListResponse,
    ConversationStartResponse,
    HistoryMessage,
    HistoryResponse,
    LessonResponse,
    LessonStartRequest,
    MessageRequest,
    MessageResponse,
    MessageStats,
    MissionResponse,
    ScenarioResponse,
    ScenarioStartRequest,
    StatusResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "RateLimitErrorResponse",
    "RateLimitInfo",
    "CharacterResponse",
    "CoachFeedbackRequest",
    "CoachFeedbackResponse",
    "ConversationEndResponse",
    "ConversationListItem",
    "ConversationListResponse",
    "ConversationStartResponse",
    "HistoryMessage",
    "HistoryResponse",
    "LessonResponse",
    "LessonStartRequest",
    "MessageRequest",
    "MessageResponse",
    "MessageStats",
    "MissionResponse",
    "ScenarioResponse",
    "ScenarioStartRequest",
    "StatusResponse",
]
