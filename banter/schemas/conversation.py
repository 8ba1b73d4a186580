"""
Pydantic schemas for lesson, scenario and conversation endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from banter.engines.conversation.coaching import FEEDBACK_TYPES, LessonAssessment
from banter.engines.conversation.feedback import MissionProgress, PerformanceAssessment
from banter.kernel.models.character import Character
from banter.kernel.models.conversation import ConversationStats, LessonLevel, MissionInfo
from banter.schemas.common import RateLimitInfo


# ── Catalog ───────────────────────────────────────────────────────────────

class CharacterResponse(BaseModel):
    """Public view of a persona."""

    id: str
    name: str
    type: str
    description: str = ""
    avatar: Optional[str] = None
    interests: List[str] = []

    @classmethod
    def from_character(cls, character: Character) -> "CharacterResponse":
        return cls(
            id=character.id,
            name=character.display_name,
            type=character.type,
            description=character.description,
            avatar=character.avatar,
            interests=list(character.interests),
        )


class LessonResponse(BaseModel):
    id: str
    title: str
    category: str
    description: str
    setting: str
    levels: List[str]


class ScenarioResponse(BaseModel):
    id: str
    name: str
    description: str
    mood: str
    difficulty: str
    characters_present: List[str]


class MissionResponse(BaseModel):
    id: str
    name: str
    description: str
    difficulty: str
    success_criteria: List[str]

    @classmethod
    def from_mission(cls, mission: MissionInfo) -> "MissionResponse":
        return cls(
            id=mission.id,
            name=mission.name,
            description=mission.description,
            difficulty=mission.difficulty,
            success_criteria=list(mission.success_criteria),
        )


# ── Start ─────────────────────────────────────────────────────────────────

class LessonStartRequest(BaseModel):
    """Body for starting a lesson conversation."""

    level: LessonLevel = "bronze"
    character_id: Optional[str] = None


class ScenarioStartRequest(BaseModel):
    """Body for starting a scenario conversation. Omit character_id for a random pick."""

    character_id: Optional[str] = None
    mission: Optional[str] = Field(None, description="Mission id")


class ConversationStartResponse(BaseModel):
    conversation_id: str
    kind: str
    character: CharacterResponse
    starter_message: str
    mood: str
    mission: Optional[MissionResponse] = None
    rate_limit: RateLimitInfo


# ── Messages ──────────────────────────────────────────────────────────────

class MessageRequest(BaseModel):
    """User message. Length limits are enforced by the route from settings."""

    message: str


class MessageStats(BaseModel):
    message_count: int
    duration_seconds: int


class MessageResponse(BaseModel):
    conversation_id: str
    response: str
    mood: str
    character_state: str
    character: str
    fallback_used: bool = False
    warning: Optional[str] = None
    mission_progress: Optional[MissionProgress] = None
    stats: MessageStats
    rate_limit: RateLimitInfo


class HistoryMessage(BaseModel):
    role: str
    content: str


class HistoryResponse(BaseModel):
    conversation_id: str
    messages: List[HistoryMessage]
    total_count: int


# ── Lifecycle ─────────────────────────────────────────────────────────────

class ConversationListItem(BaseModel):
    conversation_id: str
    kind: str
    status: str
    character: str
    message_count: int
    start_time: datetime
    last_activity: datetime


class ConversationListResponse(BaseModel):
    conversations: List[ConversationListItem]
    total: int


class StatusResponse(BaseModel):
    conversation_id: str
    status: str


class ConversationEndResponse(BaseModel):
    """End-of-conversation summary. Scenario fields are None for lessons."""

    conversation_id: str
    kind: str
    status: str
    character: str
    message_count: int
    duration_seconds: int
    end_time: Optional[datetime] = None
    stats: Optional[ConversationStats] = None
    feedback: Optional[str] = None
    mission_result: Optional[MissionProgress] = None
    performance: Optional[PerformanceAssessment] = None


# ── Coaching ──────────────────────────────────────────────────────────────

class CoachFeedbackRequest(BaseModel):
    """Body for lesson coach feedback. The type is checked by the route."""

    conversation_id: str
    feedback_type: str = Field("instant", description=f"One of: {', '.join(FEEDBACK_TYPES)}")


class CoachFeedbackResponse(BaseModel):
    feedback: str
    assessment: Optional[LessonAssessment] = None
    recommendations: List[str] = []
    warning: Optional[str] = None
    stats: Optional[ConversationStats] = None
