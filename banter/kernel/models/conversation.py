"""
Conversation data model.

A conversation is one bounded chat session between a subject and a persona,
scoped to a lesson level or a scenario (optionally with a mission). The
configuration is a tagged union keyed by ``kind``; each arm is a frozen model
captured at start and never mutated afterwards.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from banter.kernel.models.character import Character


class ConversationKind(str, Enum):
    """Conversation category."""
    LESSON = "lesson"
    SCENARIO = "scenario"


class ConversationStatus(str, Enum):
    """Lifecycle status of a conversation."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"      # terminal
    ABANDONED = "abandoned"      # terminal

    @property
    def is_terminal(self) -> bool:
        return self in (ConversationStatus.COMPLETED, ConversationStatus.ABANDONED)


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


LessonLevel = Literal["bronze", "silver", "gold"]
LEVEL_ORDER: Tuple[str, ...] = ("bronze", "silver", "gold")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class LevelInfo(_Frozen):
    learning_objective: str = ""
    description: str = ""
    success_criteria: Tuple[str, ...] = ()


class LessonInfo(_Frozen):
    """Snapshot of the lesson content a conversation practises."""

    id: str
    title: str
    category: str = ""
    description: str = ""
    setting: str = ""
    levels: Dict[str, LevelInfo] = Field(default_factory=dict)
    character_instructions: Dict[str, str] = Field(default_factory=dict)
    starter_messages: Tuple[str, ...] = ()


class ScenarioInfo(_Frozen):
    """Snapshot of the social setting a scenario conversation takes place in."""

    id: str
    name: str
    description: str = ""
    mood: str = ""
    time_of_day: str = ""
    difficulty: str = ""
    social_norms: Tuple[str, ...] = ()
    characters_present: Tuple[str, ...] = ()
    conversation_starters: Tuple[str, ...] = ()


class MissionInfo(_Frozen):
    id: str
    name: str
    description: str = ""
    difficulty: str = ""
    success_criteria: Tuple[str, ...] = ()


class LessonConfig(_Frozen):
    kind: Literal["lesson"] = "lesson"
    lesson_id: str = Field(min_length=1)
    level: LessonLevel = "bronze"
    lesson: Optional[LessonInfo] = None
    character: Optional[Character] = None
    character_id: Optional[str] = None


class ScenarioConfig(_Frozen):
    kind: Literal["scenario"] = "scenario"
    scenario_id: str = Field(min_length=1)
    scenario: Optional[ScenarioInfo] = None
    character: Optional[Character] = None
    character_id: Optional[str] = None
    mission: Optional[MissionInfo] = None


ConversationConfig = Annotated[Union[LessonConfig, ScenarioConfig], Field(discriminator="kind")]
config_adapter: TypeAdapter = TypeAdapter(ConversationConfig)


class Turn(BaseModel):
    """One message in a conversation history."""

    model_config = ConfigDict(frozen=True)

    role: TurnRole
    content: str
    timestamp: datetime

    def as_message(self) -> Dict[str, str]:
        """Plain role/content dict for the text-generation collaborator."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class ConversationRecord:
    """
    Live conversation state owned by the ConversationStore.

    ``subject_id``, ``kind``, ``config`` and ``character`` are fixed at
    creation. ``history`` is append-only. Mutations happen under ``lock``.
    ``reply_pending`` is set while a user turn is waiting for its reply; such a
    record is never removed until the reply is recorded.
    """

    id: str
    subject_id: str
    kind: ConversationKind
    config: Union[LessonConfig, ScenarioConfig]
    character: Character
    start_time: datetime
    last_activity: datetime
    status: ConversationStatus = ConversationStatus.ACTIVE
    history: List[Turn] = field(default_factory=list)
    message_count: int = 0
    end_time: Optional[datetime] = None
    duration: Optional[timedelta] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    removal_due_at: Optional[datetime] = None
    reply_pending: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


class ConversationSummary(BaseModel):
    """Immutable snapshot returned when a conversation ends."""

    model_config = ConfigDict(frozen=True)

    id: str
    subject_id: str
    kind: ConversationKind
    config: ConversationConfig
    character: Character
    status: ConversationStatus
    start_time: datetime
    end_time: Optional[datetime]
    duration: Optional[timedelta]
    message_count: int
    history: Tuple[Turn, ...]

    @property
    def duration_seconds(self) -> float:
        return self.duration.total_seconds() if self.duration is not None else 0.0


class ConversationStats(BaseModel):
    """Derived metrics for a conversation, computed on demand."""

    duration_seconds: int
    message_count: int
    user_message_count: int
    ai_message_count: int
    average_user_message_length: int
    start_time: datetime
    last_activity: datetime
    character: str
