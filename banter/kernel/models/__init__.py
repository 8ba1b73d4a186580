"""
Conversation and persona models.
"""

from banter.kernel.models.character import Character, CoreTraits
from banter.kernel.models.conversation import (
    LEVEL_ORDER,
    ConversationConfig,
    ConversationKind,
    ConversationRecord,
    ConversationStats,
    ConversationStatus,
    ConversationSummary,
    LessonConfig,
    LessonInfo,
    LevelInfo,
    MissionInfo,
    ScenarioConfig,
    ScenarioInfo,
    Turn,
    TurnRole,
    config_adapter,
)

__all__ = [
    "Character",
    "CoreTraits",
    "LEVEL_ORDER",
    "ConversationConfig",
    "ConversationKind",
    "ConversationRecord",
    "ConversationStats",
    "ConversationStatus",
    "ConversationSummary",
    "LessonConfig",
    "LessonInfo",
    "LevelInfo",
    "MissionInfo",
    "ScenarioConfig",
    "ScenarioInfo",
    "Turn",
    "TurnRole",
    "config_adapter",
]
