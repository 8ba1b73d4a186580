"""
Kernel Layer

Foundational pieces the conversation core is built on:
- Conversation and persona models
- Session identity (anonymous subject ids)
- Sliding-window rate limiting
- Error types
"""

from banter.kernel.errors import InvalidConversationConfig, RateLimitExceeded
from banter.kernel.models import (
    Character,
    ConversationKind,
    ConversationRecord,
    ConversationStats,
    ConversationStatus,
    ConversationSummary,
    LessonConfig,
    ScenarioConfig,
    Turn,
    TurnRole,
)

__all__ = [
    # Errors
    "InvalidConversationConfig",
    "RateLimitExceeded",
    # Models
    "Character",
    "ConversationKind",
    "ConversationRecord",
    "ConversationStats",
    "ConversationStatus",
    "ConversationSummary",
    "LessonConfig",
    "ScenarioConfig",
    "Turn",
    "TurnRole",
]
