"""
Conversation Engine - persona binding, replies, statistics and feedback.

- CharacterSelector: resolves the persona for a new conversation
- ReplyService: generates replies with an in-character fallback
- CoachService: lesson coach feedback with a basic fallback
- compute_stats: derived per-conversation metrics
- feedback: scenario mission progress and performance assessment
"""

from banter.engines.conversation.character_selector import CharacterCatalog, CharacterSelector
from banter.engines.conversation.coaching import CoachService
from banter.engines.conversation.reply_service import ReplyGenerator, ReplyResult, ReplyService
from banter.engines.conversation.stats import compute_stats

__all__ = [
    "CharacterCatalog",
    "CharacterSelector",
    "CoachService",
    "ReplyGenerator",
    "ReplyResult",
    "ReplyService",
    "compute_stats",
]
