"""Orchestration layer - conversation store, lifecycle state machine, reaper."""

from banter.orchestration.conversation_store import ConversationStore, ReapResult
from banter.orchestration.reaper import ConversationReaper
from banter.orchestration.state_machine import can_transition, is_terminal, valid_transitions

__all__ = [
    "ConversationStore",
    "ReapResult",
    "ConversationReaper",
    "can_transition",
    "is_terminal",
    "valid_transitions",
]
