"""
State machine for conversation lifecycle status.

active -> paused | completed | abandoned
paused -> active | abandoned
completed and abandoned are terminal.
"""

from typing import Dict, FrozenSet, List, Union

from banter.kernel.models.conversation import ConversationStatus

_TRANSITIONS: Dict[ConversationStatus, FrozenSet[ConversationStatus]] = {
    ConversationStatus.ACTIVE: frozenset({
        ConversationStatus.PAUSED,
        ConversationStatus.COMPLETED,
        ConversationStatus.ABANDONED,
    }),
    ConversationStatus.PAUSED: frozenset({
        ConversationStatus.ACTIVE,
        ConversationStatus.ABANDONED,
    }),
    ConversationStatus.COMPLETED: frozenset(),
    ConversationStatus.ABANDONED: frozenset(),
}


def _coerce(status: Union[ConversationStatus, str]) -> ConversationStatus:
    return status if isinstance(status, ConversationStatus) else ConversationStatus(status)


def valid_transitions(from_status: Union[ConversationStatus, str]) -> List[ConversationStatus]:
    """Return valid target statuses from the given status."""
    return sorted(_TRANSITIONS[_coerce(from_status)], key=lambda s: s.value)


def can_transition(
    from_status: Union[ConversationStatus, str],
    to_status: Union[ConversationStatus, str],
) -> bool:
    """Check whether from_status -> to_status is allowed."""
    return _coerce(to_status) in _TRANSITIONS[_coerce(from_status)]


def is_terminal(status: Union[ConversationStatus, str]) -> bool:
    return not _TRANSITIONS[_coerce(status)]
