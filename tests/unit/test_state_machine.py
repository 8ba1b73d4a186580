"""Unit tests for the conversation status state machine."""

import pytest

from banter.kernel.models.conversation import ConversationStatus
from banter.orchestration.state_machine import can_transition, is_terminal, valid_transitions


class TestTransitions:
    """Allowed and forbidden transitions."""

    @pytest.mark.parametrize(
        "src, dst",
        [
            ("active", "paused"),
            ("active", "completed"),
            ("active", "abandoned"),
            ("paused", "active"),
            ("paused", "abandoned"),
        ],
    )
    def test_allowed(self, src, dst):
        assert can_transition(src, dst) is True

    @pytest.mark.parametrize(
        "src, dst",
        [
            ("paused", "completed"),
            ("completed", "active"),
            ("completed", "abandoned"),
            ("abandoned", "active"),
            ("abandoned", "paused"),
        ],
    )
    def test_forbidden(self, src, dst):
        assert can_transition(src, dst) is False

    def test_valid_transitions_sorted(self):
        assert valid_transitions(ConversationStatus.ACTIVE) == [
            ConversationStatus.ABANDONED,
            ConversationStatus.COMPLETED,
            ConversationStatus.PAUSED,
        ]

    def test_terminal_states(self):
        assert is_terminal("completed") is True
        assert is_terminal("abandoned") is True
        assert is_terminal("active") is False
        assert ConversationStatus.COMPLETED.is_terminal is True
        assert ConversationStatus.PAUSED.is_terminal is False

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError):
            can_transition("active", "archived")
