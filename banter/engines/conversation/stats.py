"""
Conversation statistics, derived on demand from a record's current state.
"""

import math
from datetime import datetime

from banter.kernel.models.conversation import ConversationRecord, ConversationStats, TurnRole


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_stats(record: ConversationRecord, now: datetime) -> ConversationStats:
    """
    Compute message counts, duration and average user message length.

    Never cached. With no user messages the average is 0.
    """
    with record.lock:
        history = list(record.history)
        message_count = record.message_count
        start_time = record.start_time
        last_activity = record.last_activity
        character = record.character

    user_lengths = [len(t.content) for t in history if t.role == TurnRole.USER]
    ai_count = sum(1 for t in history if t.role == TurnRole.ASSISTANT)
    average = round_half_up(sum(user_lengths) / len(user_lengths)) if user_lengths else 0

    return ConversationStats(
        duration_seconds=max(0, round_half_up((now - start_time).total_seconds())),
        message_count=message_count,
        user_message_count=len(user_lengths),
        ai_message_count=ai_count,
        average_user_message_length=average,
        start_time=start_time,
        last_activity=last_activity,
        character=character.display_name,
    )
