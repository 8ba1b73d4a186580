"""Unit tests for derived conversation statistics."""

from banter.engines.conversation.stats import round_half_up


class TestStats:
    """Counts, averages and duration."""

    def test_average_user_message_length(self, store, lesson_config):
        cid = store.start("s1", "lesson", lesson_config)
        for content in ("a" * 5, "b" * 15, "c" * 10):
            store.add_message(cid, "user", content)
            store.add_message(cid, "assistant", "reply that is much longer than the others")
        stats = store.stats(cid)
        assert stats.average_user_message_length == 10
        assert stats.user_message_count == 3
        assert stats.ai_message_count == 3
        assert stats.message_count == 6

    def test_no_user_messages_average_is_zero(self, store, lesson_config):
        cid = store.start("s1", "lesson", lesson_config)
        store.add_message(cid, "assistant", "hello")
        assert store.stats(cid).average_user_message_length == 0

    def test_duration_and_character(self, store, clock, lesson_config):
        cid = store.start("s1", "lesson", lesson_config)
        clock.advance(seconds=90)
        stats = store.stats(cid)
        assert stats.duration_seconds == 90
        assert stats.character == "Riley"
        assert stats.start_time == store.get(cid).start_time

    def test_stats_are_not_cached(self, store, lesson_config):
        cid = store.start("s1", "lesson", lesson_config)
        assert store.stats(cid).message_count == 0
        store.add_message(cid, "user", "hi")
        assert store.stats(cid).message_count == 1

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2
