"""
Tests for structured logging.
"""

import json
import logging

from banter.logging_config import ContextFilter, JsonFormatter, request_id_var, subject_id_var


def _record(msg: str = "Conversation started", **extra) -> logging.LogRecord:
    record = logging.LogRecord("banter.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextFilter:
    """Context ids are stamped onto records."""

    def test_uses_context_values(self):
        req_token = request_id_var.set("req-1")
        subj_token = subject_id_var.set("abcdef0123456789")
        try:
            record = _record()
            assert ContextFilter().filter(record) is True
        finally:
            request_id_var.reset(req_token)
            subject_id_var.reset(subj_token)
        assert record.request_id == "req-1"
        assert record.subject_id == "abcdef0123456789"

    def test_placeholder_outside_request(self):
        record = _record()
        ContextFilter().filter(record)
        assert record.request_id == "-"
        assert record.subject_id == "-"

    def test_explicit_extra_wins(self):
        token = subject_id_var.set("from-context")
        try:
            record = _record(subject_id="from-extra")
            ContextFilter().filter(record)
        finally:
            subject_id_var.reset(token)
        assert record.subject_id == "from-extra"


class TestJsonFormatter:
    """JSON output for production."""

    def test_extra_fields_flattened(self):
        record = _record(conversation_id="lesson_abc_1_ff00aa", message_count=3)
        ContextFilter().filter(record)
        payload = json.loads(JsonFormatter().format(record))
        assert payload["msg"] == "Conversation started"
        assert payload["level"] == "INFO"
        assert payload["conversation_id"] == "lesson_abc_1_ff00aa"
        assert payload["message_count"] == 3
        assert "request_id" not in payload

    def test_unserializable_values_stringified(self):
        record = _record(status=object())
        payload = json.loads(JsonFormatter().format(record))
        assert payload["status"].startswith("<object object")
