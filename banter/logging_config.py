"""
Logging setup for Banter.

Records carry the request id (set by RequestIdMiddleware) and the anonymous
subject id (set by the subject dependency) so a single practice session can be
followed across conversation, rate-limit and reply logs. Production emits one
JSON object per line; development uses a compact text format.

    from banter.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Conversation started", extra={"conversation_id": conversation_id})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
subject_id_var: ContextVar[Optional[str]] = ContextVar("subject_id", default=None)

_CONTEXT_FIELDS = ("request_id", "subject_id")
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai")

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"} | set(_CONTEXT_FIELDS)


class ContextFilter(logging.Filter):
    """Stamps request and subject ids from context onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name, var in (("request_id", request_id_var), ("subject_id", subject_id_var)):
            # An explicit extra={"subject_id": ...} wins over the context value
            if getattr(record, name, None) in (None, "-"):
                setattr(record, name, var.get() or "-")
        return True


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with extra= fields flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value and value != "-":
                payload[name] = value
        payload.update(
            (key, _jsonable(value))
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and value is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _text_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s %(levelname)-5s [%(name)s] req=%(request_id)s subj=%(subject_id)s %(message)s",
        datefmt="%H:%M:%S",
    )


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Install the single root handler.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        environment: "production" switches to JSON output
        debug: forces DEBUG regardless of log_level
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if environment == "production" else _text_formatter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
