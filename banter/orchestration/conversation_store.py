"""
Conversation Store - sole owner of live conversation state.

In-memory, process-wide (one instance per application, owned by the
composition root). A restart loses all live conversations; durable progress
is recorded elsewhere when a conversation ends.

Missing conversations are reported as data (False / None / []), never raised.
Only an invalid kind or configuration at start is rejected with an exception,
before any record is created.
"""

import itertools
import secrets
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from banter.config import Settings, get_settings
from banter.engines.conversation.character_selector import CharacterSelector
from banter.engines.conversation.stats import compute_stats
from banter.kernel.errors import InvalidConversationConfig
from banter.kernel.models.conversation import (
    ConversationKind,
    ConversationRecord,
    ConversationStats,
    ConversationStatus,
    ConversationSummary,
    LessonConfig,
    ScenarioConfig,
    Turn,
    TurnRole,
    config_adapter,
)
from banter.logging_config import get_logger
from banter.orchestration.state_machine import can_transition

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 20


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReapResult:
    """Outcome of one sweep."""
    abandoned: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class ConversationStore:
    """
    Creates, mutates, ends and reaps conversations.

    The id map is guarded by a store-wide lock; each record carries its own
    lock, held for every mutation so turns within one conversation are never
    interleaved. The reaper takes the same record lock (non-blocking) and
    skips records that are mid-mutation.
    """

    def __init__(
        self,
        selector: CharacterSelector,
        *,
        idle_threshold: timedelta = timedelta(hours=2),
        retention_threshold: timedelta = timedelta(hours=24),
        end_grace: timedelta = timedelta(seconds=5),
        default_history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.selector = selector
        self.idle_threshold = idle_threshold
        self.retention_threshold = retention_threshold
        self.end_grace = end_grace
        self.default_history_limit = default_history_limit
        self._clock = clock
        self._records: Dict[str, ConversationRecord] = {}
        self._lock = threading.RLock()
        self._reap_guard = threading.Lock()
        self._sequence = itertools.count(1)

    @classmethod
    def from_settings(
        cls,
        selector: CharacterSelector,
        settings: Optional[Settings] = None,
        **kwargs: Any,
    ) -> "ConversationStore":
        settings = settings or get_settings()
        return cls(
            selector,
            idle_threshold=settings.idle_threshold,
            retention_threshold=settings.retention_threshold,
            end_grace=settings.end_grace,
            **kwargs,
        )

    # ── Creation ──────────────────────────────────────────────────────────

    def start(
        self,
        subject_id: str,
        kind: Union[ConversationKind, str],
        config: Union[LessonConfig, ScenarioConfig, Mapping[str, Any]],
    ) -> str:
        """Create an active conversation and return its id."""
        if not subject_id:
            raise InvalidConversationConfig("subject_id is required")
        kind = self._coerce_kind(kind)
        parsed = self._parse_config(kind, config)
        character = self.selector.select(kind, parsed)

        now = self._clock()
        with self._lock:
            conversation_id = f"{kind.value}_{subject_id[:8]}_{next(self._sequence)}_{secrets.token_hex(3)}"
            self._records[conversation_id] = ConversationRecord(
                id=conversation_id,
                subject_id=subject_id,
                kind=kind,
                config=parsed,
                character=character,
                start_time=now,
                last_activity=now,
            )

        logger.info(
            "Conversation started",
            extra={
                "conversation_id": conversation_id,
                "subject_id": subject_id,
                "kind": kind.value,
                "character_id": character.id,
            },
        )
        return conversation_id

    @staticmethod
    def _coerce_kind(kind: Union[ConversationKind, str]) -> ConversationKind:
        try:
            return ConversationKind(kind)
        except ValueError:
            raise InvalidConversationConfig(f"Unknown conversation kind: {kind!r}") from None

    @staticmethod
    def _parse_config(
        kind: ConversationKind,
        config: Union[LessonConfig, ScenarioConfig, Mapping[str, Any]],
    ) -> Union[LessonConfig, ScenarioConfig]:
        if isinstance(config, (LessonConfig, ScenarioConfig)):
            if config.kind != kind.value:
                raise InvalidConversationConfig(
                    f"{type(config).__name__} cannot back a {kind.value} conversation"
                )
            return config
        if isinstance(config, BaseModel) or not isinstance(config, Mapping):
            raise InvalidConversationConfig("Conversation config must be a mapping or config model")

        data = dict(config)
        declared = data.setdefault("kind", kind.value)
        if declared != kind.value:
            raise InvalidConversationConfig(
                f"Config kind {declared!r} does not match conversation kind {kind.value!r}"
            )
        try:
            return config_adapter.validate_python(data)
        except ValidationError as exc:
            raise InvalidConversationConfig(str(exc)) from exc

    # ── Lookup ────────────────────────────────────────────────────────────

    def _live(self, conversation_id: str) -> Optional[ConversationRecord]:
        """Return the record unless missing or past its post-end grace period."""
        with self._lock:
            record = self._records.get(conversation_id)
            if record is None:
                return None
            if (
                record.removal_due_at is not None
                and not record.reply_pending
                and self._clock() >= record.removal_due_at
            ):
                del self._records[conversation_id]
                logger.debug("Ended conversation removed", extra={"conversation_id": conversation_id})
                return None
            return record

    def _still_owned(self, record: ConversationRecord) -> bool:
        with self._lock:
            return self._records.get(record.id) is record

    def get(self, conversation_id: str) -> Optional[ConversationRecord]:
        """
        Read accessor. Does not authorize: callers must compare
        ``record.subject_id`` with their own subject (see ``get_owned``).
        """
        return self._live(conversation_id)

    def get_owned(self, conversation_id: str, subject_id: str) -> Optional[ConversationRecord]:
        record = self._live(conversation_id)
        if record is None or record.subject_id != subject_id:
            return None
        return record

    def history(self, conversation_id: str, limit: Optional[int] = None) -> List[Dict[str, str]]:
        """Most recent ``limit`` turns as role/content dicts, oldest first."""
        if limit is None:
            limit = self.default_history_limit
        if limit <= 0:
            return []
        record = self._live(conversation_id)
        if record is None:
            return []
        with record.lock:
            turns = record.history[-limit:]
        return [turn.as_message() for turn in turns]

    def turns(self, conversation_id: str) -> List[Turn]:
        """Copy of the full turn history."""
        record = self._live(conversation_id)
        if record is None:
            return []
        with record.lock:
            return list(record.history)

    def user_conversations(self, subject_id: str) -> List[ConversationRecord]:
        """Active conversations belonging to a subject."""
        with self._lock:
            records = list(self._records.values())
        return [
            r for r in records
            if r.subject_id == subject_id and r.status == ConversationStatus.ACTIVE
        ]

    # ── Mutation ──────────────────────────────────────────────────────────

    def add_message(
        self,
        conversation_id: str,
        role: Union[TurnRole, str],
        content: str,
    ) -> bool:
        """
        Append a turn. Returns False for unknown conversations and for
        conversations that are already completed or abandoned.
        """
        role = TurnRole(role)
        record = self._live(conversation_id)
        if record is None:
            logger.debug("add_message on unknown conversation", extra={"conversation_id": conversation_id})
            return False

        with record.lock:
            if not self._accepts_turns(record):
                return False
            self._append(record, role, content)
        return True

    def begin_exchange(self, conversation_id: str, content: str) -> bool:
        """
        Append a user turn that is owed an assistant reply.

        Rejected under the same rules as ``add_message``. Until
        ``complete_exchange`` runs, the record is kept even if it is ended or
        ages out, so the reply can always be recorded.
        """
        record = self._live(conversation_id)
        if record is None:
            return False
        with record.lock:
            if not self._accepts_turns(record):
                return False
            self._append(record, TurnRole.USER, content)
            record.reply_pending = True
        return True

    def complete_exchange(self, conversation_id: str, content: str) -> bool:
        """
        Append the reply owed by ``begin_exchange``. Accepted even when the
        conversation was ended or abandoned while the reply was generated.
        """
        with self._lock:
            record = self._records.get(conversation_id)
        if record is None:
            return False
        with record.lock:
            if not record.reply_pending:
                return False
            closed = record.status.is_terminal
            self._append(record, TurnRole.ASSISTANT, content, touch=not closed)
            record.reply_pending = False
        if closed:
            logger.info(
                "Reply recorded after conversation closed",
                extra={"conversation_id": conversation_id, "status": record.status.value},
            )
        return True

    def _accepts_turns(self, record: ConversationRecord) -> bool:
        if not self._still_owned(record):
            return False
        if record.status.is_terminal:
            logger.warning(
                "Rejected message for closed conversation",
                extra={"conversation_id": record.id, "status": record.status.value},
            )
            return False
        return True

    def _append(self, record: ConversationRecord, role: TurnRole, content: str, *, touch: bool = True) -> None:
        now = self._clock()
        record.history.append(Turn(role=role, content=content, timestamp=now))
        record.message_count += 1
        if touch:
            record.last_activity = now

    def update_status(
        self,
        conversation_id: str,
        status: Union[ConversationStatus, str],
        extra: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Transition a conversation's status. Repeating the current status is a
        no-op success; transitions the state machine forbids return False.
        """
        status = ConversationStatus(status)
        record = self._live(conversation_id)
        if record is None:
            return False
        with record.lock:
            return self._apply_status(record, status, extra)

    def _apply_status(
        self,
        record: ConversationRecord,
        status: ConversationStatus,
        extra: Optional[Mapping[str, Any]] = None,
        *,
        touch: bool = True,
    ) -> bool:
        if record.status == status:
            if extra:
                record.metadata.update(extra)
            return True
        if not can_transition(record.status, status):
            logger.warning(
                "Invalid status transition",
                extra={
                    "conversation_id": record.id,
                    "from_status": record.status.value,
                    "to_status": status.value,
                },
            )
            return False

        previous = record.status
        now = self._clock()
        record.status = status
        if touch:
            record.last_activity = now
        if status == ConversationStatus.COMPLETED:
            record.end_time = now
            record.duration = now - record.start_time
        if extra:
            record.metadata.update(extra)

        logger.info(
            "Conversation status changed",
            extra={
                "conversation_id": record.id,
                "from_status": previous.value,
                "to_status": status.value,
            },
        )
        return True

    def annotate(self, conversation_id: str, extra: Mapping[str, Any]) -> bool:
        """Merge ``extra`` into the record's metadata without touching status."""
        record = self._live(conversation_id)
        if record is None:
            return False
        with record.lock:
            record.metadata.update(extra)
        return True

    def pause(self, conversation_id: str) -> bool:
        return self.update_status(conversation_id, ConversationStatus.PAUSED)

    def resume(self, conversation_id: str) -> bool:
        return self.update_status(conversation_id, ConversationStatus.ACTIVE)

    def abandon(self, conversation_id: str) -> bool:
        return self.update_status(conversation_id, ConversationStatus.ABANDONED)

    # ── Completion ────────────────────────────────────────────────────────

    def end(self, conversation_id: str) -> Optional[ConversationSummary]:
        """
        Complete a conversation and return its summary.

        The record stays readable for ``end_grace`` so a caller can still
        fetch it for a follow-up report, then it is removed. A paused
        conversation is completed as well; an abandoned one keeps its status.
        """
        record = self._live(conversation_id)
        if record is None:
            return None

        with record.lock:
            if record.status == ConversationStatus.PAUSED:
                self._apply_status(record, ConversationStatus.ACTIVE)
            if record.status == ConversationStatus.ACTIVE:
                self._apply_status(record, ConversationStatus.COMPLETED)
            elif record.end_time is None:
                record.end_time = self._clock()
                record.duration = record.end_time - record.start_time

            if record.removal_due_at is None:
                record.removal_due_at = self._clock() + self.end_grace
            summary = self._summarize(record)

        logger.info(
            "Conversation ended",
            extra={
                "conversation_id": conversation_id,
                "status": summary.status.value,
                "message_count": summary.message_count,
                "duration_seconds": round(summary.duration_seconds, 1),
            },
        )
        return summary

    @staticmethod
    def _summarize(record: ConversationRecord) -> ConversationSummary:
        return ConversationSummary(
            id=record.id,
            subject_id=record.subject_id,
            kind=record.kind,
            config=record.config,
            character=record.character,
            status=record.status,
            start_time=record.start_time,
            end_time=record.end_time,
            duration=record.duration,
            message_count=record.message_count,
            history=tuple(record.history),
        )

    def stats(self, conversation_id: str) -> Optional[ConversationStats]:
        """Derived statistics, computed fresh on every call."""
        record = self._live(conversation_id)
        if record is None:
            return None
        return compute_stats(record, self._clock())

    # ── Housekeeping ──────────────────────────────────────────────────────

    def reap(self) -> ReapResult:
        """
        Age out idle conversations.

        Active conversations idle past ``idle_threshold`` become abandoned.
        Any conversation idle past ``retention_threshold``, or past its
        post-end grace period, is removed. Only one sweep runs at a time.
        """
        result = ReapResult()
        if not self._reap_guard.acquire(blocking=False):
            logger.debug("Sweep already in progress, skipping")
            return result

        try:
            now = self._clock()
            with self._lock:
                records = list(self._records.values())

            for record in records:
                if not record.lock.acquire(blocking=False):
                    result.skipped.append(record.id)
                    continue
                try:
                    idle = now - record.last_activity
                    expired_after_end = record.removal_due_at is not None and now >= record.removal_due_at
                    if record.reply_pending:
                        result.skipped.append(record.id)
                    elif expired_after_end or idle > self.retention_threshold:
                        with self._lock:
                            if self._records.get(record.id) is record:
                                del self._records[record.id]
                                result.removed.append(record.id)
                    elif record.status == ConversationStatus.ACTIVE and idle > self.idle_threshold:
                        if self._apply_status(record, ConversationStatus.ABANDONED, touch=False):
                            result.abandoned.append(record.id)
                finally:
                    record.lock.release()
        finally:
            self._reap_guard.release()

        logger.info(
            "Conversation sweep completed",
            extra={
                "abandoned": len(result.abandoned),
                "removed": len(result.removed),
                "skipped": len(result.skipped),
                "live": len(self),
            },
        )
        return result

    def service_stats(self) -> Dict[str, int]:
        """Counts of live conversations by status."""
        with self._lock:
            statuses = Counter(r.status for r in self._records.values())
            total = len(self._records)
        return {
            "total_conversations": total,
            "active_conversations": statuses[ConversationStatus.ACTIVE],
            "paused_conversations": statuses[ConversationStatus.PAUSED],
            "completed_conversations": statuses[ConversationStatus.COMPLETED],
            "abandoned_conversations": statuses[ConversationStatus.ABANDONED],
        }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, conversation_id: object) -> bool:
        with self._lock:
            return conversation_id in self._records
