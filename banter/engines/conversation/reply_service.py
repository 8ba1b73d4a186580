"""
Reply Service - one user turn in, one assistant turn out.

Flow:
1. Append the user's message to the conversation
2. Build the persona system prompt and recent history
3. Call the text generator, bounded by a timeout
4. On any failure, substitute a deterministic in-character fallback
5. Append the assistant reply

Every accepted user message gets an assistant turn, real or fallback. Round
trips on one conversation are serialised, and ending a conversation through
the service waits for an in-flight reply.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Dict, List, Optional, Protocol

from banter.ai.prompts import build_system_prompt, process_reply
from banter.kernel.models.conversation import ConversationKind, ConversationRecord, ConversationSummary
from banter.logging_config import get_logger

if TYPE_CHECKING:
    from banter.orchestration.conversation_store import ConversationStore

logger = get_logger(__name__)

LESSON_FALLBACK = "I had trouble processing that. Can you try rephrasing?"
DEFAULT_SCENARIO_FALLBACK = "Sorry, I didn't understand that."

# Character id -> in-character line used when generation fails mid-scenario
SCENARIO_FALLBACKS: Dict[str, str] = {
    "quiet_observer": "*pauses* Hmm. Sorry, what was that?",
    "laid_back_guy": "*shrugs* Sorry, didn't catch that.",
    "bubbly_nervous": "*looks confused* Sorry, what?",
    "self_centered": "*checks phone* Wait, what were you saying?",
    "curious_questioner": "*tilts head* Hmm, can you say that another way?",
}


class ReplyGenerator(Protocol):
    async def generate(
        self,
        system_prompt: str,
        history: List[Dict[str, str]],
        user_message: str,
    ) -> str: ...


@dataclass(frozen=True)
class ReplyResult:
    text: str
    mood: str
    character_state: str
    fallback_used: bool = False
    error: Optional[str] = None


def fallback_reply(record: ConversationRecord) -> str:
    if record.kind == ConversationKind.LESSON:
        return LESSON_FALLBACK
    return SCENARIO_FALLBACKS.get(record.character.id, DEFAULT_SCENARIO_FALLBACK)


class ReplyService:
    """Generates persona replies and keeps conversation history consistent."""

    def __init__(
        self,
        generator: Optional[ReplyGenerator],
        *,
        timeout_seconds: float = 30.0,
        history_limit: int = 16,
    ):
        self.generator = generator
        self.timeout_seconds = timeout_seconds
        self.history_limit = history_limit
        # conversation id -> [lock, holders + waiters]
        self._turn_locks: Dict[str, list] = {}

    @property
    def in_flight(self) -> int:
        """Conversations with a round trip running or queued."""
        return len(self._turn_locks)

    @asynccontextmanager
    async def exclusive(self, conversation_id: str) -> AsyncIterator[None]:
        """Hold the conversation's turn lock. The lock is dropped once unused."""
        entry = self._turn_locks.get(conversation_id)
        if entry is None:
            entry = self._turn_locks[conversation_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._turn_locks[conversation_id]

    async def _generate(self, record: ConversationRecord, history: List[Dict[str, str]], user_message: str) -> str:
        if self.generator is None:
            raise RuntimeError("Text generation is not configured")
        system_prompt = build_system_prompt(record.character, record.config)
        raw = await asyncio.wait_for(
            self.generator.generate(system_prompt, history, user_message),
            timeout=self.timeout_seconds,
        )
        if not raw or not raw.strip():
            raise RuntimeError("Empty reply from text generator")
    async def respond(
        self,
        store: "ConversationStore",
        record: ConversationRecord,
        user_message: str,
    ) -> Optional[ReplyResult]:
        """
        Returns None when the conversation no longer accepts messages
        (removed, completed or abandoned). Otherwise both turns are appended.
        """
        async with self.exclusive(record.id):
            history = store.history(record.id, self.history_limit)
            if not store.begin_exchange(record.id, user_message):
                return None

            error: Optional[str] = None
            try:
                raw = await self._generate(record, history, user_message)
            except asyncio.CancelledError:
                store.complete_exchange(record.id, fallback_reply(record))
                raise
            except asyncio.TimeoutError:
                error = f"Text generation timed out after {self.timeout_seconds:g}s"
            except Exception as exc:
                error = str(exc) or type(exc).__name__

            if error is not None:
                logger.warning(
                    "Reply generation failed, using fallback",
                    extra={"conversation_id": record.id, "error": error},
                )
                raw = fallback_reply(record)

            processed = process_reply(raw)
            text = processed.text or raw.strip()
            store.complete_exchange(record.id, text)

            if error is not None:
                store.annotate(record.id, {"fallback_used": True, "last_error": error})

        return ReplyResult(
            text=text,
            mood=processed.mood,
            character_state=processed.character_state,
            fallback_used=error is not None,
            error=error,
        )

    async def end(self, store: "ConversationStore", conversation_id: str) -> Optional[ConversationSummary]:
        """End a conversation once any reply being generated for it is recorded."""
        async with self.exclusive(conversation_id):
            return store.end(conversation_id)
