"""
FastAPI dependencies: process-wide services, subject identity and rate limits.

Services are created lazily and cached for the life of the process. Tests
swap them through ``app.dependency_overrides``.
"""

import secrets
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from banter.ai.llm_client import DeepSeekClient
from banter.config import get_settings
from banter.content.catalog import ContentCatalog
from banter.engines.conversation.character_selector import CharacterSelector
from banter.engines.conversation.coaching import CoachService
from banter.engines.conversation.reply_service import ReplyService
from banter.kernel.errors import RateLimitExceeded
from banter.kernel.identity.session_identity import RequestMeta, SessionIdentity
from banter.kernel.rate_limit import RateLimitDecision, SlidingWindowRateLimiter, normalize_action
from banter.logging_config import get_logger, subject_id_var
from banter.orchestration.conversation_store import ConversationStore

logger = get_logger(__name__)


@lru_cache
def get_catalog() -> ContentCatalog:
    return ContentCatalog()


@lru_cache
def get_store() -> ConversationStore:
    return ConversationStore.from_settings(CharacterSelector(get_catalog()))


@lru_cache
def get_rate_limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter.from_settings()


@lru_cache
def get_text_generator() -> DeepSeekClient:
    return DeepSeekClient()


@lru_cache
def get_reply_service() -> ReplyService:
    settings = get_settings()
    return ReplyService(
        get_text_generator(),
        timeout_seconds=settings.llm_timeout_seconds,
        history_limit=settings.history_context_messages,
    )


@lru_cache
def get_coach_service() -> CoachService:
    return CoachService(get_text_generator(), timeout_seconds=get_settings().llm_timeout_seconds)


async def get_subject_id(request: Request) -> str:
    """
    Anonymous subject id for the caller.

    Derived from client address and device fingerprint; if derivation fails
    the request still proceeds under a one-off random id.
    """
    try:
        meta = RequestMeta.from_headers(
            request.headers,
            client_host=request.client.host if request.client else None,
        )
        subject_id = SessionIdentity.resolve(meta)
    except Exception as exc:
        logger.warning("Subject id derivation failed, using random id", extra={"error": str(exc)})
        subject_id = secrets.token_hex(16)
    request.state.subject_id = subject_id
    subject_id_var.set(subject_id)
    return subject_id


Catalog = Annotated[ContentCatalog, Depends(get_catalog)]
Store = Annotated[ConversationStore, Depends(get_store)]
Limiter = Annotated[SlidingWindowRateLimiter, Depends(get_rate_limiter)]
Replies = Annotated[ReplyService, Depends(get_reply_service)]
Coach = Annotated[CoachService, Depends(get_coach_service)]
SubjectId = Annotated[str, Depends(get_subject_id)]


class RateLimitGuard:
    """
    Dependency class that admits one action per call or raises RateLimitExceeded.

    Usage:
        @router.post("/{conversation_id}/messages")
        async def send_message(
            decision: Annotated[RateLimitDecision, Depends(RateLimitGuard("message"))],
            ...
        ):
            ...
    """

    def __init__(self, action: str):
        self.action = normalize_action(action)

    def __call__(self, subject_id: SubjectId, limiter: Limiter) -> RateLimitDecision:
        decision = limiter.check(subject_id, self.action)
        if not decision.allowed:
            raise RateLimitExceeded(self.action, decision)
        return decision
