"""
Background sweep that ages out idle conversations and stale rate-limit windows.

Owned by the application lifespan: ``start()`` on startup, ``await stop()``
on shutdown.
"""

import asyncio
from datetime import timedelta
from typing import Optional

from banter.kernel.rate_limit import SlidingWindowRateLimiter
from banter.logging_config import get_logger
from banter.orchestration.conversation_store import ConversationStore, ReapResult

logger = get_logger(__name__)


class ConversationReaper:
    """Runs ``ConversationStore.reap()`` and ``rate_limiter.prune()`` periodically."""

    def __init__(
        self,
        store: ConversationStore,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        interval: timedelta = timedelta(minutes=30),
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> ReapResult:
        result = self.store.reap()
        if self.rate_limiter is not None:
            evicted = self.rate_limiter.prune()
            if evicted:
                logger.debug("Rate limit windows evicted", extra={"evicted": evicted})
        return result

    async def _loop(self) -> None:
        seconds = self.interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            try:
                self.run_once()
            except Exception:
                logger.exception("Conversation sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="conversation-reaper")
        logger.info(
            "Conversation reaper started",
            extra={"interval_seconds": self.interval.total_seconds()},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Conversation reaper stopped")
