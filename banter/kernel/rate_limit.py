"""
Sliding-window rate limiting per (subject, action).

Defaults: 100 messages/hour and 10 conversation starts/hour per subject.
Unknown actions are always admitted so new action kinds never break callers.
"""

import math
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, Dict, Mapping, Optional, Tuple

from banter.config import Settings, get_settings
from banter.logging_config import get_logger

logger = get_logger(__name__)

ACTION_MESSAGE = "message"
ACTION_CONVERSATION_START = "conversation_start"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_action(action: str) -> str:
    """'conversation-start' and 'conversation_start' name the same action."""
    return action.strip().lower().replace("-", "_")


@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window: timedelta


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of an admission check. ``remaining`` is None when unbounded."""

    allowed: bool
    remaining: Optional[int]
    reset_time: Optional[datetime] = None
    limit: Optional[int] = None
    retry_after_seconds: Optional[int] = None  # whole seconds until reset_time, denials only


def default_policies(settings: Optional[Settings] = None) -> Dict[str, RateLimitPolicy]:
    settings = settings or get_settings()
    window = timedelta(seconds=settings.rate_limit_window_seconds)
    return {
        ACTION_MESSAGE: RateLimitPolicy(settings.rate_limit_message_per_hour, window),
        ACTION_CONVERSATION_START: RateLimitPolicy(settings.rate_limit_conversation_start_per_hour, window),
    }


class SlidingWindowRateLimiter:
    """In-memory sliding-window limiter. Key -> deque of event timestamps."""

    def __init__(
        self,
        policies: Optional[Mapping[str, RateLimitPolicy]] = None,
        *,
        enabled: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._policies: Dict[str, RateLimitPolicy] = {
            normalize_action(k): v for k, v in (policies if policies is not None else default_policies()).items()
        }
        self._enabled = enabled
        self._clock = clock
        self._windows: Dict[Tuple[str, str], Deque[datetime]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "SlidingWindowRateLimiter":
        settings = settings or get_settings()
        return cls(default_policies(settings), enabled=settings.rate_limit_enabled, **kwargs)

    def check(self, subject_id: str, action: str = ACTION_MESSAGE) -> RateLimitDecision:
        """Admit or deny one action. An admitted action is recorded."""
        action = normalize_action(action)
        policy = self._policies.get(action)
        if policy is None or not self._enabled:
            return RateLimitDecision(allowed=True, remaining=None)

        now = self._clock()
        with self._lock:
            events = self._windows.get((subject_id, action))
            if events is None:
                events = deque()
                self._windows[(subject_id, action)] = events

            while events and now - events[0] >= policy.window:
                events.popleft()

            if len(events) >= policy.limit:
                reset_time = events[0] + policy.window if events else now + policy.window
                logger.info(
                    "Rate limit denied",
                    extra={"subject_id": subject_id, "action": action, "limit": policy.limit},
                )
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    reset_time=reset_time,
                    limit=policy.limit,
                    retry_after_seconds=max(0, math.ceil((reset_time - now).total_seconds())),
                )

            events.append(now)
            return RateLimitDecision(
                allowed=True,
                remaining=policy.limit - len(events),
                limit=policy.limit,
            )

    def prune(self, max_age: timedelta = timedelta(hours=24)) -> int:
        """Drop events older than their window (or max_age) and evict empty windows."""
        now = self._clock()
        removed = 0
        with self._lock:
            for key in list(self._windows):
                policy = self._policies.get(key[1])
                horizon = min(max_age, policy.window) if policy else max_age
                events = self._windows[key]
                while events and now - events[0] >= horizon:
                    events.popleft()
                if not events:
                    del self._windows[key]
                    removed += 1
        return removed

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
