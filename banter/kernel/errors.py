"""
Error types for the conversation core.

Missing conversations and upstream generation failures are reported as data
(None / empty results / fallback flags). Only invalid configuration at start
and rate-limit denials surfaced by the API layer are raised.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from banter.kernel.rate_limit import RateLimitDecision


class InvalidConversationConfig(ValueError):
    """Raised when a conversation kind or its configuration is malformed."""


class RateLimitExceeded(Exception):
    """Raised by route handlers when an admission check is denied."""

    def __init__(self, action: str, decision: "RateLimitDecision", message: str = "Rate limit exceeded"):
        super().__init__(message)
        self.action = action
        self.decision = decision
        self.message = message
