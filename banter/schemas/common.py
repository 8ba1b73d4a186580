"""
Common schema types used across the API.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: Optional[str] = None
    field: Optional[str] = None


class RateLimitErrorResponse(ErrorResponse):
    """429 body. ``reset_time`` is when the oldest counted event leaves the window."""

    action: str
    limit: Optional[int] = None
    reset_time: Optional[datetime] = None


class RateLimitInfo(BaseModel):
    """Remaining allowance after an admitted action (None = unbounded)."""

    remaining: Optional[int] = None
    limit: Optional[int] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    ai_configured: bool = False
    conversations: Dict[str, int] = Field(default_factory=dict)
