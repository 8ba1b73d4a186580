"""
API v1 routes.
"""

from fastapi import APIRouter

from banter.api.v1 import conversations, lessons, scenarios
from banter.schemas.common import ErrorResponse, RateLimitErrorResponse

router = APIRouter()

_errors = {
    404: {"model": ErrorResponse},
    429: {"model": RateLimitErrorResponse},
}

router.include_router(lessons.router, prefix="/lessons", tags=["Lessons"], responses=_errors)
router.include_router(scenarios.router, prefix="/scenarios", tags=["Scenarios"], responses=_errors)
router.include_router(
    conversations.router,
    prefix="/conversations",
    tags=["Conversations"],
    responses={**_errors, 403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
