"""
Banter Conversation Practice

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from banter.api.deps import Store, get_rate_limiter, get_store, get_text_generator
from banter.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from banter.api.v1 import router as api_v1_router
from banter.config import get_settings
from banter.kernel.errors import RateLimitExceeded
from banter.logging_config import configure_logging, get_logger
from banter.orchestration.reaper import ConversationReaper
from banter.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Starts the conversation reaper on startup; stops it and releases the
    text-generation client on shutdown.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    if not settings.llm_configured:
        logger.warning("DeepSeek API key not configured, replies will use fallbacks")

    reaper = ConversationReaper(get_store(), get_rate_limiter(), settings.reap_interval)
    reaper.start()
    app.state.reaper = reaper

    yield

    logger.info("Shutting down...")
    await reaper.stop()
    await get_text_generator().close()
    get_store().clear()
    logger.info("Conversation state released")


app = FastAPI(
    title=settings.project_name,
    description="""
    Banter - conversation practice with AI personas.

    ## Features

    - **Lessons**: Practise one conversational skill at bronze, silver or gold level
    - **Scenarios**: Realistic social settings with characters and optional missions
    - **Conversations**: Message, pause, resume and end with a performance summary

    Callers are identified anonymously from their network address and device
    fingerprint; no account is needed.
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# Last added is outermost
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_headers(request: Request) -> dict:
    headers = {}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers[REQUEST_ID_HEADER] = req_id
    return headers


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = _error_headers(request)
    if exc.headers:
        headers.update(exc.headers)
    content = {"detail": exc.detail}
    req_id = headers.get(REQUEST_ID_HEADER)
    if req_id and exc.status_code >= 500:
        content["request_id"] = req_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    """Denied admission check -> 429 with the time the window frees up."""
    decision = exc.decision
    headers = _error_headers(request)
    retry_after = decision.retry_after_seconds
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": exc.message,
            "code": "rate_limited",
            "action": exc.action,
            "limit": decision.limit,
            "reset_time": decision.reset_time.isoformat() if decision.reset_time else None,
        },
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "errors": errors},
        headers=_error_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    headers = _error_headers(request)
    req_id = headers.get(REQUEST_ID_HEADER)
    if settings.debug:
        content = {"detail": str(exc), "type": type(exc).__name__, "request_id": req_id}
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=headers,
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(store: Store):
    """Check application health and live conversation counts."""
    return HealthResponse(
        status="ok",
        version=settings.version,
        ai_configured=settings.llm_configured,
        conversations=store.service_stats(),
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "banter.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
