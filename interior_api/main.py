import uuid
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from interior_api.api.rate_limit import FixedWindowRateLimiter
from interior_api.api.routes import chatbot, designs, health, realtime, team, uploads
from interior_api.chatbot.service import ChatbotService
from interior_api.config import settings
from interior_api.logging import configure_logging
from interior_api.realtime.hub import RealtimeHub
from interior_api.services.portfolio import PortfolioService
from interior_api.services.team import TeamService
from interior_api.services.uploads import UploadService, default_storage
from interior_api.storage.conversations import (
    InMemoryConversationStore,
    PostgresConversationStore,
)
from interior_api.storage.documents import InMemoryDocumentStore, PostgresDocumentStore
from interior_api.storage.postgres import create_pool

configure_logging()

logger = structlog.get_logger()


def _wire_services(app: FastAPI, conversations, team_store, design_store) -> None:
    """Build the service graph over the given stores and publish it on app.state."""
    team_service = TeamService(team_store)
    app.state.team = team_service
    app.state.portfolio = PortfolioService(design_store, team_service)
    app.state.chatbot = ChatbotService(
        conversations, app.state.hub, serialize=settings.serialize_conversations
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Swap in the Postgres stores when enabled; fall back to memory if unreachable."""
    if settings.use_database:
        try:
            pool = await create_pool()
        except Exception as exc:
            logger.warning("database_unavailable_using_memory", error=str(exc))
        else:
            app.state.pool = pool
            _wire_services(
                app,
                PostgresConversationStore(pool),
                PostgresDocumentStore(pool, "team_members"),
                PostgresDocumentStore(pool, "designs"),
            )
    logger.info(
        "app_started",
        environment=settings.environment,
        database=app.state.pool is not None,
        storage=app.state.uploads.storage.name,
    )
    try:
        yield
    finally:
        if app.state.pool is not None:
            await app.state.pool.close()
            app.state.pool = None


app = FastAPI(
    title="Interior Design Studio API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

app.state.pool = None
app.state.hub = RealtimeHub()
app.state.uploads = UploadService(default_storage(), settings.max_upload_bytes)
app.state.rate_limiter = FixedWindowRateLimiter(
    settings.rate_limit_max_requests, settings.rate_limit_window_seconds
)
_wire_services(
    app, InMemoryConversationStore(), InMemoryDocumentStore(), InMemoryDocumentStore()
)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Per-client fixed-window limit on the /api routes."""
    if request.url.path.startswith("/api/"):
        client = request.client.host if request.client else "unknown"
        allowed, retry_after = request.app.state.rate_limiter.hit(client)
        if not allowed:
            logger.warning("rate_limited", client=client, path=request.url.path)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "message": "Too many requests from this IP, please try again later.",
                    "retryable": True,
                },
                headers={"Retry-After": str(retry_after)},
            )
    return await call_next(request)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Attach a unique request ID to every request for log correlation.

    Sets the ID in structlog context vars (appears in all log entries for the
    request) and returns it in the X-Request-ID response header so clients
    can report it when debugging errors.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Outermost, so rate-limited responses also carry CORS headers.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Return ErrorResponse JSON for Pydantic validation errors.

    FastAPI's default 422 returns {"detail": [...]}, which doesn't match
    our ErrorResponse contract. Clients need a single error shape.
    """
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    response = JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "; ".join(messages),
            "retryable": False,
        },
    )
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return consistent ErrorResponse JSON for unhandled exceptions.

    Without this, FastAPI returns bare text 500 errors that clients can't
    parse. This handler ensures all errors use the same JSON shape.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    response = JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "retryable": True,
        },
    )
    response.headers["X-Request-ID"] = getattr(
        request.state, "request_id", request.headers.get("X-Request-ID", "")
    )
    return response


app.include_router(health.router)
app.include_router(realtime.router)
for module in (team, designs, chatbot, uploads):
    app.include_router(module.router, prefix="/api/v1")

_upload_dir = Path(settings.upload_dir)
_upload_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=_upload_dir, check_dir=False), name="uploads")
