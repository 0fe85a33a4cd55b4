"""
main.py — QuoteDesk API entry point

Builds the FastAPI app: lifespan (logging, startup migrations, reminder
scheduler), CORS, rate limiting, the request middleware, exception handlers
and router mounts.

Business Rules:
- /api/v1/... is served by the same routes as /api/...
- Every response carries X-Request-ID (8 chars) and the security headers
- Every error body has the ErrorResponse shape
- Domain errors map to HTTP codes: 422 validation, 404 not found,
  409 conflict, 503 database unavailable

Called by: uvicorn (app.main:app)
Depends on: config, logging_config, startup, scheduler, routers/*
"""

import asyncio
import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .errors import DependencyUnavailable, QuoteDeskError, ValidationFailure
from .logging_config import setup_logging
from .rate_limit import limiter
from .schemas.errors import ErrorResponse

APP_VERSION = "1.0.0"
API_VERSION = "v1"

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-API-Version": API_VERSION,
}


# ── Lifespan ────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    testing = bool(os.environ.get("TESTING"))

    if not testing:
        from .startup import run_startup_migrations

        await asyncio.to_thread(run_startup_migrations)

    scheduler_task = None
    if settings.scheduler_enabled and not testing:
        from .scheduler import start_scheduler

        scheduler_task = asyncio.create_task(start_scheduler())

    logger.info("QuoteDesk {} started ({})", APP_VERSION, settings.app_env)
    yield

    if scheduler_task:
        scheduler_task.cancel()
    from .database import engine

    engine.dispose()
    logger.info("QuoteDesk shut down")


app = FastAPI(title="QuoteDesk", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Middleware ──────────────────────────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Version rewrite, request id, timing, security headers."""
    path = request.scope["path"]
    if path.startswith("/api/v1/"):
        request.scope["path"] = "/api" + path[len("/api/v1"):]

    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()

    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        if request.url.path != "/health":
            logger.info(
                "{} {} → {} ({:.0f}ms)",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )

    response.headers["X-Request-ID"] = request_id
    for header, value in _SECURITY_HEADERS.items():
        response.headers[header] = value
    return response


# ── Exception handlers ──────────────────────────────────────────────────


def _error_response(request: Request, status_code: int, error: str, detail: list | None = None):
    body = ErrorResponse(
        error=error,
        status_code=status_code,
        request_id=getattr(request.state, "request_id", ""),
        detail=detail,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(QuoteDeskError)
async def domain_error_handler(request: Request, exc: QuoteDeskError):
    detail = None
    if isinstance(exc, ValidationFailure) and exc.field:
        detail = [{"field": exc.field, "code": exc.code}]
    if exc.status_code >= 500:
        logger.error("{}: {}", exc.code, exc.message)
    return _error_response(request, exc.status_code, exc.message, detail)


@app.exception_handler(OperationalError)
async def database_unavailable_handler(request: Request, exc: OperationalError):
    logger.error("Database unavailable: {}", exc.orig if exc.orig else exc)
    unavailable = DependencyUnavailable()
    return _error_response(request, unavailable.status_code, unavailable.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(request, exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    detail = [
        {"loc": list(e.get("loc", [])), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return _error_response(request, 422, "Validation error", detail)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return _error_response(request, 500, "Internal server error")


# ── Routes ──────────────────────────────────────────────────────────────


@app.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}


from .routers.catalog import router as catalog_router  # noqa: E402
from .routers.follow_ups import router as follow_ups_router  # noqa: E402
from .routers.parties import router as parties_router  # noqa: E402
from .routers.quotations import router as quotations_router  # noqa: E402

app.include_router(parties_router)
app.include_router(follow_ups_router)
app.include_router(quotations_router)
app.include_router(catalog_router)
