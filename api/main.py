"""
api/main.py -- FastAPI application entry point for the auth service.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. log_requests          -- one access-log line per request
  4. rate_limit_headers    -- copies X-RateLimit-* recorded by api.limiter

Lifespan opens the credential store and the rate limit counter on startup,
bootstraps the admin account if configured, and closes the store on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import RATE_LIMIT_HEADERS_STATE
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from auth.errors import AuthServiceError
from auth.service import ensure_admin
from auth.store import DEFAULT_DB_URL, UserStore
from cache.store import RateLimitCounter
from core.config import get_settings

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authservice.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open shared resources on startup and release them on shutdown.

    Startup order matters: the store must exist before the admin bootstrap
    writes to it.
    """
    logger.info("Auth service starting up")
    app.state.user_store = UserStore(_settings.database_url or DEFAULT_DB_URL)
    app.state.rate_limit_counter = RateLimitCounter(_settings.rate_limit_storage_uri)
    logger.info("Rate limit storage: %s", _settings.rate_limit_storage_uri.split("://", 1)[0])
    if _settings.admin_bootstrap_enabled:
        ensure_admin(
            app.state.user_store,
            _settings.admin_name,
            _settings.admin_email,
            _settings.admin_password,
        )

    yield

    app.state.user_store.close()
    logger.info("Auth service shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Auth Service API",
    description="Credential and provider login, JWT access/refresh tokens, role-based access control.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the current stack, so the LAST registration is the
# outermost layer. Register innermost first.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def rate_limit_headers(request: Request, call_next):
    """Attach X-RateLimit-* headers recorded by api.limiter to the final response.

    Runs outside the exception handlers, so 4xx and 429 responses built from
    AuthServiceError carry the headers too.
    """
    response = await call_next(request)
    headers = getattr(request.state, RATE_LIMIT_HEADERS_STATE, None)
    if headers:
        response.headers.update(headers)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(users_router, prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler returns the ErrorResponse envelope.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
        headers=headers,
    )


@app.exception_handler(AuthServiceError)
async def auth_service_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    """Render validation, auth, conflict, throttle and provider errors with their status."""
    if exc.status_code >= 500:
        logger.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return _error_response(exc.status_code, exc.code, exc.message, headers=exc.headers or None)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the body or query cannot be parsed into the request model."""
    return _error_response(400, "validation_error", "Request validation failed.", detail=str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured errors for framework-raised HTTP exceptions (unmatched route, wrong method)."""
    if exc.status_code == 404:
        return _error_response(404, "not_found", f"Can't find {request.url.path} on this server!")
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log. The response body carries the exception
    repr only in DEBUG mode.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(
        500,
        "internal_error",
        "An unexpected error occurred.",
        detail=repr(exc) if _settings.debug else None,
    )


# ---------------------------------------------------------------------------
# Health and banner
#
# Not rate limited -- load balancer probes must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus database and rate limit backend probes."""
    try:
        request.app.state.user_store.ping()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check database probe failed")
        database = "error"
    rate_limit = "ok" if request.app.state.rate_limit_counter.check() else "error"
    return HealthResponse(
        version=VERSION,
        components={"app": "ok", "database": database, "rate_limit": rate_limit},
    )


@app.get("/", include_in_schema=False)
async def root() -> dict:
    return {
        "status": "success",
        "message": "Multi-provider auth service is running",
        "endpoints": {"health": "/health", "auth": "/api/auth", "users": "/api/users", "docs": "/docs"},
    }
