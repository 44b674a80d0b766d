"""
api/main.py -- FastAPI application entry point for the HotDeal user API.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- browser origins of the HotDeal front end, with credentials
                          (the refresh cookie is sent cross-site)
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds everything the routes need exactly once, in this order:
  1. Settings       -- env / .env, secret policy enforced by the validator
  2. Logging        -- shared format at Settings.log_level
  3. AuthConfig     -- JWT secret resolved through the SecretProvider
  4. SqlUserStore   -- DATABASE_URL resolved through the same provider
  5. AuthCore       -- config + store injected; stored on app.state
and tears the store down on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.admin import router as admin_router
from api.routes.v1.auth import router as auth_router
from auth.errors import (
    AccountInactiveError,
    AlreadyExistsError,
    AuthError,
    CredentialMismatchError,
    ExpiredTokenError,
    InsufficientPrivilegeError,
    InvalidFormatError,
    InvalidSignatureError,
    InvalidTokenTypeError,
    NotFoundError,
    StorageError,
)
from auth.notify import LogNotifier
from auth.service import AuthCore
from auth.store import SqlUserStore
from core.config import Settings, SettingsSecretProvider, build_auth_config
from core.log import configure_logging

API_VERSION = "1.0.0"

logger = logging.getLogger("hotdeal.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build Settings, AuthConfig, the store, and AuthCore; dispose the store on shutdown.

    Secrets are resolved once, here, before AuthCore exists. Nothing after
    this point reads the environment.
    """
    settings = Settings()
    configure_logging(settings.log_level)
    secrets_provider = SettingsSecretProvider(settings)
    config = build_auth_config(settings, secrets_provider)
    store = SqlUserStore(secrets_provider.get("DATABASE_URL"))

    app.state.settings = settings
    app.state.user_store = store
    app.state.auth_core = AuthCore(config, store, notifier=LogNotifier())
    logger.info("HotDeal API starting up (refresh_strategy=%s)", config.refresh_strategy)

    yield

    store.close()
    logger.info("HotDeal API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="HotDeal API",
    description="User accounts and token authentication for HotDeal keyword alerts.",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["https://tuum.day", "http://localhost:3000", "http://localhost:8787"],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


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


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/user/v1", tags=["User"])
app.include_router(admin_router, prefix="/api/admin/v1", tags=["Admin"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

# Most specific first; the lookup walks this list in order.
_AUTH_ERROR_STATUS: list[tuple[type[AuthError], int]] = [
    (InvalidFormatError, 401),
    (InvalidSignatureError, 401),
    (ExpiredTokenError, 401),
    (InvalidTokenTypeError, 401),
    (CredentialMismatchError, 401),
    (AccountInactiveError, 401),
    (InsufficientPrivilegeError, 403),
    (NotFoundError, 404),
    (AlreadyExistsError, 409),
    (StorageError, 503),
]


def status_for(exc: AuthError) -> int:
    """Map a classified auth failure to its HTTP status code."""
    for exc_type, status_code in _AUTH_ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 401


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Return the classified failure in the standard envelope.

    401 responses carry WWW-Authenticate so bearer clients know to re-auth.
    """
    status_code = status_for(exc)
    if status_code == 503:
        logger.error("Storage failure on %s %s", request.method, request.url.path)
    response = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
    )
    if status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Plain def: SlowAPIMiddleware calls this handler without awaiting it.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit and no auth -- load balancers must always reach it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=API_VERSION)
