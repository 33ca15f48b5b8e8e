"""
api/main.py -- FastAPI application entry point for authgate.

Exposes account registration, password login and bearer-token protected
profile access over HTTP.

Run with:      python main.py
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. log_requests          -- one access log line per request

Lifespan builds every long-lived collaborator exactly once (settings, token
config, hasher, issuer, validator, user store) and tears the store down on
shutdown. Nothing here is mutated after startup.

Exception handlers are the single error normalization boundary. Credential
and token failures carry an internal reason; that reason is logged here and
then dropped, so every failure of one kind yields byte-identical responses.
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
from starlette.exceptions import HTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import (
    ConflictError,
    InvalidCredentialsError,
    StorageError,
    UnauthenticatedError,
    ValidationError,
)
from auth.passwords import CredentialHasher
from auth.store import UserStore
from auth.tokens import TokenConfig, TokenIssuer, TokenValidator
from core.config import get_settings

__version__ = "0.1.0"

# Fails with ConfigurationError at import time if SECRET_KEY is missing or
# short. A process without a signing secret must not start.
_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, _settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authgate.api")


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. TokenConfig first -- re-validates the secret; a bad secret aborts
         startup before any port is served.
      2. Hasher second -- computes the timing-equalization dummy hash once.
      3. User store last -- creates the schema if missing.
    """
    settings = get_settings()
    logger.info("authgate API starting up")
    token_config = TokenConfig.from_settings(settings)
    app.state.token_issuer = TokenIssuer(token_config)
    app.state.token_validator = TokenValidator(token_config)
    app.state.hasher = CredentialHasher.from_settings(settings)
    app.state.user_store = UserStore(db_url=settings.database_url)
    logger.info("Auth initialized (token_ttl=%ss)", token_config.ttl_seconds)

    yield

    app.state.user_store.close()
    logger.info("authgate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="authgate API",
    description="Account registration, password login and bearer-token access control.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> request logging.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Logs method, path, status and latency -- never headers or bodies,
# which carry tokens and passwords.
# ---------------------------------------------------------------------------


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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(ValidationError)
async def domain_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Return 400 when a flow rejects an input field."""
    return _error(400, "validation_error", "Request validation failed.", f"{exc.field}: {exc.message}")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with structured error when the request body fails validation.

    Only field locations and messages are echoed. Pydantic's error dicts also
    carry the offending input value, which for login/register may be a
    password.
    """
    fields = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg', '')}" for err in exc.errors()
    )
    return _error(400, "validation_error", "Request validation failed.", fields or None)


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return _error(409, "conflict", f"An account with this {exc.field} already exists.")


@app.exception_handler(InvalidCredentialsError)
async def invalid_credentials_handler(request: Request, exc: InvalidCredentialsError) -> JSONResponse:
    """Return one fixed 401 for every login failure.

    Unknown user, wrong password and inactive account are indistinguishable
    to the caller (body, headers, status). The reason goes to the log only.
    """
    logger.warning(
        "Login failed (%s) from %s",
        exc.reason,
        request.client.host if request.client else "unknown",
    )
    response = _error(401, "invalid_credentials", "Invalid username or password.")
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return response


@app.exception_handler(UnauthenticatedError)
async def unauthenticated_handler(request: Request, exc: UnauthenticatedError) -> JSONResponse:
    """Return one fixed 401 for every rejected bearer token.

    Missing header, malformed token, bad signature and expiry all produce the
    same body so the response does not fingerprint the validator.
    """
    logger.warning("Token rejected (%s) on %s %s", exc.reason, request.method, request.url.path)
    response = _error(401, "unauthorized", "Authentication required.")
    response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Storage failures are opaque server errors; the cause is logged only."""
    logger.error("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, "internal_error", "An unexpected error occurred.")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it -- str(dict) produces a Python repr,
    not JSON.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the raw exception is written to the log only, never to the
    response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No authentication required.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and per-component status."""
    database_ok = request.app.state.user_store.ping()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        components={"app": "ok", "database": "ok" if database_ok else "error"},
    )
