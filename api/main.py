"""
api/main.py -- FastAPI application entry point for TenantGate.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds one engine, the stores on top of it, and the services that
route handlers reach through app.state. Shutdown disposes the engine.

Every caller-visible failure is an auth.errors.AccessError and leaves through
one handler, so all 4xx bodies share the ErrorResponse envelope.
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
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, FieldError, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.brands import router as brands_router
from api.routes.v1.users import router as users_router
from audit.store import AuditTrail
from auth.accounts import AccountService
from auth.errors import AccessError, Unauthenticated
from auth.guard import AccessGuard
from auth.principal import PrincipalResolver
from auth.sessions import CredentialService
from auth.store import AccountStore, TenantStore
from auth.tokens import get_token_codec
from catalog.service import BrandService
from catalog.store import BrandStore
from core.config import get_settings
from core.db import make_engine

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tenantgate.api")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def wire_services(
    app: FastAPI,
    tenants: TenantStore,
    accounts: AccountStore,
    audit: AuditTrail,
    brands: BrandStore,
) -> None:
    """Attach stores and the services built on them to app.state.

    Shared by the real lifespan and by the test fixtures, which pass stores
    bound to in-memory databases.
    """
    settings = get_settings()
    codec = get_token_codec()
    guard = AccessGuard()
    app.state.tenant_store = tenants
    app.state.account_store = accounts
    app.state.audit = audit
    app.state.resolver = PrincipalResolver(codec)
    app.state.credentials = CredentialService(tenants, accounts, audit, codec, default_tenant=settings.default_tenant)
    app.state.accounts = AccountService(tenants, accounts, guard)
    app.state.brands = BrandService(brands, guard)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the engine and stores on startup; dispose the engine on shutdown.

    get_token_codec() runs during wiring, so a weak or missing SECRET_KEY
    stops startup before any request is served.
    """
    settings = get_settings()
    logger.info("TenantGate API starting up")
    engine = make_engine(settings.database_url)
    wire_services(app, TenantStore(engine), AccountStore(engine), AuditTrail(engine), BrandStore(engine))
    logger.info("Stores initialized (default_tenant=%r)", settings.default_tenant or None)

    yield

    engine.dispose()
    logger.info("TenantGate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TenantGate API",
    description="Multi-tenant identity and access control: bearer tokens, tenant isolation, role-gated administration.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() calls are applied outermost-first from the caller's
# perspective. Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=get_settings().allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
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
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(brands_router, prefix="/api/v1", tags=["Brands"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=detail).model_dump())


@app.exception_handler(AccessError)
async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    """Translate the auth.errors taxonomy into the error envelope.

    The message is the exception's public message; internal causes were
    logged where they were raised.
    """
    fields = [FieldError(field=f, message=m) for f, m in getattr(exc, "fields", [])]
    response = _error_response(exc.status_code, ErrorDetail(code=exc.code, message=exc.message, fields=fields))
    if isinstance(exc, Unauthenticated):
        response.headers["WWW-Authenticate"] = "Bearer"
        response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(
        429,
        ErrorDetail(code="rate_limited", message="Too many requests.", detail=str(exc.detail)),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 listing every invalid field of the body, path, or query."""
    fields = [
        FieldError(
            field=".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "path", "query")),
            message=err.get("msg", "Invalid value."),
        )
        for err in exc.errors()
    ]
    return _error_response(
        400,
        ErrorDetail(code="validation_error", message="Request validation failed.", fields=fields),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework-raised HTTP errors (unknown route, wrong method) in the envelope."""
    return _error_response(exc.status_code, ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only. The client receives a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorDetail(code="internal_error", message="An unexpected error occurred."))


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
