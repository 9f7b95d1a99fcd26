"""
api/routes/v1/auth.py -- Login, logout, and identity endpoints.

Routes:
  POST /api/v1/auth/login     -- username-or-email + password; returns a bearer token
  POST /api/v1/auth/logout    -- closes the caller's open session record
  GET  /api/v1/auth/me        -- the caller's own account (any role)
  GET  /api/v1/auth/sessions  -- the tenant's login/logout history (admin only)

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  Every login failure is one 401 "invalid_credentials"; CredentialService
  runs bcrypt on every path so timing does not tell the failures apart.
  Cache-Control: no-store on login responses.
  Logout does not revoke the token; it stays valid until it expires.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import LoginRequest, LoginResponse, LogoutResponse, SessionResponse, UserResponse
from auth.dependencies import get_current_principal, require_admin
from auth.models import Principal

# Auth policy:
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/logout:   requires auth (get_current_principal)
# - GET  /api/v1/auth/me:       requires auth (get_current_principal)
# - GET  /api/v1/auth/sessions: requires admin (require_admin)
router = APIRouter()


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate and return a bearer token.

    Wrong password, unknown login, disabled account, unknown tenant and
    disabled tenant all produce the same 401 body.
    """
    result = request.app.state.credentials.login(body.login, body.password, tenant=body.tenant)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=result.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=result.expires_in,
            user_id=str(result.principal.user_id),
            tenant_id=str(result.principal.tenant_id),
            role=result.principal.role,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=LogoutResponse)
def logout(request: Request, principal: Principal = Depends(get_current_principal)) -> LogoutResponse:
    """Close the caller's latest open session. The token itself stays valid until expiry."""
    closed = request.app.state.credentials.logout(principal)
    return LogoutResponse(session=SessionResponse.from_record(closed) if closed is not None else None)


@router.get("/auth/me", response_model=UserResponse)
def me(request: Request, principal: Principal = Depends(get_current_principal)) -> UserResponse:
    """Return the caller's own account."""
    return UserResponse.from_account(request.app.state.accounts.get_profile(principal))


@router.get("/auth/sessions", response_model=list[SessionResponse])
def list_sessions(
    request: Request,
    open_only: bool = False,
    principal: Principal = Depends(require_admin),
) -> list[SessionResponse]:
    """The tenant's session history, newest first. Admin only."""
    records = request.app.state.audit.list_by_tenant(principal.tenant_id, open_only=open_only)
    return [SessionResponse.from_record(r) for r in records]
