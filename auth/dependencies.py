"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

One auth method: the Authorization: Bearer <token> header. The token alone
identifies the caller; no storage lookup happens here.

try_get_current_principal() is the soft variant (returns None on failure).
get_current_principal() wraps it and raises Unauthenticated (HTTP 401).
require_admin() wraps get_current_principal() and raises RoleForbidden (403).

Every failure is answered with the same 401 body; the resolver's reason is
logged at DEBUG and never returned.

Layer rule: may import from fastapi (Request, Depends) because this module is
part of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from auth.errors import Unauthenticated
from auth.guard import AccessGuard
from auth.models import Principal, Role
from auth.principal import PrincipalResolver
from auth.tokens import get_token_codec

logger = logging.getLogger("tenantgate.auth")

_guard = AccessGuard()


def _resolver(request: Request) -> PrincipalResolver:
    resolver = getattr(request.app.state, "resolver", None)
    if resolver is None:
        resolver = PrincipalResolver(get_token_codec())
    return resolver


def try_get_current_principal(request: Request) -> Principal | None:
    """Resolve the Authorization header. Never raises."""
    result = _resolver(request).resolve(request.headers.get("Authorization"))
    if isinstance(result, Principal):
        return result
    logger.debug("Unauthenticated %s %s: %s", request.method, request.url.path, result.reason)
    return None


def get_current_principal(request: Request) -> Principal:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    principal = try_get_current_principal(request)
    if principal is None:
        raise Unauthenticated()
    return principal


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Require the ADMIN role. 401 if unauthenticated, 403 otherwise."""
    _guard.require_role(principal, Role.ADMIN)
    return principal
