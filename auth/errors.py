"""
auth/errors.py -- Error taxonomy for authentication and tenant isolation.

Every error a caller can observe is an AccessError subclass carrying the HTTP
status, a stable machine-readable code, and a public message. api/main.py
turns them into the shared error envelope; nothing else needs to know about
status codes.

Collapsed kinds:
  Unauthenticated      -- missing, malformed, forged, or expired token. The
                          token-level cause lives on TokenError subclasses and
                          in the server log only.
  InvalidCredentials   -- every login failure (unknown tenant, disabled
                          tenant, unknown account, wrong password, disabled
                          account) shares one code and one message.
  TenantScopedNotFound -- resource absent OR owned by another tenant.

Messages never contain another tenant's identifiers or data.

Layer rule: stdlib only.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Fatal misconfiguration detected at startup (e.g. a weak signing key)."""


# ---------------------------------------------------------------------------
# Token-level failures (internal; never surfaced as-is)
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Base for token verification failures."""


class TokenMalformed(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class TokenInvalidSignature(TokenError):
    pass


# ---------------------------------------------------------------------------
# Caller-visible errors
# ---------------------------------------------------------------------------


class AccessError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthenticated(AccessError):
    status_code = 401
    code = "unauthenticated"
    message = "Authentication required."


class InvalidCredentials(Unauthenticated):
    code = "invalid_credentials"
    message = "Invalid credentials."


class Forbidden(AccessError):
    status_code = 403
    code = "forbidden"
    message = "You are not allowed to perform this action."


class RoleForbidden(Forbidden):
    code = "forbidden_role"

    def __init__(self, required_role: str) -> None:
        super().__init__(f"{required_role} role required.")
        self.required_role = required_role


class SelfActionForbidden(Forbidden):
    code = "forbidden_self"

    def __init__(self, action: str) -> None:
        super().__init__(f"You cannot {action} your own account.")
        self.action = action


class TenantUnavailable(Forbidden):
    code = "tenant_unavailable"
    message = "Your organization is disabled."


class TenantScopedNotFound(AccessError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str = "resource") -> None:
        super().__init__(f"{resource.capitalize()} not found.")
        self.resource = resource


class Conflict(AccessError):
    status_code = 409
    code = "conflict"
    message = "Conflict."


class DuplicateConflict(Conflict):
    code = "duplicate"

    def __init__(self, field: str, resource: str = "resource") -> None:
        super().__init__(f"A {resource} with that {field} already exists.")
        self.field = field
        self.resource = resource


class SeatLimitConflict(AccessError):
    """Seat limit reached. Safe to reveal: only the tenant's own admin sees it."""

    status_code = 403
    code = "seat_limit_reached"

    def __init__(self, seat_limit: int) -> None:
        super().__init__(f"Seat limit reached ({seat_limit} enabled accounts allowed).")
        self.seat_limit = seat_limit


class ValidationFailed(AccessError):
    status_code = 400
    code = "validation_error"
    message = "Request validation failed."

    def __init__(self, fields: list[tuple[str, str]]) -> None:
        super().__init__()
        self.fields = fields
