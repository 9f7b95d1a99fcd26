"""
auth/principal.py -- Turn an Authorization header into a Principal.

PrincipalResolver never raises for bad input. Every failure -- no header,
wrong scheme, malformed/expired/forged token, missing or unparseable claims,
unknown role -- comes back as an Unauthenticated value. Its reason is for the
server log only; the HTTP layer answers every one of them with the same 401.

A Principal is only built when all three identity claims (client_id, sub,
role) are present and well-formed. There is no partially-populated Principal.

The resolver does not touch storage: a token is self-contained.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union
from uuid import UUID

from auth.errors import TokenError
from auth.models import Principal, Role
from auth.tokens import TokenCodec

logger = logging.getLogger("tenantgate.auth")

_SCHEME = "bearer"


@dataclass(frozen=True)
class Unauthenticated:
    """Typed resolution failure. reason is internal (log only)."""

    reason: str


Resolution = Union[Principal, Unauthenticated]


def _parse_uuid(value: object) -> UUID | None:
    if not isinstance(value, str):
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


class PrincipalResolver:
    """Stateless; safe to share across requests and threads."""

    def __init__(self, codec: TokenCodec) -> None:
        self._codec = codec

    def resolve(self, authorization: str | None) -> Resolution:
        if not authorization:
            return Unauthenticated("missing authorization header")

        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != _SCHEME:
            return Unauthenticated("unsupported authorization scheme")
        token = token.strip()
        if not token:
            return Unauthenticated("empty bearer token")

        try:
            claims = self._codec.verify(token)
        except TokenError as exc:
            return Unauthenticated(f"{type(exc).__name__}: {exc}")

        tenant_id = _parse_uuid(claims.tenant_id)
        user_id = _parse_uuid(claims.subject)
        if tenant_id is None or user_id is None or claims.role is None:
            return Unauthenticated("missing or malformed identity claims")
        try:
            role = Role(claims.role)
        except ValueError:
            return Unauthenticated("unknown role claim")

        return Principal(user_id=user_id, tenant_id=tenant_id, role=role, subject=claims.subject)
