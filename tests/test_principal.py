"""
tests/test_principal.py -- Unit tests for PrincipalResolver.

The resolver never raises; every failure is an Unauthenticated value.
"""

from __future__ import annotations

import time
from uuid import uuid4

import pytest
from jose import jwt

from auth.models import Principal, Role
from auth.principal import PrincipalResolver, Unauthenticated
from auth.tokens import TokenCodec

KEY = "r" * 32


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(KEY)


@pytest.fixture
def resolver(codec: TokenCodec) -> PrincipalResolver:
    return PrincipalResolver(codec)


def _raw(claims: dict) -> str:
    return jwt.encode({"exp": int(time.time()) + 60, **claims}, KEY, algorithm="HS256")


def test_valid_bearer_token(resolver: PrincipalResolver, codec: TokenCodec) -> None:
    user_id, tenant_id = uuid4(), uuid4()
    result = resolver.resolve(f"Bearer {codec.issue(user_id, tenant_id, Role.ADMIN)}")
    assert result == Principal(user_id=user_id, tenant_id=tenant_id, role=Role.ADMIN, subject=str(user_id))
    assert result.is_admin


def test_scheme_is_case_insensitive(resolver: PrincipalResolver, codec: TokenCodec) -> None:
    result = resolver.resolve(f"bearer {codec.issue(uuid4(), uuid4(), Role.USER)}")
    assert isinstance(result, Principal)
    assert not result.is_admin


@pytest.mark.parametrize(
    "header",
    [None, "", "Bearer", "Bearer   ", "Basic dXNlcjpwYXNz", "Token abc.def.ghi", "Bearer garbage"],
)
def test_bad_headers(resolver: PrincipalResolver, header: str | None) -> None:
    assert isinstance(resolver.resolve(header), Unauthenticated)


def test_expired_token(resolver: PrincipalResolver, codec: TokenCodec) -> None:
    result = resolver.resolve(f"Bearer {codec.issue(uuid4(), uuid4(), Role.USER, ttl=-5)}")
    assert isinstance(result, Unauthenticated)
    assert "TokenExpired" in result.reason


def test_foreign_signature(resolver: PrincipalResolver) -> None:
    token = TokenCodec("q" * 32).issue(uuid4(), uuid4(), Role.ADMIN)
    assert isinstance(resolver.resolve(f"Bearer {token}"), Unauthenticated)


@pytest.mark.parametrize(
    "claims",
    [
        {"client_id": str(uuid4()), "role": "USER"},  # no sub
        {"sub": str(uuid4()), "role": "USER"},  # no client_id
        {"sub": str(uuid4()), "client_id": str(uuid4())},  # no role
        {"sub": "not-a-uuid", "client_id": str(uuid4()), "role": "USER"},
        {"sub": str(uuid4()), "client_id": 42, "role": "USER"},
        {"sub": str(uuid4()), "client_id": str(uuid4()), "role": "ROOT"},
        {"sub": str(uuid4()), "client_id": str(uuid4()), "role": "admin"},  # exact match only
    ],
)
def test_incomplete_or_invalid_claims(resolver: PrincipalResolver, claims: dict) -> None:
    assert isinstance(resolver.resolve(f"Bearer {_raw(claims)}"), Unauthenticated)
