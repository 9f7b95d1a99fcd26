"""
auth/tokens.py -- Token codec and password hashing.

Security design decisions:
  Tokens: python-jose with HS256. TokenCodec signs {sub, client_id, role,
       iat, exp} with SECRET_KEY. verify() distinguishes malformed, expired,
       and badly-signed tokens via TokenError subclasses so the server log can
       say what happened; the resolver collapses all of them into one
       unauthenticated outcome for the caller.

       Expiry is checked on the unverified claims before the signature. An
       expired token is therefore TokenExpired whether or not it was signed
       with our key, and verification does no MAC work for it.

  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       enables timing equalization in check_password(): when no account
       matches, bcrypt still runs so response time does not reveal whether
       the tenant or the login exists.

  SECRET_KEY: sourced from core.config.get_settings(), which refuses to start
       with a key shorter than 32 bytes. TokenCodec re-checks and raises
       ConfigError so a codec can never be built around a weak key.

Layer rule: no imports from api/, audit/, or catalog/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from uuid import UUID

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import ConfigError, TokenExpired, TokenInvalidSignature, TokenMalformed
from auth.models import Claims, Role
from core.config import MIN_SECRET_KEY_BYTES, get_settings

logger = logging.getLogger("tenantgate.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only accepts up to 72 bytes; the API layer rejects longer
    passwords before they reach this function.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Corrupt stored hash or over-long input: treat as a mismatch.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("tenantgate_timing_dummy")


def check_password(plain: str, hashed: str | None) -> bool:
    """Compare plain against hashed, running bcrypt even when hashed is None.

    Callers pass None when the tenant or account lookup came back empty. The
    dummy comparison keeps every login failure on the same cost profile.
    """
    if hashed is None:
        verify_password(plain, _DUMMY_HASH)
        return False
    return verify_password(plain, hashed)


# ---------------------------------------------------------------------------
# Token codec
# ---------------------------------------------------------------------------


class TokenCodec:
    """Issue and verify signed bearer tokens.

    Usage:
        codec = TokenCodec(secret_key, default_ttl_seconds=3600)
        token = codec.issue(account.id, account.tenant_id, account.role)
        claims = codec.verify(token)   # raises TokenError subclasses
    """

    def __init__(self, secret_key: str, default_ttl_seconds: int = 3600) -> None:
        if len(secret_key.encode("utf-8")) < MIN_SECRET_KEY_BYTES:
            raise ConfigError(f"Token signing key must be at least {MIN_SECRET_KEY_BYTES} bytes.")
        self._secret_key = secret_key
        self.default_ttl_seconds = default_ttl_seconds

    def issue(
        self,
        subject: UUID | str,
        tenant_id: UUID | str,
        role: Role | str,
        ttl: int | timedelta | None = None,
    ) -> str:
        """Encode a signed token with iat=now and exp=now+ttl.

        ttl is seconds (int) or a timedelta; None uses the codec default.
        """
        if ttl is None:
            ttl = timedelta(seconds=self.default_ttl_seconds)
        elif not isinstance(ttl, timedelta):
            ttl = timedelta(seconds=ttl)
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject),
            "client_id": str(tenant_id),
            "role": Role(role).value,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> Claims:
        """Check structure, expiry, and signature. Returns Claims or raises TokenError.

        Order: structure (TokenMalformed) -> expiry on unverified claims
        (TokenExpired) -> signature (TokenInvalidSignature).
        """
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise TokenMalformed(str(exc)) from exc

        exp = unverified.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise TokenMalformed("missing or non-numeric exp claim")
        if exp <= time.time():
            raise TokenExpired("token expired")

        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            # Crossed the expiry boundary between the two checks above.
            raise TokenExpired(str(exc)) from exc
        except JWTClaimsError as exc:
            raise TokenMalformed(str(exc)) from exc
        except JWTError as exc:
            raise TokenInvalidSignature(str(exc)) from exc

        iat = payload.get("iat")
        return Claims(
            subject=payload.get("sub"),
            tenant_id=payload.get("client_id"),
            role=payload.get("role"),
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc) if isinstance(iat, (int, float)) else None,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


@lru_cache
def get_token_codec() -> TokenCodec:
    """Return the process-wide codec built from Settings (read once)."""
    settings = get_settings()
    return TokenCodec(settings.secret_key, default_ttl_seconds=settings.token_expire_seconds)
