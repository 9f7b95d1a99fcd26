"""
auth/sessions.py -- Login and logout.

Login steps, in order (each failure is the same InvalidCredentials):
  1. Tenant by name -- missing or disabled fails.
  2. Account by username-or-email within that tenant -- missing fails.
  3. bcrypt comparison -- mismatch fails. When step 1 or 2 came back empty
     the comparison still runs against a dummy hash [timing equalization].
  4. Account disabled fails.
  5. Token issued for (account.id, account.tenant_id, account.role).
  6. SessionRecord appended to the audit trail.

The reason a login failed is logged server-side and never returned.

Logout closes the caller's latest open SessionRecord. The token is NOT
revoked: it stays valid until it expires. Keep TOKEN_EXPIRE_SECONDS short.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NoReturn, Optional

from audit.models import SessionRecord
from audit.store import AuditTrail
from auth.errors import InvalidCredentials
from auth.models import Principal
from auth.store import AccountStore, TenantStore
from auth.tokens import TokenCodec, check_password

logger = logging.getLogger("tenantgate.auth")


@dataclass(frozen=True)
class LoginResult:
    token: str
    expires_in: int  # seconds
    principal: Principal
    session: SessionRecord


def _fail(reason: str, login: str) -> NoReturn:
    logger.info("Login failed for %r: %s", login, reason)
    raise InvalidCredentials()


class CredentialService:
    """Usage:
        service = CredentialService(tenants, accounts, audit, codec, default_tenant="Acme")
        result = service.login("alice", "s3cret-pass")
        service.logout(principal)
    """

    def __init__(
        self,
        tenants: TenantStore,
        accounts: AccountStore,
        audit: AuditTrail,
        codec: TokenCodec,
        default_tenant: str = "",
    ) -> None:
        self._tenants = tenants
        self._accounts = accounts
        self._audit = audit
        self._codec = codec
        self._default_tenant = default_tenant

    def login(self, login: str, password: str, tenant: Optional[str] = None) -> LoginResult:
        """Authenticate login/password within a tenant. Raises InvalidCredentials on any failure.

        tenant is the tenant name; when omitted the configured default tenant
        is used.
        """
        tenant_name = tenant or self._default_tenant
        found_tenant = self._tenants.find_by_name(tenant_name) if tenant_name else None
        if found_tenant is None or not found_tenant.enabled:
            check_password(password, None)
            _fail("tenant missing or disabled", login)

        account = self._accounts.find_by_login(login, found_tenant.id)
        if not check_password(password, account.password_hash if account is not None else None):
            _fail("unknown account or wrong password", login)
        if not account.enabled:
            _fail("account disabled", login)

        token = self._codec.issue(account.id, account.tenant_id, account.role)
        session = self._audit.record_login(account.tenant_id, account.id, account.username)
        logger.info("Login succeeded: user=%s tenant=%s", account.id, account.tenant_id)
        return LoginResult(
            token=token,
            expires_in=self._codec.default_ttl_seconds,
            principal=Principal(
                user_id=account.id,
                tenant_id=account.tenant_id,
                role=account.role,
                subject=str(account.id),
            ),
            session=session,
        )

    def logout(self, principal: Principal) -> Optional[SessionRecord]:
        """Close the caller's latest open session. Returns None if none was open."""
        closed = self._audit.close_latest_open(principal.tenant_id, principal.user_id)
        if closed is None:
            logger.info("Logout with no open session: user=%s tenant=%s", principal.user_id, principal.tenant_id)
        else:
            logger.info("Logout: user=%s tenant=%s session=%s", principal.user_id, principal.tenant_id, closed.id)
        return closed
