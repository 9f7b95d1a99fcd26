"""
auth/accounts.py -- Account lifecycle under tenant and seat-limit constraints.

Every operation takes the caller's Principal; the tenant_id always comes
from it, never from input. Checks run in a fixed order and fail fast:

  role (ADMIN) -> self-protection -> tenant exists and enabled
  -> target lookup (tenant-scoped) -> seat limit -> uniqueness (username, email) -> write

Self-protection needs no lookup: an admin whose own record is already gone
still gets SelfActionForbidden, not a 404.

Later checks assume earlier ones passed (uniqueness is only meaningful for a
valid tenant), so the order is not interchangeable. All role and tenant
checks run before any write.

The tenant-enabled check applies to create and enable. Disable, update, and
delete stay available on a disabled tenant so an admin can still reclaim
seats and fix records.

Seat-limit and uniqueness pre-checks give the caller a precise error cheaply;
AccountStore re-enforces both inside the write transaction.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, TypeAdapter, ValidationError

from auth.errors import DuplicateConflict, SeatLimitConflict, TenantUnavailable, ValidationFailed
from auth.guard import AccessGuard
from auth.models import Account, Principal, Role, Tenant
from auth.store import AccountStore, TenantStore
from auth.tokens import hash_password

logger = logging.getLogger("tenantgate.accounts")

_EMAIL = TypeAdapter(EmailStr)
_PASSWORD_MIN = 8
_PASSWORD_MAX_BYTES = 72  # bcrypt input limit


def _optional(value: Optional[str]) -> Optional[str]:
    """Trim; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class AccountService:
    def __init__(self, tenants: TenantStore, accounts: AccountStore, guard: Optional[AccessGuard] = None) -> None:
        self._tenants = tenants
        self._accounts = accounts
        self._guard = guard or AccessGuard()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_accounts(self, principal: Principal, include_disabled: bool = True) -> list[Account]:
        self._guard.require_role(principal, Role.ADMIN)
        return self._accounts.list_by_tenant(principal.tenant_id, include_disabled=include_disabled)

    def get_account(self, principal: Principal, account_id: UUID) -> Account:
        self._guard.require_role(principal, Role.ADMIN)
        return self._find(principal, account_id)

    def get_profile(self, principal: Principal) -> Account:
        """The caller's own account. Any role."""
        return self._find(principal, principal.user_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_account(
        self,
        principal: Principal,
        *,
        name: str,
        username: str,
        email: str,
        password: str,
        role: Role | str,
        enabled: bool = True,
        phone_number: Optional[str] = None,
        designation: Optional[str] = None,
    ) -> Account:
        self._guard.require_role(principal, Role.ADMIN)
        name, username, email = name.strip(), username.strip(), email.strip()
        errors = _check_fields(name=name, email=email)
        if not username:
            errors.append(("username", "Username is required."))
        errors.extend(_check_password(password))
        if errors:
            raise ValidationFailed(errors)

        tenant = self._active_tenant(principal)
        if enabled:
            self._check_seats(tenant)
        if self._accounts.exists_by_name_and_tenant(username, tenant.id):
            raise DuplicateConflict("username", "account")
        if self._accounts.exists_by_email_and_tenant(email, tenant.id):
            raise DuplicateConflict("email", "account")

        created = self._accounts.create(
            Account(
                tenant_id=principal.tenant_id,
                name=name,
                username=username,
                email=email,
                role=Role(role),
                password_hash=hash_password(password),
                enabled=enabled,
                phone_number=_optional(phone_number),
                designation=_optional(designation),
            )
        )
        logger.info("Account created: %s (%s) in tenant %s by %s", created.id, created.username, tenant.id, principal.user_id)
        return created

    def update_account(
        self,
        principal: Principal,
        account_id: UUID,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Role | str | None = None,
        phone_number: Optional[str] = None,
        designation: Optional[str] = None,
    ) -> Account:
        """Partial update: None means "leave unchanged". All-None performs no write."""
        self._guard.require_role(principal, Role.ADMIN)
        account = self._find(principal, account_id)
        if all(v is None for v in (name, email, role, phone_number, designation)):
            return account

        changes: dict = {}
        if name is not None:
            changes["name"] = name.strip()
        if email is not None:
            changes["email"] = email.strip()
        if role is not None:
            changes["role"] = Role(role)
        if phone_number is not None:
            changes["phone_number"] = _optional(phone_number)
        if designation is not None:
            changes["designation"] = _optional(designation)
        errors = _check_fields(name=changes.get("name"), email=changes.get("email"))
        if errors:
            raise ValidationFailed(errors)

        if "email" in changes and self._accounts.exists_by_email_and_tenant(
            changes["email"], principal.tenant_id, exclude_id=account.id
        ):
            raise DuplicateConflict("email", "account")

        updated = self._accounts.update(replace(account, **changes))
        logger.info("Account updated: %s by %s (fields=%s)", account.id, principal.user_id, sorted(changes))
        return updated

    def enable_account(self, principal: Principal, account_id: UUID) -> Account:
        self._guard.require_role(principal, Role.ADMIN)
        tenant = self._active_tenant(principal)
        account = self._find(principal, account_id)
        if account.enabled:
            return account
        self._check_seats(tenant)
        enabled = self._accounts.soft_enable(account)
        logger.info("Account enabled: %s by %s", account.id, principal.user_id)
        return enabled

    def disable_account(self, principal: Principal, account_id: UUID) -> Account:
        self._guard.require_role(principal, Role.ADMIN)
        self._guard.forbid_self(principal, account_id, "disable")
        account = self._find(principal, account_id)
        if not account.enabled:
            return account
        disabled = self._accounts.soft_disable(account)
        logger.info("Account disabled: %s by %s", account.id, principal.user_id)
        return disabled

    def delete_account(self, principal: Principal, account_id: UUID) -> None:
        """Permanent delete. The account's session history stays in the audit trail."""
        self._guard.require_role(principal, Role.ADMIN)
        self._guard.forbid_self(principal, account_id, "delete")
        account = self._find(principal, account_id)
        self._accounts.hard_delete(account)
        logger.info("Account deleted: %s (%s) by %s", account.id, account.username, principal.user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find(self, principal: Principal, account_id: UUID) -> Account:
        account = self._accounts.find_by_id_and_tenant(account_id, principal.tenant_id)
        self._guard.scope_or_not_found(principal, account.tenant_id if account else None, "account")
        return account

    def _active_tenant(self, principal: Principal) -> Tenant:
        tenant = self._tenants.find_by_id(principal.tenant_id)
        if tenant is None or not tenant.enabled:
            raise TenantUnavailable()
        return tenant

    def _check_seats(self, tenant: Tenant) -> None:
        if self._accounts.count_enabled(tenant.id) >= tenant.seat_limit:
            raise SeatLimitConflict(tenant.seat_limit)


def _check_fields(name: Optional[str], email: Optional[str]) -> list[tuple[str, str]]:
    """Validate the fields shared by create and update. None means "not supplied"."""
    errors: list[tuple[str, str]] = []
    if name is not None and not name:
        errors.append(("name", "Name is required."))
    if email is not None and not _is_email(email):
        errors.append(("email", "Email format is invalid."))
    return errors


def _is_email(value: str) -> bool:
    try:
        _EMAIL.validate_python(value)
    except ValidationError:
        return False
    return True


def _check_password(password: str) -> list[tuple[str, str]]:
    if len(password) < _PASSWORD_MIN:
        return [("password", f"Password must be at least {_PASSWORD_MIN} characters.")]
    if len(password.encode("utf-8")) > _PASSWORD_MAX_BYTES:
        return [("password", f"Password must not exceed {_PASSWORD_MAX_BYTES} bytes.")]
    return []
