"""
auth/guard.py -- Role and tenant authorization decisions.

AccessGuard is pure: every method is a function of its arguments. Success
returns None; failure raises the matching AccessError.

scope_or_not_found() is the tenant-isolation primitive. A resource that does
not exist and a resource owned by another tenant take the same path and
raise the same TenantScopedNotFound, so a caller cannot probe for the
existence of other tenants' data.
"""

from __future__ import annotations

import hmac
import logging
from uuid import UUID

from auth.errors import RoleForbidden, SelfActionForbidden, TenantScopedNotFound
from auth.models import Principal, Role

logger = logging.getLogger("tenantgate.auth")

# Compared against when the resource is absent, so both outcomes do the same work.
_ABSENT = b"00000000-0000-0000-0000-000000000000"


class AccessGuard:
    def require_role(self, principal: Principal, role: Role) -> None:
        """Exact role match. There is no hierarchy: ADMIN is not implicitly USER."""
        if principal.role is not role:
            logger.info("Role check failed: user=%s has %s, needs %s", principal.user_id, principal.role.value, role.value)
            raise RoleForbidden(role.value)

    def scope_or_not_found(
        self,
        principal: Principal,
        resource_tenant_id: UUID | None,
        resource: str = "resource",
    ) -> None:
        """Raise TenantScopedNotFound unless the resource belongs to the principal's tenant.

        Pass None when the lookup found nothing.
        """
        owner = str(resource_tenant_id).encode() if resource_tenant_id is not None else _ABSENT
        same_tenant = hmac.compare_digest(owner, str(principal.tenant_id).encode())
        if resource_tenant_id is None or not same_tenant:
            raise TenantScopedNotFound(resource)

    def forbid_self(self, principal: Principal, target_user_id: UUID, action: str) -> None:
        """Block an action on the caller's own account (e.g. disable, delete)."""
        if target_user_id == principal.user_id:
            logger.info("Self-targeted %s blocked for user=%s", action, principal.user_id)
            raise SelfActionForbidden(action)
