"""
catalog/service.py -- Brand management for one tenant.

Reads are open to any role in the tenant; every mutation needs ADMIN.
The tenant always comes from the Principal. Check order per mutation:
role -> tenant-scoped lookup -> name uniqueness -> write.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional
from uuid import UUID

from auth.errors import DuplicateConflict, ValidationFailed
from auth.guard import AccessGuard
from auth.models import Principal, Role
from catalog.models import Brand
from catalog.store import BrandStore

logger = logging.getLogger("tenantgate.catalog")

_NAME_MAX = 255


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_name(name: str) -> None:
    if not name:
        raise ValidationFailed([("name", "Name is required.")])
    if len(name) > _NAME_MAX:
        raise ValidationFailed([("name", f"Name must not exceed {_NAME_MAX} characters.")])


class BrandService:
    def __init__(self, brands: BrandStore, guard: Optional[AccessGuard] = None) -> None:
        self._brands = brands
        self._guard = guard or AccessGuard()

    def list_brands(self, principal: Principal, include_disabled: bool = True) -> list[Brand]:
        return self._brands.list_by_tenant(principal.tenant_id, include_disabled=include_disabled)

    def get_brand(self, principal: Principal, brand_id: UUID) -> Brand:
        return self._find(principal, brand_id)

    def create_brand(
        self,
        principal: Principal,
        *,
        name: str,
        description: Optional[str] = None,
        logo: Optional[str] = None,
    ) -> Brand:
        self._guard.require_role(principal, Role.ADMIN)
        name = name.strip()
        _check_name(name)
        if self._brands.exists_by_name_and_tenant(name, principal.tenant_id):
            raise DuplicateConflict("name", "brand")
        created = self._brands.create(
            Brand(
                tenant_id=principal.tenant_id,
                name=name,
                description=_optional(description),
                logo=_optional(logo),
            )
        )
        logger.info("Brand created: %s (%s) in tenant %s", created.id, created.name, principal.tenant_id)
        return created

    def update_brand(
        self,
        principal: Principal,
        brand_id: UUID,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        logo: Optional[str] = None,
    ) -> Brand:
        """Partial update. None leaves a field unchanged; blank clears description/logo."""
        self._guard.require_role(principal, Role.ADMIN)
        brand = self._find(principal, brand_id)
        if name is None and description is None and logo is None:
            return brand

        changes: dict = {}
        if name is not None:
            changes["name"] = name.strip()
            _check_name(changes["name"])
            if self._brands.exists_by_name_and_tenant(changes["name"], principal.tenant_id, exclude_id=brand.id):
                raise DuplicateConflict("name", "brand")
        if description is not None:
            changes["description"] = _optional(description)
        if logo is not None:
            changes["logo"] = _optional(logo)

        updated = self._brands.update(replace(brand, **changes))
        logger.info("Brand updated: %s (fields=%s)", brand.id, sorted(changes))
        return updated

    def enable_brand(self, principal: Principal, brand_id: UUID) -> Brand:
        self._guard.require_role(principal, Role.ADMIN)
        brand = self._find(principal, brand_id)
        if brand.enabled:
            return brand
        logger.info("Brand enabled: %s", brand.id)
        return self._brands.soft_enable(brand)

    def disable_brand(self, principal: Principal, brand_id: UUID) -> Brand:
        self._guard.require_role(principal, Role.ADMIN)
        brand = self._find(principal, brand_id)
        if not brand.enabled:
            return brand
        logger.info("Brand disabled: %s", brand.id)
        return self._brands.soft_disable(brand)

    def delete_brand(self, principal: Principal, brand_id: UUID) -> None:
        self._guard.require_role(principal, Role.ADMIN)
        brand = self._find(principal, brand_id)
        self._brands.hard_delete(brand)
        logger.info("Brand deleted: %s (%s)", brand.id, brand.name)

    def _find(self, principal: Principal, brand_id: UUID) -> Brand:
        brand = self._brands.find_by_id_and_tenant(brand_id, principal.tenant_id)
        self._guard.scope_or_not_found(principal, brand.tenant_id if brand else None, "brand")
        return brand
