"""
catalog/store.py -- SQLAlchemy Core persistence for brands.

Pattern: Repository + Data Mapper. BrandStore satisfies
core.db.TenantScopedStore: every read and every write is qualified by
tenant_id.

Brand names are unique per tenant ignoring case. name_key holds the
casefolded name and UNIQUE(tenant_id, name_key) is the authoritative check;
a violation surfaces as DuplicateConflict("name").
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional
from uuid import UUID

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateConflict, TenantScopedNotFound
from catalog.models import Brand
from core.db import duplicate_field, name_key, now_iso

metadata = MetaData()

_brands = Table(
    "brands",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("tenant_id", String(36), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("name_key", String(255), nullable=False),  # casefolded name
    Column("description", Text),
    Column("logo", String(500)),
    Column("enabled", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("tenant_id", "name_key", name="uq_brands_tenant_name"),
)


class BrandStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    def find_by_id_and_tenant(self, brand_id: UUID, tenant_id: UUID) -> Optional[Brand]:
        with self.engine.connect() as conn:
            row = conn.execute(
                _brands.select().where(_brands.c.id == str(brand_id), _brands.c.tenant_id == str(tenant_id))
            ).fetchone()
        return _row_to_brand(row) if row is not None else None

    def list_by_tenant(self, tenant_id: UUID, include_disabled: bool = True) -> list[Brand]:
        query = _brands.select().where(_brands.c.tenant_id == str(tenant_id))
        if not include_disabled:
            query = query.where(_brands.c.enabled == 1)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_brands.c.created_at.desc())).fetchall()
        return [_row_to_brand(r) for r in rows]

    def exists_by_name_and_tenant(self, name: str, tenant_id: UUID, exclude_id: Optional[UUID] = None) -> bool:
        query = (
            select(func.count())
            .select_from(_brands)
            .where(_brands.c.tenant_id == str(tenant_id), _brands.c.name_key == name_key(name))
        )
        if exclude_id is not None:
            query = query.where(_brands.c.id != str(exclude_id))
        with self.engine.connect() as conn:
            return (conn.execute(query).scalar() or 0) > 0

    def create(self, brand: Brand) -> Brand:
        now = now_iso()
        created = replace(brand, created_at=brand.created_at or now, updated_at=now)
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    _brands.insert().values(
                        id=str(created.id),
                        tenant_id=str(created.tenant_id),
                        created_at=created.created_at,
                        **_mutable_values(created),
                    )
                )
        except IntegrityError as exc:
            if duplicate_field(exc, ("name",)) is None:
                raise
            raise DuplicateConflict("name", "brand") from exc
        return created

    def update(self, brand: Brand) -> Brand:
        """Write name, description, logo. enabled changes only via soft_enable/soft_disable."""
        updated = replace(brand, updated_at=now_iso())
        values = _mutable_values(updated)
        values.pop("enabled")
        try:
            self._write(brand, values)
        except IntegrityError as exc:
            if duplicate_field(exc, ("name",)) is None:
                raise
            raise DuplicateConflict("name", "brand") from exc
        return updated

    def soft_enable(self, brand: Brand) -> Brand:
        updated = replace(brand, enabled=True, updated_at=now_iso())
        self._write(brand, {"enabled": 1, "updated_at": updated.updated_at})
        return updated

    def soft_disable(self, brand: Brand) -> Brand:
        updated = replace(brand, enabled=False, updated_at=now_iso())
        self._write(brand, {"enabled": 0, "updated_at": updated.updated_at})
        return updated

    def hard_delete(self, brand: Brand) -> None:
        with self.engine.begin() as conn:
            result = conn.execute(
                _brands.delete().where(_brands.c.id == str(brand.id), _brands.c.tenant_id == str(brand.tenant_id))
            )
            if result.rowcount == 0:
                raise TenantScopedNotFound("brand")

    def _write(self, brand: Brand, values: dict) -> None:
        with self.engine.begin() as conn:
            result = conn.execute(
                _brands.update()
                .where(_brands.c.id == str(brand.id), _brands.c.tenant_id == str(brand.tenant_id))
                .values(**values)
            )
            if result.rowcount == 0:
                raise TenantScopedNotFound("brand")


def _mutable_values(brand: Brand) -> dict:
    return {
        "name": brand.name,
        "name_key": name_key(brand.name),
        "description": brand.description,
        "logo": brand.logo,
        "enabled": 1 if brand.enabled else 0,
        "updated_at": brand.updated_at,
    }


def _row_to_brand(row) -> Brand:
    return Brand(
        id=UUID(row.id),
        tenant_id=UUID(row.tenant_id),
        name=row.name,
        description=row.description,
        logo=row.logo,
        enabled=bool(row.enabled),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
