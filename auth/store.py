"""
auth/store.py -- SQLAlchemy Core persistence for tenants and accounts.

Pattern: Repository + Data Mapper (same as catalog/store.py and
audit/store.py). TenantStore and AccountStore are the repositories;
_row_to_tenant / _row_to_account are the mappers. Services never touch SQL.

Tenant isolation:
  AccountStore satisfies core.db.TenantScopedStore. Every query and every
  write is qualified by tenant_id; there is no lookup by account id alone.
  TenantStore is the exception: tenants are not tenant-owned, and the
  provisioning CLI and the login flow look them up by id or name.

Uniqueness and seat limits:
  UNIQUE(tenant_id, username) and UNIQUE(tenant_id, email_key) are the
  authoritative duplicate checks. email_key is the casefolded email, which
  makes email uniqueness case-insensitive; username stays case-sensitive.
  IntegrityError is remapped to DuplicateConflict.

  Seat limits are enforced inside the write transaction: create() of an
  enabled account and soft_enable() write first, then lock the tenant row
  (SELECT ... FOR UPDATE), recount enabled accounts and roll back with
  SeatLimitConflict when the tenant is over its limit. The lock makes
  concurrent writers for one tenant recount in turn. A service-level
  pre-check only saves the round trip.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, audit/, or catalog/.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional
from uuid import UUID

from sqlalchemy import CheckConstraint, Column, Integer, MetaData, String, Table, Text, UniqueConstraint, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateConflict, SeatLimitConflict, TenantScopedNotFound, TenantUnavailable, ValidationFailed
from auth.models import Account, Role, Tenant
from core.db import duplicate_field, name_key, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_tenants = Table(
    "tenants",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("seat_limit", Integer, nullable=False),
    Column("logo", String(500)),
    Column("enabled", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    CheckConstraint("seat_limit >= 1", name="ck_tenants_seat_limit"),
)

_accounts = Table(
    "accounts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("tenant_id", String(36), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("username", String(100), nullable=False),
    Column("email", String(255), nullable=False),
    Column("email_key", String(255), nullable=False),  # casefolded email
    Column("role", String(20), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("enabled", Integer, nullable=False, server_default="1"),
    Column("phone_number", String(20)),
    Column("designation", String(100)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("tenant_id", "username", name="uq_accounts_tenant_username"),
    UniqueConstraint("tenant_id", "email_key", name="uq_accounts_tenant_email"),
)


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


class TenantStore:
    """Repository for Tenant records (provisioning and login lookups)."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    def create(self, tenant: Tenant) -> Tenant:
        """Insert a tenant. Raises DuplicateConflict if the name is taken."""
        errors = []
        if not tenant.name.strip():
            errors.append(("name", "Name is required."))
        if tenant.seat_limit < 1:
            errors.append(("seat_limit", "Seat limit must be at least 1."))
        if errors:
            raise ValidationFailed(errors)
        now = now_iso()
        created = replace(tenant, created_at=tenant.created_at or now, updated_at=now)
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    _tenants.insert().values(
                        id=str(created.id),
                        name=created.name,
                        seat_limit=created.seat_limit,
                        logo=created.logo,
                        enabled=1 if created.enabled else 0,
                        created_at=created.created_at,
                        updated_at=created.updated_at,
                    )
                )
        except IntegrityError as exc:
            if duplicate_field(exc, ("name",)) is None:
                raise
            raise DuplicateConflict("name", "tenant") from exc
        return created

    def find_by_id(self, tenant_id: UUID) -> Optional[Tenant]:
        with self.engine.connect() as conn:
            row = conn.execute(_tenants.select().where(_tenants.c.id == str(tenant_id))).fetchone()
        return _row_to_tenant(row) if row is not None else None

    def find_by_name(self, name: str) -> Optional[Tenant]:
        """Exact (case-sensitive) name lookup, as the name constraint is exact."""
        with self.engine.connect() as conn:
            row = conn.execute(_tenants.select().where(_tenants.c.name == name)).fetchone()
        return _row_to_tenant(row) if row is not None else None

    def list_tenants(self) -> list[Tenant]:
        with self.engine.connect() as conn:
            rows = conn.execute(_tenants.select().order_by(_tenants.c.name)).fetchall()
        return [_row_to_tenant(r) for r in rows]

    def set_enabled(self, tenant_id: UUID, enabled: bool) -> bool:
        """Enable or disable a tenant. Returns False if tenant_id was not found."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _tenants.update()
                .where(_tenants.c.id == str(tenant_id))
                .values(enabled=1 if enabled else 0, updated_at=now_iso())
            )
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountStore:
    """Tenant-scoped repository for Account records.

    Usage:
        store = AccountStore(engine)
        account = store.create(Account(tenant_id=t.id, name="Alice", username="alice", ...))
        store.find_by_id_and_tenant(account.id, t.id)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id_and_tenant(self, account_id: UUID, tenant_id: UUID) -> Optional[Account]:
        with self.engine.connect() as conn:
            row = conn.execute(_scoped(account_id, tenant_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def list_by_tenant(self, tenant_id: UUID, include_disabled: bool = True) -> list[Account]:
        """Return the tenant's accounts, newest first."""
        query = _accounts.select().where(_accounts.c.tenant_id == str(tenant_id))
        if not include_disabled:
            query = query.where(_accounts.c.enabled == 1)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_accounts.c.created_at.desc())).fetchall()
        return [_row_to_account(r) for r in rows]

    def exists_by_name_and_tenant(self, name: str, tenant_id: UUID, exclude_id: Optional[UUID] = None) -> bool:
        """True if the username is taken in the tenant.

        Exact match: usernames are the one case-sensitive name field, unlike
        brand names and emails.
        """
        return self._exists(_accounts.c.username == name, tenant_id, exclude_id)

    def exists_by_email_and_tenant(self, email: str, tenant_id: UUID, exclude_id: Optional[UUID] = None) -> bool:
        """True if the email is taken in the tenant (case-insensitive)."""
        return self._exists(_accounts.c.email_key == name_key(email), tenant_id, exclude_id)

    def find_by_login(self, login: str, tenant_id: UUID) -> Optional[Account]:
        """Look up an account by username, falling back to email, within one tenant.

        Username wins when one account's username equals another's email.
        """
        base = _accounts.select().where(_accounts.c.tenant_id == str(tenant_id))
        with self.engine.connect() as conn:
            row = conn.execute(base.where(_accounts.c.username == login)).fetchone()
            if row is None:
                row = conn.execute(base.where(_accounts.c.email_key == name_key(login))).fetchone()
        return _row_to_account(row) if row is not None else None

    def count_enabled(self, tenant_id: UUID) -> int:
        with self.engine.connect() as conn:
            return _count_enabled(conn, tenant_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, account: Account) -> Account:
        """Insert an account; enforce uniqueness and (if enabled) the seat limit atomically."""
        now = now_iso()
        created = replace(account, created_at=account.created_at or now, updated_at=now)
        try:
            with self.engine.begin() as conn:
                conn.execute(_accounts.insert().values(id=str(created.id), **_account_values(created)))
                if created.enabled:
                    _enforce_seat_limit(conn, created.tenant_id)
        except IntegrityError as exc:
            field = duplicate_field(exc, ("username", "email"))
            if field is None:
                raise
            raise DuplicateConflict(field, "account") from exc
        return created

    def update(self, account: Account) -> Account:
        """Write the mutable fields of account. id, tenant_id, username, created_at are never written."""
        updated = replace(account, updated_at=now_iso())
        values = _account_values(updated)
        for immutable in ("tenant_id", "username", "created_at", "enabled"):
            values.pop(immutable)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _accounts.update()
                    .where(_accounts.c.id == str(account.id), _accounts.c.tenant_id == str(account.tenant_id))
                    .values(**values)
                )
                if result.rowcount == 0:
                    raise TenantScopedNotFound("account")
        except IntegrityError as exc:
            field = duplicate_field(exc, ("username", "email"))
            if field is None:
                raise
            raise DuplicateConflict(field, "account") from exc
        return updated

    def soft_enable(self, account: Account) -> Account:
        """Mark enabled; rolls back with SeatLimitConflict if that exceeds the tenant's seats."""
        return self._set_enabled(account, True)

    def soft_disable(self, account: Account) -> Account:
        return self._set_enabled(account, False)

    def hard_delete(self, account: Account) -> None:
        with self.engine.begin() as conn:
            result = conn.execute(
                _accounts.delete().where(
                    _accounts.c.id == str(account.id), _accounts.c.tenant_id == str(account.tenant_id)
                )
            )
            if result.rowcount == 0:
                raise TenantScopedNotFound("account")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _exists(self, condition, tenant_id: UUID, exclude_id: Optional[UUID]) -> bool:
        query = select(func.count()).select_from(_accounts).where(_accounts.c.tenant_id == str(tenant_id), condition)
        if exclude_id is not None:
            query = query.where(_accounts.c.id != str(exclude_id))
        with self.engine.connect() as conn:
            return (conn.execute(query).scalar() or 0) > 0

    def _set_enabled(self, account: Account, enabled: bool) -> Account:
        updated = replace(account, enabled=enabled, updated_at=now_iso())
        with self.engine.begin() as conn:
            result = conn.execute(
                _accounts.update()
                .where(_accounts.c.id == str(account.id), _accounts.c.tenant_id == str(account.tenant_id))
                .values(enabled=1 if enabled else 0, updated_at=updated.updated_at)
            )
            if result.rowcount == 0:
                raise TenantScopedNotFound("account")
            if enabled:
                _enforce_seat_limit(conn, account.tenant_id)
        return updated


def _scoped(account_id: UUID, tenant_id: UUID):
    return _accounts.select().where(_accounts.c.id == str(account_id), _accounts.c.tenant_id == str(tenant_id))


def _count_enabled(conn: Connection, tenant_id: UUID) -> int:
    query = (
        select(func.count())
        .select_from(_accounts)
        .where(_accounts.c.tenant_id == str(tenant_id), _accounts.c.enabled == 1)
    )
    return conn.execute(query).scalar() or 0


def _locked_seat_limit(tenant_id: UUID):
    """SELECT seat_limit ... FOR UPDATE.

    Holding the tenant row lock until commit serializes seat changes per
    tenant, so a second writer recounts only after the first has committed.
    SQLite drops the clause; its single-writer lock already serializes.
    """
    return select(_tenants.c.seat_limit).where(_tenants.c.id == str(tenant_id)).with_for_update()


def _enforce_seat_limit(conn: Connection, tenant_id: UUID) -> None:
    """Raise (rolling back the enclosing transaction) if the tenant is over its seat limit."""
    seat_limit = conn.execute(_locked_seat_limit(tenant_id)).scalar()
    if seat_limit is None:
        raise TenantUnavailable()
    if _count_enabled(conn, tenant_id) > seat_limit:
        raise SeatLimitConflict(seat_limit)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _account_values(account: Account) -> dict:
    return {
        "tenant_id": str(account.tenant_id),
        "name": account.name,
        "username": account.username,
        "email": account.email,
        "email_key": name_key(account.email),
        "role": Role(account.role).value,
        "password_hash": account.password_hash,
        "enabled": 1 if account.enabled else 0,
        "phone_number": account.phone_number,
        "designation": account.designation,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
    }


def _row_to_tenant(row) -> Tenant:
    return Tenant(
        id=UUID(row.id),
        name=row.name,
        seat_limit=row.seat_limit,
        logo=row.logo,
        enabled=bool(row.enabled),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_account(row) -> Account:
    return Account(
        id=UUID(row.id),
        tenant_id=UUID(row.tenant_id),
        name=row.name,
        username=row.username,
        email=row.email,
        role=Role(row.role),
        password_hash=row.password_hash,
        enabled=bool(row.enabled),
        phone_number=row.phone_number,
        designation=row.designation,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
