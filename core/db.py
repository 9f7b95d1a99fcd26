"""
core/db.py -- Engine construction and the tenant-scoped store contract.

Every store in TenantGate builds its engine through make_engine() so SQLite
connections get the same thread and journal settings, whichever package the
store lives in.

TenantScopedStore is the shape every persistence-backed, tenant-owned
resource exposes. There is deliberately no get_by_id(id): each lookup and
each write takes the owning tenant_id alongside the id, so a cross-tenant
read cannot be expressed through the store API at all.

Layer rule: core/ is the kernel. No imports from api/, auth/, audit/, catalog/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Protocol, TypeVar
from uuid import UUID

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import Pool

T = TypeVar("T")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str, poolclass: Optional[type[Pool]] = None) -> Engine:
    """Create an Engine for db_url, applying SQLite-specific connection setup.

    poolclass overrides SQLAlchemy's choice; tests pass StaticPool for
    shared in-memory databases.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    kwargs: dict = {"connect_args": connect_args}
    if poolclass is not None:
        kwargs["poolclass"] = poolclass
    engine = create_engine(db_url, **kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def name_key(value: str) -> str:
    """Normalized form used by case-insensitive unique constraints."""
    return value.strip().casefold()


def duplicate_field(exc: IntegrityError, fields: tuple[str, ...]) -> Optional[str]:
    """Return which of fields a unique-constraint violation is about, or None.

    Only the constraint or column names are inspected, never the colliding
    values: PostgreSQL appends "DETAIL: Key (...)=(<values>)", and a value
    may itself contain a field name. The driver's diag.constraint_name is
    used when present (psycopg); otherwise SQLite's column list ("UNIQUE
    constraint failed: accounts.tenant_id, accounts.email_key") or the text
    before DETAIL. Constraint and column names in TenantGate always contain
    the field name. None means the error is not a unique violation on any of
    fields and should propagate unchanged.
    """
    message = str(exc.orig).lower()
    if "unique" not in message and "duplicate" not in message:
        return None
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint:
        names = constraint.lower()
    elif "constraint failed:" in message:
        names = message.split("constraint failed:", 1)[1]
    else:
        names = message.split("detail:", 1)[0]
    for name in fields:
        if name in names:
            return name
    return None


class TenantScopedStore(Protocol[T]):
    """Operations every tenant-owned resource store must provide.

    Reads return None / False / [] for resources outside tenant_id exactly as
    for resources that do not exist. Writes carry both id and tenant_id in
    their WHERE clause and run in a single transaction.

    exists_by_name_and_tenant compares the way the resource's unique
    constraint does: casefolded for brand names, exact for account usernames.
    """

    def find_by_id_and_tenant(self, resource_id: UUID, tenant_id: UUID) -> Optional[T]: ...

    def list_by_tenant(self, tenant_id: UUID, include_disabled: bool = True) -> list[T]: ...

    def exists_by_name_and_tenant(self, name: str, tenant_id: UUID, exclude_id: Optional[UUID] = None) -> bool: ...

    def create(self, resource: T) -> T: ...

    def update(self, resource: T) -> T: ...

    def soft_disable(self, resource: T) -> T: ...

    def soft_enable(self, resource: T) -> T: ...

    def hard_delete(self, resource: T) -> None: ...
