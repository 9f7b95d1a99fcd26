"""
audit/store.py -- SQLAlchemy Core persistence for the session audit trail.

Pattern: Repository + Data Mapper (same as auth/store.py).

The trail is append-only. The only write besides the INSERT at login is the
logout stamp, and its WHERE clause requires logout_at IS NULL so a record is
closed at most once even when two logouts race. There is no delete.

Every query is tenant-qualified; reconciliation views (open sessions, per-user
history, date ranges) never cross tenants.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import Column, MetaData, String, Table, func, select
from sqlalchemy.engine import Engine

from audit.models import SessionRecord
from core.db import now_iso

metadata = MetaData()

_sessions = Table(
    "session_records",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("tenant_id", String(36), nullable=False, index=True),
    Column("user_id", String(36), nullable=False, index=True),
    Column("username", String(100), nullable=False),
    Column("login_at", String(32), nullable=False),
    Column("logout_at", String(32)),
)


class AuditTrail:
    """Login/logout history keyed by (tenant_id, user_id)."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    def record_login(self, tenant_id: UUID, user_id: UUID, username: str) -> SessionRecord:
        record = SessionRecord(tenant_id=tenant_id, user_id=user_id, username=username, login_at=now_iso())
        with self.engine.begin() as conn:
            conn.execute(
                _sessions.insert().values(
                    id=str(record.id),
                    tenant_id=str(record.tenant_id),
                    user_id=str(record.user_id),
                    username=record.username,
                    login_at=record.login_at,
                )
            )
        return record

    def close_latest_open(self, tenant_id: UUID, user_id: UUID) -> Optional[SessionRecord]:
        """Stamp logout_at on the user's most recent open session.

        Returns the closed record, or None when the user has no open session.
        """
        with self.engine.begin() as conn:
            row = conn.execute(
                _sessions.select()
                .where(
                    _sessions.c.tenant_id == str(tenant_id),
                    _sessions.c.user_id == str(user_id),
                    _sessions.c.logout_at.is_(None),
                )
                .order_by(_sessions.c.login_at.desc())
                .limit(1)
            ).fetchone()
            if row is None:
                return None
            logout_at = now_iso()
            result = conn.execute(
                _sessions.update()
                .where(_sessions.c.id == row.id, _sessions.c.logout_at.is_(None))
                .values(logout_at=logout_at)
            )
            if result.rowcount == 0:
                return None
        return replace(_row_to_record(row), logout_at=logout_at)

    def list_by_tenant(self, tenant_id: UUID, open_only: bool = False) -> list[SessionRecord]:
        """All sessions in the tenant, newest login first. open_only keeps those without a logout."""
        query = _sessions.select().where(_sessions.c.tenant_id == str(tenant_id))
        if open_only:
            query = query.where(_sessions.c.logout_at.is_(None))
        return self._fetch(query)

    def list_by_user(self, tenant_id: UUID, user_id: UUID) -> list[SessionRecord]:
        return self._fetch(
            _sessions.select().where(_sessions.c.tenant_id == str(tenant_id), _sessions.c.user_id == str(user_id))
        )

    def list_between(self, tenant_id: UUID, start: datetime, end: datetime) -> list[SessionRecord]:
        """Sessions whose login falls within [start, end]. Datetimes must be timezone-aware."""
        return self._fetch(
            _sessions.select().where(
                _sessions.c.tenant_id == str(tenant_id),
                _sessions.c.login_at >= start.astimezone(timezone.utc).isoformat(),
                _sessions.c.login_at <= end.astimezone(timezone.utc).isoformat(),
            )
        )

    def count_logins(self, tenant_id: UUID, user_id: UUID) -> int:
        query = (
            select(func.count())
            .select_from(_sessions)
            .where(_sessions.c.tenant_id == str(tenant_id), _sessions.c.user_id == str(user_id))
        )
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def _fetch(self, query) -> list[SessionRecord]:
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_sessions.c.login_at.desc())).fetchall()
        return [_row_to_record(r) for r in rows]


def _row_to_record(row) -> SessionRecord:
    return SessionRecord(
        id=UUID(row.id),
        tenant_id=UUID(row.tenant_id),
        user_id=UUID(row.user_id),
        username=row.username,
        login_at=row.login_at,
        logout_at=row.logout_at,
    )
