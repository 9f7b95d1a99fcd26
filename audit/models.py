"""
audit/models.py -- Domain dataclass for session audit entries.

Pattern: Data class (pure data container, zero logic).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID, uuid4


@dataclass(frozen=True)
class SessionRecord:
    """One login, and at most one matching logout.

    Records are append-only: created at login, logout_at filled in once at
    logout, never deleted. Closing a record produces a new value; the stored
    row is only updated while logout_at is still NULL.
    """

    tenant_id: UUID
    user_id: UUID
    username: str
    id: UUID = field(default_factory=uuid4)
    login_at: str = ""  # ISO 8601, set by store on insert
    logout_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.logout_at is None
