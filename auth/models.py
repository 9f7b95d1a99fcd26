"""
auth/models.py -- Domain dataclasses for identity and tenancy.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work.

All entities are frozen. Fields that never change after creation (id,
tenant_id, username, created_at) are set once by the constructor; mutable
fields change by building a new value with dataclasses.replace(), and the
stores never write the immutable columns on update.

Layer rule: no imports from api/, audit/, or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4


class Role(str, Enum):
    """Capability set shared by every service. Role checks are exact matches."""

    ADMIN = "ADMIN"
    USER = "USER"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller for one request. Never persisted.

    subject is the raw `sub` claim; user_id is the same value parsed as UUID.
    """

    user_id: UUID
    tenant_id: UUID
    role: Role
    subject: str

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class Claims:
    """Signature- and expiry-verified token content.

    Identity claims are carried as found in the token. Whether they are
    present and well-formed is the resolver's concern (auth/principal.py).
    """

    expires_at: datetime
    subject: str | None = None
    tenant_id: str | None = None
    role: str | None = None
    issued_at: datetime | None = None


@dataclass(frozen=True)
class Tenant:
    """A customer organization.

    Created by the provisioning path (main.py), not by any API route.
    enabled=False blocks every login and every enabling of its accounts.
    """

    name: str
    seat_limit: int
    id: UUID = field(default_factory=uuid4)
    logo: str | None = None
    enabled: bool = True
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""


@dataclass(frozen=True)
class Account:
    """A user account owned by exactly one tenant.

    username is unique within the tenant (exact match); email is unique within
    the tenant ignoring case. password_hash is a bcrypt hash, never the raw
    secret.
    """

    tenant_id: UUID
    name: str
    username: str
    email: str
    role: Role
    password_hash: str
    id: UUID = field(default_factory=uuid4)
    enabled: bool = True
    phone_number: str | None = None
    designation: str | None = None
    created_at: str = ""
    updated_at: str = ""
