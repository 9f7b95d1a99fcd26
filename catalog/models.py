"""catalog/models.py -- Brand dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID, uuid4


@dataclass(frozen=True)
class Brand:
    """A brand owned by one tenant. name is unique within the tenant, ignoring case."""

    tenant_id: UUID
    name: str
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    logo: str | None = None
    enabled: bool = True
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
