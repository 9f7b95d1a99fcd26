"""
tests/helpers.py -- Builders shared by the test modules.

Kept out of conftest.py so test modules can import them directly.
"""

from __future__ import annotations

from auth.models import Account, Principal, Role, Tenant
from auth.store import AccountStore
from auth.tokens import get_token_codec, hash_password

PASSWORD = "correct-horse-9"
# Hashed once: bcrypt is deliberately slow and most tests only need a valid hash.
PASSWORD_HASH = hash_password(PASSWORD)


def make_account(
    store: AccountStore,
    tenant: Tenant,
    username: str,
    role: Role = Role.USER,
    enabled: bool = True,
    email: str | None = None,
    created_at: str = "",
) -> Account:
    return store.create(
        Account(
            tenant_id=tenant.id,
            name=username.title(),
            username=username,
            email=email or f"{username}@example.com",
            role=role,
            password_hash=PASSWORD_HASH,
            enabled=enabled,
            created_at=created_at,
        )
    )


def principal_for(account: Account) -> Principal:
    return Principal(user_id=account.id, tenant_id=account.tenant_id, role=account.role, subject=str(account.id))


def bearer(account: Account) -> dict[str, str]:
    """Authorization header for account, signed with the app's codec."""
    token = get_token_codec().issue(account.id, account.tenant_id, account.role)
    return {"Authorization": f"Bearer {token}"}
