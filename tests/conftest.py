"""
tests/conftest.py -- Shared test fixtures for TenantGate unit and integration tests.

This module provides:
  - engine / store fixtures: a fresh in-memory SQLite DB per test
  - acme / globex: two tenants, so every isolation test has a second tenant
  - api: TestClient over the real app with a patched lifespan, plus the
    stores and seeded records behind it

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the process; a uuid in the name keeps tests apart.
StaticPool holds that one connection for the engine's lifetime, so the
database is not dropped between requests.

Environment variables must be set before any auth/core import so
get_settings() auto-generates SECRET_KEY in dev mode rather than raising
ValueError, and so the login rate limit does not trip during the suite.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import uuid4

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from api.main import app, wire_services
from audit.store import AuditTrail
from auth.models import Account, Role, Tenant
from auth.store import AccountStore, TenantStore
from auth.tokens import TokenCodec
from catalog.store import BrandStore
from core.db import make_engine
from helpers import make_account

TEST_KEY = "k" * 32

# ---------------------------------------------------------------------------
# Unit-test fixtures -- one in-memory DB per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = make_engine("sqlite://")
    yield eng
    eng.dispose()


@pytest.fixture
def tenants(engine: Engine) -> TenantStore:
    return TenantStore(engine)


@pytest.fixture
def accounts(engine: Engine) -> AccountStore:
    return AccountStore(engine)


@pytest.fixture
def audit(engine: Engine) -> AuditTrail:
    return AuditTrail(engine)


@pytest.fixture
def brands(engine: Engine) -> BrandStore:
    return BrandStore(engine)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_KEY, default_ttl_seconds=600)


@pytest.fixture
def acme(tenants: TenantStore) -> Tenant:
    return tenants.create(Tenant(name="Acme", seat_limit=3))


@pytest.fixture
def globex(tenants: TenantStore) -> Tenant:
    return tenants.create(Tenant(name="Globex", seat_limit=5))


@pytest.fixture
def acme_admin(accounts: AccountStore, acme: Tenant) -> Account:
    return make_account(accounts, acme, "ada", Role.ADMIN)


@pytest.fixture
def globex_admin(accounts: AccountStore, globex: Tenant) -> Account:
    return make_account(accounts, globex, "gus", Role.ADMIN)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiWorld:
    client: TestClient
    tenants: TenantStore
    accounts: AccountStore
    audit: AuditTrail
    brands: BrandStore
    acme: Tenant
    globex: Tenant
    acme_admin: Account
    globex_admin: Account


def _patch_lifespan(tenants: TenantStore, accounts: AccountStore, audit: AuditTrail, brands: BrandStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, tenants, accounts, audit, brands)
        yield

    return test_lifespan


@pytest.fixture
def api() -> Generator[ApiWorld, None, None]:
    """Yield an ApiWorld: Acme (3 seats) and Globex (5 seats), one admin each."""
    eng = make_engine(f"sqlite:///file:test_api_{uuid4().hex}?mode=memory&cache=shared&uri=true", poolclass=StaticPool)
    tenant_store, account_store = TenantStore(eng), AccountStore(eng)
    audit_trail, brand_store = AuditTrail(eng), BrandStore(eng)

    acme = tenant_store.create(Tenant(name="Acme", seat_limit=3))
    globex = tenant_store.create(Tenant(name="Globex", seat_limit=5))
    acme_admin = make_account(account_store, acme, "ada", Role.ADMIN)
    globex_admin = make_account(account_store, globex, "gus", Role.ADMIN)

    app.router.lifespan_context = _patch_lifespan(tenant_store, account_store, audit_trail, brand_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiWorld(
            client=client,
            tenants=tenant_store,
            accounts=account_store,
            audit=audit_trail,
            brands=brand_store,
            acme=acme,
            globex=globex,
            acme_admin=acme_admin,
            globex_admin=globex_admin,
        )

    eng.dispose()
