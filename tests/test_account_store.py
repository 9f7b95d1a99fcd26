"""
tests/test_account_store.py -- Unit tests for TenantStore and AccountStore.

Covers:
  - tenant-qualified reads: another tenant's account is indistinguishable from none
  - uniqueness: username exact, email case-insensitive, both per tenant
  - seat limit enforced inside the write transaction (create and enable)
  - update never rewrites immutable columns
  - tenant provisioning validation and duplicates
"""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

import pytest

from auth.errors import DuplicateConflict, SeatLimitConflict, TenantScopedNotFound, ValidationFailed
from auth.models import Account, Role, Tenant
from auth.store import AccountStore, TenantStore
from helpers import make_account


class TestTenantStore:
    def test_create_and_find(self, tenants: TenantStore) -> None:
        created = tenants.create(Tenant(name="Initech", seat_limit=2, logo="https://cdn.test/initech.png"))
        assert created.created_at and created.updated_at
        assert tenants.find_by_id(created.id) == created
        assert tenants.find_by_name("Initech") == created
        assert tenants.find_by_name("initech") is None

    def test_duplicate_name(self, tenants: TenantStore, acme: Tenant) -> None:
        with pytest.raises(DuplicateConflict) as exc_info:
            tenants.create(Tenant(name="Acme", seat_limit=1))
        assert exc_info.value.field == "name"

    def test_seat_limit_must_be_positive(self, tenants: TenantStore) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            tenants.create(Tenant(name="Zero", seat_limit=0))
        assert exc_info.value.fields == [("seat_limit", "Seat limit must be at least 1.")]

    def test_set_enabled(self, tenants: TenantStore, acme: Tenant) -> None:
        assert tenants.set_enabled(acme.id, False) is True
        assert tenants.find_by_id(acme.id).enabled is False
        assert tenants.set_enabled(uuid4(), False) is False

    def test_list_sorted_by_name(self, tenants: TenantStore, acme: Tenant, globex: Tenant) -> None:
        assert [t.name for t in tenants.list_tenants()] == ["Acme", "Globex"]


class TestTenantScopedReads:
    def test_find_in_own_tenant(self, accounts: AccountStore, acme_admin: Account) -> None:
        assert accounts.find_by_id_and_tenant(acme_admin.id, acme_admin.tenant_id) == acme_admin

    def test_other_tenant_is_invisible(self, accounts: AccountStore, acme_admin: Account, globex: Tenant) -> None:
        assert accounts.find_by_id_and_tenant(acme_admin.id, globex.id) is None
        assert accounts.find_by_id_and_tenant(uuid4(), globex.id) is None

    def test_list_newest_first(self, accounts: AccountStore, acme: Tenant, globex: Tenant) -> None:
        make_account(accounts, acme, "first", created_at="2024-01-01T00:00:00+00:00")
        make_account(accounts, acme, "second", created_at="2024-02-01T00:00:00+00:00")
        make_account(accounts, globex, "elsewhere")
        assert [a.username for a in accounts.list_by_tenant(acme.id)] == ["second", "first"]

    def test_list_can_hide_disabled(self, accounts: AccountStore, acme: Tenant) -> None:
        make_account(accounts, acme, "on")
        make_account(accounts, acme, "off", enabled=False)
        assert [a.username for a in accounts.list_by_tenant(acme.id, include_disabled=False)] == ["on"]

    def test_find_by_login_username_then_email(self, accounts: AccountStore, acme: Tenant) -> None:
        alice = make_account(accounts, acme, "alice", email="Alice@Example.com")
        assert accounts.find_by_login("alice", acme.id) == alice
        assert accounts.find_by_login("ALICE@example.COM", acme.id) == alice
        assert accounts.find_by_login("Alice", acme.id) is None

    def test_find_by_login_is_tenant_scoped(self, accounts: AccountStore, acme: Tenant, globex: Tenant) -> None:
        make_account(accounts, acme, "alice")
        assert accounts.find_by_login("alice", globex.id) is None


class TestUniqueness:
    def test_email_case_insensitive_within_tenant(self, accounts: AccountStore, acme: Tenant) -> None:
        make_account(accounts, acme, "alice", email="alice@example.com")
        assert accounts.exists_by_email_and_tenant("ALICE@example.com", acme.id)
        with pytest.raises(DuplicateConflict) as exc_info:
            make_account(accounts, acme, "alice2", email="ALICE@EXAMPLE.COM")
        assert exc_info.value.field == "email"

    def test_username_exact_within_tenant(self, accounts: AccountStore, acme: Tenant) -> None:
        make_account(accounts, acme, "alice")
        with pytest.raises(DuplicateConflict) as exc_info:
            make_account(accounts, acme, "alice", email="other@example.com")
        assert exc_info.value.field == "username"
        # Case-variant usernames are distinct accounts.
        make_account(accounts, acme, "Alice", email="other@example.com")

    def test_same_names_in_different_tenants(self, accounts: AccountStore, acme: Tenant, globex: Tenant) -> None:
        make_account(accounts, acme, "alice")
        make_account(accounts, globex, "alice")
        assert accounts.exists_by_name_and_tenant("alice", acme.id)
        assert accounts.exists_by_name_and_tenant("alice", globex.id)

    def test_username_existence_is_exact_match(self, accounts: AccountStore, acme: Tenant) -> None:
        make_account(accounts, acme, "alice")
        assert accounts.exists_by_name_and_tenant("alice", acme.id)
        assert not accounts.exists_by_name_and_tenant("ALICE", acme.id)
        assert accounts.exists_by_email_and_tenant("ALICE@EXAMPLE.COM", acme.id)

    def test_exclude_id(self, accounts: AccountStore, acme: Tenant) -> None:
        alice = make_account(accounts, acme, "alice")
        assert not accounts.exists_by_email_and_tenant(alice.email, acme.id, exclude_id=alice.id)

    def test_update_to_taken_email(self, accounts: AccountStore, acme: Tenant) -> None:
        make_account(accounts, acme, "alice")
        bob = make_account(accounts, acme, "bob")
        with pytest.raises(DuplicateConflict):
            accounts.update(replace(bob, email="ALICE@example.com"))


class TestSeatLimit:
    def test_create_enabled_beyond_limit_rolls_back(self, accounts: AccountStore, acme: Tenant) -> None:
        for name in ("a1", "a2", "a3"):
            make_account(accounts, acme, name)
        with pytest.raises(SeatLimitConflict):
            make_account(accounts, acme, "a4")
        assert accounts.count_enabled(acme.id) == 3
        assert not accounts.exists_by_name_and_tenant("a4", acme.id)

    def test_disabled_accounts_do_not_take_seats(self, accounts: AccountStore, acme: Tenant) -> None:
        for name in ("a1", "a2", "a3"):
            make_account(accounts, acme, name)
        parked = make_account(accounts, acme, "parked", enabled=False)
        assert accounts.count_enabled(acme.id) == 3
        with pytest.raises(SeatLimitConflict):
            accounts.soft_enable(parked)
        assert accounts.find_by_id_and_tenant(parked.id, acme.id).enabled is False

    def test_enable_below_limit_adds_one_seat(self, accounts: AccountStore, acme: Tenant) -> None:
        make_account(accounts, acme, "a1")
        parked = make_account(accounts, acme, "parked", enabled=False)
        before = accounts.count_enabled(acme.id)
        enabled = accounts.soft_enable(parked)
        assert enabled.enabled is True
        assert accounts.count_enabled(acme.id) == before + 1

    def test_seats_are_per_tenant(self, accounts: AccountStore, acme: Tenant, globex: Tenant) -> None:
        for name in ("a1", "a2", "a3"):
            make_account(accounts, acme, name)
        make_account(accounts, globex, "g1")
        assert accounts.count_enabled(globex.id) == 1


class TestWrites:
    def test_update_keeps_immutable_fields(self, accounts: AccountStore, acme: Tenant, globex: Tenant) -> None:
        alice = make_account(accounts, acme, "alice")
        accounts.update(replace(alice, name="Alice Liddell", username="mallory", role=Role.ADMIN))
        stored = accounts.find_by_id_and_tenant(alice.id, acme.id)
        assert stored.name == "Alice Liddell"
        assert stored.role is Role.ADMIN
        assert stored.username == "alice"
        assert stored.created_at == alice.created_at

    def test_update_across_tenants_is_not_found(self, accounts: AccountStore, acme: Tenant, globex: Tenant) -> None:
        alice = make_account(accounts, acme, "alice")
        with pytest.raises(TenantScopedNotFound):
            accounts.update(replace(alice, tenant_id=globex.id, name="Hijacked"))
        assert accounts.find_by_id_and_tenant(alice.id, acme.id).name == "Alice"

    def test_hard_delete(self, accounts: AccountStore, acme: Tenant, globex: Tenant) -> None:
        alice = make_account(accounts, acme, "alice")
        with pytest.raises(TenantScopedNotFound):
            accounts.hard_delete(replace(alice, tenant_id=globex.id))
        accounts.hard_delete(alice)
        assert accounts.find_by_id_and_tenant(alice.id, acme.id) is None
        with pytest.raises(TenantScopedNotFound):
            accounts.hard_delete(alice)

    def test_soft_disable_frees_a_seat(self, accounts: AccountStore, acme: Tenant) -> None:
        alice = make_account(accounts, acme, "alice")
        disabled = accounts.soft_disable(alice)
        assert disabled.enabled is False
        assert accounts.count_enabled(acme.id) == 0
