#!/usr/bin/env python3
"""
TenantGate -- provisioning and server CLI.

Tenants and their first admin are created here, never through the HTTP API.
After that, each tenant's admin manages its own accounts and brands over HTTP.

Usage:
  python main.py provision-tenant --name Acme --seat-limit 5
  python main.py create-admin --tenant Acme --name "Ada Admin" --username ada --email ada@acme.com
  python main.py set-tenant-enabled --tenant Acme --disabled
  python main.py list-tenants
  python main.py serve --port 8000

Environment variables (see core/config.py):
  SECRET_KEY     Token signing key, at least 32 bytes. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL (default: sqlite file tenantgate.db in the repo root).
"""

import argparse
import getpass
import sys
from typing import Optional

from sqlalchemy.engine import Engine

from auth.errors import AccessError
from auth.models import Account, Role, Tenant
from auth.store import AccountStore, TenantStore
from auth.tokens import hash_password
from core.config import get_settings
from core.db import make_engine

_MIN_PASSWORD = 8


def _engine(args: argparse.Namespace) -> Engine:
    return make_engine(args.db_url or get_settings().database_url)


def _find_tenant(store: TenantStore, name: str) -> Optional[Tenant]:
    tenant = store.find_by_name(name)
    if tenant is None:
        print(f"  [!] No tenant named '{name}'.", file=sys.stderr)
    return tenant


def provision_tenant(args: argparse.Namespace) -> int:
    tenant = TenantStore(_engine(args)).create(Tenant(name=args.name.strip(), seat_limit=args.seat_limit, logo=args.logo))
    print(f"Tenant '{tenant.name}' created (id={tenant.id}, seat_limit={tenant.seat_limit}).")
    return 0


def create_admin(args: argparse.Namespace) -> int:
    engine = _engine(args)
    tenant = _find_tenant(TenantStore(engine), args.tenant)
    if tenant is None:
        return 1
    password = args.password or getpass.getpass("Password: ")
    if len(password) < _MIN_PASSWORD or len(password.encode("utf-8")) > 72:
        print(f"  [!] Password must be {_MIN_PASSWORD} to 72 bytes long.", file=sys.stderr)
        return 1
    accounts = AccountStore(engine)
    if accounts.exists_by_name_and_tenant(args.username, tenant.id):
        print(f"  [!] Username '{args.username}' already exists in '{tenant.name}'.", file=sys.stderr)
        return 1
    account = accounts.create(
        Account(
            tenant_id=tenant.id,
            name=args.name.strip(),
            username=args.username.strip(),
            email=args.email.strip(),
            role=Role.ADMIN,
            password_hash=hash_password(password),
        )
    )
    print(f"Admin '{account.username}' created in tenant '{tenant.name}' (id={account.id}).")
    return 0


def set_tenant_enabled(args: argparse.Namespace) -> int:
    store = TenantStore(_engine(args))
    tenant = _find_tenant(store, args.tenant)
    if tenant is None:
        return 1
    store.set_enabled(tenant.id, args.enabled)
    print(f"Tenant '{tenant.name}' {'enabled' if args.enabled else 'disabled'}.")
    return 0


def list_tenants(args: argparse.Namespace) -> int:
    engine = _engine(args)
    accounts = AccountStore(engine)
    tenants = TenantStore(engine).list_tenants()
    if not tenants:
        print("No tenants provisioned.")
    for t in tenants:
        state = "enabled" if t.enabled else "DISABLED"
        print(f"  {t.name:<30} {state:<9} seats {accounts.count_enabled(t.id)}/{t.seat_limit}  {t.id}")
    return 0


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tenantgate",
        description="Multi-tenant identity and access control.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--db-url", default=None, metavar="URL", help="Override DATABASE_URL for this command")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("provision-tenant", help="Create a tenant")
    p.add_argument("--name", required=True)
    p.add_argument("--seat-limit", type=int, required=True, help="Maximum number of enabled accounts (>= 1)")
    p.add_argument("--logo", default=None, metavar="URL")
    p.set_defaults(func=provision_tenant)

    p = sub.add_parser("create-admin", help="Create an ADMIN account in a tenant")
    p.add_argument("--tenant", required=True, help="Tenant name")
    p.add_argument("--name", required=True, help="Display name")
    p.add_argument("--username", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--password", default=None, help="Prompted for when omitted")
    p.set_defaults(func=create_admin)

    p = sub.add_parser("set-tenant-enabled", help="Enable or disable a tenant")
    p.add_argument("--tenant", required=True, help="Tenant name")
    state = p.add_mutually_exclusive_group(required=True)
    state.add_argument("--enabled", dest="enabled", action="store_true")
    state.add_argument("--disabled", dest="enabled", action="store_false")
    p.set_defaults(func=set_tenant_enabled)

    p = sub.add_parser("list-tenants", help="List tenants with seat usage")
    p.set_defaults(func=list_tenants)

    p = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--reload", action="store_true")
    p.set_defaults(func=serve)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    try:
        return args.func(args)
    except AccessError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        for field, message in getattr(exc, "fields", []):
            print(f"      {field}: {message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
