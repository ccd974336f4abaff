# Overview: Flask CLI command groups for bootstrap and staff/store maintenance.

# backend/kasir/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (dev/test; production uses `flask db upgrade`).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo [--password "kasir1234"]
#   Idempotent demo store DEMO001 with an owner account and a small catalog.
#
# Stores and staff:
# - python -m flask stores list
# - python -m flask stores create --name "Warung Sari" [--code WARUNG1] [--timezone Asia/Makassar] [--tax-bps 1100]
# - python -m flask cashiers create --store-code DEMO001 --username budi --name Budi --role cashier
#   Prompts for the password when --password is omitted.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Cashier, Store
from .models.auth import ROLES, ROLE_OWNER
from .repositories import ProductRecord, get_repository
from .services import cashier_service, store_service
from .services.cashier_service import CashierError, PasswordValidationError
from .validation import ConflictError, ValidationError


DEMO_STORE_CODE = "DEMO001"

DEMO_PRODUCTS = [
    # name, sku, price, cost, stock, min_stock
    ("Nasi Goreng", "MKN001", 15000, 10000, 50, 10),
    ("Mie Goreng", "MKN002", 12000, 8000, 40, 10),
    ("Es Teh Manis", "MNM001", 5000, 2000, 100, 20),
    ("Es Jeruk", "MNM002", 6000, 3000, 80, 20),
    ("Keripik Singkong", "SNK001", 8000, 5000, 30, 10),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, settlements included!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD  Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@system_group.command('seed-demo')
@click.option('--password', default='kasir1234', help='Password for the demo owner account')
@with_appcontext
def seed_demo(password):
    """
    Demo store for local development.

    Creates (when missing):
    - Store DEMO001 "Toko Demo"
    - Owner account: owner / <password>
    - Five catalog products, written through the configured data backend
    """
    db.create_all()

    store = store_service.get_store_by_code(DEMO_STORE_CODE)
    if not store:
        store = store_service.create_store("Toko Demo", DEMO_STORE_CODE)
        click.echo(f"PASS Created store: {store.name} (ID: {store.id}, Code: {store.code})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    owner = db.session.query(Cashier).filter_by(store_id=store.id, username="owner").first()
    if not owner:
        try:
            owner = cashier_service.create_cashier(store.id, "owner", password, "Pemilik Toko", ROLE_OWNER)
            click.echo(f"PASS Created owner account: owner / {password}")
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {e}")
            return
    else:
        click.echo("WARN  Owner account already exists, skipping...")

    repo = get_repository()
    existing = {p.sku for p in repo.list_products(store.id, active_only=False)}
    created = 0
    for name, sku, price, cost, stock, min_stock in DEMO_PRODUCTS:
        if sku in existing:
            continue
        repo.add_product(store.id, ProductRecord(
            store_id=store.id,
            name=name,
            sku=sku,
            price_cents=price,
            cost_price_cents=cost,
            stock=stock,
            min_stock=min_stock,
        ))
        created += 1
    click.echo(f"PASS Products created: {created} (backend: {repo.name})")
    click.echo("")
    click.echo(f"Login with store code {DEMO_STORE_CODE}, username 'owner'. CHANGE THE PASSWORD outside dev!")


# =============================================================================
# STORE MANAGEMENT
# =============================================================================

@click.group('stores')
def stores_group():
    """Store (tenant) management commands."""


@stores_group.command('list')
@with_appcontext
def list_stores():
    stores = db.session.query(Store).order_by(Store.id).all()
    if not stores:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<10} {'Timezone':<20} {'Active'}")
    click.echo("="*80)
    for store in stores:
        active_str = "Yes" if store.is_active else "No"
        click.echo(f"{store.id:<5} {store.name:<30} {store.code:<10} {store.timezone or '-':<20} {active_str}")
    click.echo("="*80 + "\n")


@stores_group.command('create')
@click.option('--name', required=True, help='Store name')
@click.option('--code', default=None, help='Join code (generated when omitted)')
@click.option('--timezone', default=None, help='IANA timezone, e.g. Asia/Makassar')
@click.option('--tax-bps', type=int, default=0, help='Tax rate in basis points (1100 = 11%)')
@with_appcontext
def create_store_cli(name, code, timezone, tax_bps):
    try:
        store = store_service.create_store(name, code, timezone=timezone, tax_rate_bps=tax_bps)
    except (ConflictError, ValidationError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created store: {store.name} (ID: {store.id}, Code: {store.code})")


# =============================================================================
# STAFF MANAGEMENT
# =============================================================================

@click.group('cashiers')
def cashiers_group():
    """Staff account commands."""


@cashiers_group.command('create')
@click.option('--store-code', required=True, help='Store join code')
@click.option('--username', required=True)
@click.option('--name', required=True)
@click.option('--role', type=click.Choice(ROLES), default='cashier')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_cashier_cli(store_code, username, name, role, password):
    store = store_service.get_store_by_code(store_code)
    if not store:
        click.echo(f"FAIL Store '{store_code}' not found")
        return
    try:
        cashier = cashier_service.create_cashier(store.id, username, password, name, role)
    except (CashierError, ConflictError, PasswordValidationError, ValidationError) as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created {cashier.role} '{cashier.username}' in store {store.code}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(cashiers_group)
