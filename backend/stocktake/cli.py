# Overview: Flask CLI command groups for bootstrap, inspection, and stocktake operations.

# backend/stocktake/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system seed [--org "Demo Org"]
#   Idempotent demo data: one organization, one store, a handful of products.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stores:
# - python -m flask stores list [--org-id 1]
#
# Stocktakes:
# - python -m flask stocktakes list --store-id 1 [--status draft]
# - python -m flask stocktakes start --store-id 1 --actor-id 1 [--notes "..."]
# - python -m flask stocktakes count 3 --product-id 7 --qty 12
# - python -m flask stocktakes complete 3 [--actor-id 1]

import click
from flask.cli import with_appcontext

from .errors import StocktakeError
from .extensions import db
from .models import Organization, Store
from .services import (
    count_service,
    reconciliation_service,
    snapshot_service,
    stock_service,
    stocktake_service,
    store_service,
)


def _fail(exc: StocktakeError):
    raise click.ClickException(f"{exc.code}: {exc.message}")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    db.create_all()
    click.echo("PASS Schema recreated")


DEMO_PRODUCTS = [
    ("DEMO-001", "Bottled Water 500ml", 35, 24),
    ("DEMO-002", "Instant Noodles", 60, 40),
    ("DEMO-003", "Laundry Soap", 120, 12),
    ("DEMO-004", "Tomato Paste 70g", 45, 0),
]


@system_group.command('seed')
@click.option('--org', 'org_name', default='Demo Organization', help='Organization name')
@click.option('--org-code', default='DEMO', help='Organization code')
@with_appcontext
def seed(org_name, org_code):
    """Create a demo organization, store and products (idempotent)."""
    org = db.session.query(Organization).filter_by(code=org_code).first()
    if not org:
        org = store_service.create_organization(org_name, org_code)
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    store = db.session.query(Store).filter_by(org_id=org.id).first()
    if not store:
        store = store_service.create_store(org.id, "Main Store", "MAIN")
        click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    existing = {p.sku for p in stock_service.list_products(store.id, include_inactive=True)}
    created = 0
    for sku, name, cost_cents, qty in DEMO_PRODUCTS:
        if sku in existing:
            continue
        stock_service.create_product(store.id, sku, name, cost_cents=cost_cents, quantity_on_hand=qty)
        created += 1
    click.echo(f"PASS Created {created} product(s)")


@click.group('stores')
def stores_group():
    """Store inspection commands."""


@stores_group.command('list')
@click.option('--org-id', type=int, default=None)
@with_appcontext
def list_stores(org_id):
    stores = store_service.list_stores(org_id)
    if not stores:
        click.echo("No stores found")
        return
    for store in stores:
        status = "active" if store.is_active else "inactive"
        click.echo(f"{store.id:>5}  {store.name:<30} org={store.org_id}  {status}")


@click.group('stocktakes')
def stocktakes_group():
    """Stocktake session commands."""


@stocktakes_group.command('list')
@click.option('--store-id', type=int, required=True)
@click.option('--status', type=click.Choice(['draft', 'completed']), default=None)
@click.option('--limit', type=int, default=20)
@with_appcontext
def list_stocktakes(store_id, status, limit):
    try:
        summaries = stocktake_service.list_sessions(store_id, status=status, limit=limit)
    except StocktakeError as exc:
        _fail(exc)

    if not summaries:
        click.echo("No stocktakes found")
        return
    for s in summaries:
        st = s.stocktake
        click.echo(
            f"{st.id:>5}  {st.document_number:<10} {st.status.upper():<10} "
            f"{s.counted_count}/{s.item_count} counted  {st.notes or ''}"
        )


@stocktakes_group.command('start')
@click.option('--store-id', type=int, required=True)
@click.option('--actor-id', type=int, required=True)
@click.option('--notes', default=None)
@with_appcontext
def start_stocktake(store_id, actor_id, notes):
    try:
        stocktake = snapshot_service.start_session(store_id, actor_id, notes)
    except StocktakeError as exc:
        _fail(exc)
    click.echo(f"PASS Started {stocktake.document_number} (ID: {stocktake.id}) with {len(stocktake.items)} item(s)")


@stocktakes_group.command('count')
@click.argument('stocktake_id', type=int)
@click.option('--product-id', type=int, required=True)
@click.option('--qty', type=int, required=True)
@with_appcontext
def count_product(stocktake_id, product_id, qty):
    try:
        item = count_service.submit_count(stocktake_id, product_id, qty)
    except StocktakeError as exc:
        _fail(exc)
    click.echo(f"PASS Product {item.product_id}: expected {item.expected_stock}, counted {item.counted_stock}")


@stocktakes_group.command('complete')
@click.argument('stocktake_id', type=int)
@click.option('--actor-id', type=int, default=None)
@with_appcontext
def complete_stocktake(stocktake_id, actor_id):
    try:
        report = reconciliation_service.complete_session(stocktake_id, actor_id=actor_id)
    except StocktakeError as exc:
        _fail(exc)

    click.echo(
        f"PASS Completed stocktake {report.stocktake_id}: {report.total_items_counted} item(s), "
        f"{report.items_with_variance} with variance, {report.total_variance_cost_cents} cents"
    )
    for warning in report.warnings:
        click.echo(
            f"WARN product {warning.product_id}: expected {warning.expected_stock}, "
            f"live {warning.live_stock} at completion, set to {warning.counted_stock}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(stocktakes_group)
