# Overview: Flask CLI command groups for bootstrap, sample data, and ledger audits.

# backend/rgstore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create any missing tables (idempotent). Use "flask db upgrade" for managed schemas.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Load the sample catalog; initial stock is booked as "Initial stock" movements.
#   Products whose SKU already exists are skipped.
#
# Stock ledger:
# - python -m flask ledger reconcile [--product-id 3] [--all]
#   Compare Product.stock with SUM(IN) - SUM(OUT). Exits 1 when any product drifts.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services import products_service
from .services.ledger_service import reconcile_stock
from .validation import ConflictError

SAMPLE_PRODUCTS = [
    {"name": "Coca Cola 1.5L", "sku": "BEV-001", "barcode": "4902102072939", "category": "Beverages", "price": "85", "cost": "60", "stock": 50, "low_stock_threshold": 10},
    {"name": "Pepsi 1.5L", "sku": "BEV-002", "barcode": "4902102072946", "category": "Beverages", "price": "80", "cost": "55", "stock": 45, "low_stock_threshold": 10},
    {"name": "Lays Classic 60g", "sku": "SNK-001", "barcode": "028400090032", "category": "Snacks", "price": "45", "cost": "30", "stock": 100, "low_stock_threshold": 20},
    {"name": "Lucky Me Pancit Canton", "sku": "NOO-001", "barcode": "4807088820019", "category": "Noodles", "price": "15", "cost": "10", "stock": 200, "low_stock_threshold": 50},
    {"name": "Tide Detergent 66g", "sku": "CLN-001", "barcode": "4902430543873", "category": "Cleaning", "price": "12", "cost": "8", "stock": 150, "low_stock_threshold": 30},
    {"name": "Kopiko 3-in-1 Coffee", "sku": "COF-001", "barcode": "8852013017043", "category": "Beverages", "price": "10", "cost": "6", "stock": 300, "low_stock_threshold": 50},
    {"name": "Sky Flakes Crackers", "sku": "SNK-002", "barcode": "4804888104003", "category": "Snacks", "price": "20", "cost": "14", "stock": 80, "low_stock_threshold": 20},
    {"name": "Bear Brand 33g", "sku": "MLK-001", "barcode": "4800361101018", "category": "Dairy", "price": "18", "cost": "12", "stock": 120, "low_stock_threshold": 30},
    {"name": "Marlboro Red", "sku": "CIG-001", "barcode": "5000159461732", "category": "Tobacco", "price": "150", "cost": "120", "stock": 30, "low_stock_threshold": 10},
    {"name": "Safeguard Soap 90g", "sku": "SOA-001", "barcode": "6912345678901", "category": "Personal Care", "price": "35", "cost": "25", "stock": 5, "low_stock_threshold": 10},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create any missing tables."""
    click.echo("START Initializing database...")
    db.create_all()
    click.echo("PASS Tables ready")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("ABORT Pass --yes to drop all data")
        raise SystemExit(1)
    db.session.remove()
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('catalog')
def catalog_group():
    """Product catalog commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Load the sample catalog (idempotent by SKU)."""
    created = 0
    skipped = 0
    for row in SAMPLE_PRODUCTS:
        if db.session.query(Product.id).filter_by(sku=row["sku"]).first() is not None:
            skipped += 1
            continue
        patch = dict(row, price=Decimal(row["price"]), cost=Decimal(row["cost"]))
        try:
            product = products_service.create_product(patch=patch)
        except ConflictError as exc:
            click.echo(f"SKIP {row['sku']}: {exc}")
            skipped += 1
            continue
        created += 1
        click.echo(f"PASS {product.sku} {product.name} stock={product.stock}")

    click.echo(f"DONE created={created} skipped={skipped}")


@click.group('ledger')
def ledger_group():
    """Stock ledger audits."""


@ledger_group.command('reconcile')
@click.option('--product-id', type=int, default=None, help='Check a single product')
@click.option('--all', 'show_all', is_flag=True, help='List in-sync products too')
@with_appcontext
def reconcile(product_id, show_all):
    """Compare stock counters with the movement ledger."""
    result = reconcile_stock(product_id=product_id, only_drift=not show_all)

    for row in result["rows"]:
        status = "OK   " if row["inSync"] else "DRIFT"
        click.echo(
            f"{status} {row['sku']:<16} stock={row['stock']:<8} "
            f"ledger={row['ledgerStock']:<8} diff={row['difference']}"
        )

    click.echo(f"Checked {result['checked']} product(s), {result['drifted']} drifted")
    if result["drifted"]:
        raise SystemExit(1)


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(ledger_group)
