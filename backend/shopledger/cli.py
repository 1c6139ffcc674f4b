# Overview: Flask CLI command groups for bootstrap, catalog setup, stock movements and ledger inspection.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask shops create --name "Downtown" --location "Main St"
# - python -m flask shops list
# - python -m flask products create --name "Rice 1kg" --sku RICE-1 --min-stock 5
#
# Stock:
# - python -m flask stock add --shop-id 1 --product-id 1 --quantity 10 --buy-price 2.50 --sale-price 4.00
# - python -m flask stock adjust --shop-id 1 --product-id 1 --quantity 8 --notes "Shelf count"
# - python -m flask stock show --shop-id 1
#
# Ledger / alerts:
# - python -m flask ledger reconcile [--shop-id 1]
#   Compare stock quantities with ledger sums; exits non-zero on mismatch.
# - python -m flask alerts low-stock [--shop-id 1] [--level critical]

import click
from flask.cli import with_appcontext

from .engine import MovementEngine
from .extensions import db
from .errors import MovementError
from .services import alert_service, catalog_service, ledger_service, stock_service
from .services.alert_service import ALERT_LEVELS
from .validation import decimal_to_str


def _echo_result(result) -> None:
    if result.success:
        click.echo(f"PASS {result.message}")
    else:
        click.echo(f"FAIL [{result.error}] {result.message}")
        raise SystemExit(1)


@click.group('system')
def system_group():
    """System bootstrap and maintenance commands."""


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

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('shops')
def shops_group():
    """Shop management commands."""


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--location', help='Address or area')
@click.option('--phone', help='Contact phone')
@click.option('--email', help='Contact email')
@with_appcontext
def create_shop_cli(name, location, phone, email):
    """Create a shop."""
    try:
        shop = catalog_service.create_shop(name, location=location, phone=phone, email=email)
    except MovementError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id})")


@shops_group.command('list')
@with_appcontext
def list_shops_cli():
    """List all shops."""
    shops = catalog_service.list_shops()
    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Location':<25} {'Status'}")
    click.echo("="*70)
    for shop in shops:
        click.echo(f"{shop.id:<5} {shop.name:<30} {shop.location or '-':<25} {shop.status}")
    click.echo("="*70 + "\n")


@click.group('products')
def products_group():
    """Product master data commands."""


@products_group.command('create')
@click.option('--name', required=True, help='Product name')
@click.option('--sku', help='Unique SKU')
@click.option('--barcode', help='Barcode')
@click.option('--min-stock', 'min_stock', default='0', help='Default minimum stock level for new shops')
@with_appcontext
def create_product_cli(name, sku, barcode, min_stock):
    """Create a product."""
    try:
        product = catalog_service.create_product(
            name, sku=sku, barcode=barcode, default_min_stock_level=min_stock
        )
    except MovementError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created product: {product.name} (ID: {product.id}, SKU: {product.sku or '-'})")


@click.group('stock')
def stock_group():
    """Stock movement commands."""


@stock_group.command('add')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--quantity', required=True, help='Quantity received')
@click.option('--buy-price', help='Unit purchase price')
@click.option('--sale-price', help='Unit sale price')
@click.option('--min-stock', 'min_stock', help='Minimum stock level for this shop')
@click.option('--actor-id', type=int, help='Acting user ID')
@click.option('--notes', help='Free-text note for the ledger entry')
@with_appcontext
def add_stock_cli(shop_id, product_id, quantity, buy_price, sale_price, min_stock, actor_id, notes):
    """Receive stock into a shop (purchase entry)."""
    result = MovementEngine().add_stock(
        shop_id, product_id, quantity, buy_price, sale_price, actor_id, notes=notes, min_stock_level=min_stock
    )
    _echo_result(result)


@stock_group.command('adjust')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--quantity', required=True, help='Counted (absolute) quantity')
@click.option('--actor-id', type=int, help='Acting user ID')
@click.option('--notes', help='Reason for the adjustment')
@with_appcontext
def adjust_stock_cli(shop_id, product_id, quantity, actor_id, notes):
    """Set the absolute quantity for a shop/product (adjustment entry)."""
    result = MovementEngine().adjust_stock(shop_id, product_id, quantity, actor_id, notes=notes)
    _echo_result(result)


@stock_group.command('show')
@click.option('--shop-id', type=int, required=True, help='Shop ID')
@with_appcontext
def show_stock_cli(shop_id):
    """Show stock rows for a shop."""
    rows = stock_service.list_shop_stock(shop_id)
    if not rows:
        click.echo(f"No stock for shop {shop_id}.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'Product':<10} {'Quantity':>12} {'Min':>10} {'Buy':>10} {'Sale':>10}")
    click.echo("="*70)
    for row in rows:
        click.echo(
            f"{row.product_id:<10} {decimal_to_str(row.quantity):>12} {decimal_to_str(row.min_stock_level):>10} "
            f"{decimal_to_str(row.buy_price) or '-':>10} {decimal_to_str(row.sale_price) or '-':>10}"
        )
    click.echo("="*70 + "\n")


@click.group('ledger')
def ledger_group():
    """Stock ledger inspection commands."""


@ledger_group.command('reconcile')
@click.option('--shop-id', type=int, help='Limit to one shop')
@click.option('--product-id', type=int, help='Limit to one product')
@with_appcontext
def reconcile_cli(shop_id, product_id):
    """Check that every stock quantity equals the sum of its ledger entries."""
    mismatches = ledger_service.reconcile_stock(shop_id=shop_id, product_id=product_id)
    if not mismatches:
        click.echo("PASS Stock and ledger agree.")
        return

    for row in mismatches:
        click.echo(
            f"FAIL shop {row['shop_id']} product {row['product_id']}: "
            f"stock {row['stock_quantity']} != ledger {row['ledger_quantity']}"
        )
    raise SystemExit(1)


@click.group('alerts')
def alerts_group():
    """Low-stock alert commands."""


@alerts_group.command('low-stock')
@click.option('--shop-id', type=int, help='Limit to one shop')
@click.option('--level', type=click.Choice(ALERT_LEVELS), help='Only this alert level')
@with_appcontext
def low_stock_cli(shop_id, level):
    """List stock rows at or below their minimum level."""
    alerts = alert_service.get_low_stock_alerts(shop_id=shop_id, level=level)
    if not alerts:
        click.echo("No low-stock alerts.")
        return

    for alert in alerts:
        click.echo(
            f"{alert['alert_level'].upper():<13} shop {alert['shop_id']} {alert['product_name']} "
            f"qty {alert['quantity']} / min {alert['min_stock_level']} (short {alert['shortage']})"
        )
    summary = alert_service.summarize_alerts(alerts)
    click.echo(
        f"Total {summary['total']}: {summary['out_of_stock']} out of stock, "
        f"{summary['critical']} critical, {summary['low']} low"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(products_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(alerts_group)
