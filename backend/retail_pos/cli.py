# Overview: Flask CLI command groups for bootstrap, inspection, and stock/sale operations.

# backend/retail_pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to retail_pos (PowerShell: $env:FLASK_APP="retail_pos").
# - Use: python -m flask <group> <command> [options]
#
# Database:
# - python -m flask store init-db
#   Create all tables that do not exist yet.
# - python -m flask store reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask store seed
#   Idempotent demo data: an owner, a cashier and a few stocked products.
#
# Users:
# - python -m flask users create --email owner@shop.local --full-name "Shop Owner" --role Owner
# - python -m flask users list
#
# Products / inventory:
# - python -m flask products create --sku CEM-001 --name "Cement 50kg" --category Building --unit bag --cost 4500 --price 5200
# - python -m flask products list [--category Building] [--search cem]
# - python -m flask inventory adjust <product_id> 20 --direction in
# - python -m flask inventory opening <product_id> 50
# - python -m flask inventory threshold <product_id> 5
# - python -m flask inventory low
#
# Sales:
# - python -m flask sales create --cashier <user_id> --payment Cash --item <product_id>:2:5200
# - python -m flask sales list [--from 2026-01-01] [--to 2026-01-31] [--cashier <user_id>]
#
# Notifications:
# - python -m flask notifications list <user_id>
# - python -m flask notifications read <notification_id>

import click
from flask.cli import with_appcontext

from .extensions import db
from .models.auth import ROLE_CASHIER, ROLE_OWNER, ROLES
from .models.inventory import UNIT_BAG, UNIT_PCS, UNITS
from .models.sales import PAYMENT_METHODS
from .repositories import UserRepository
from .services import auth_service
from .services.inventory_service import DIRECTION_IN, DIRECTIONS
from .validation import DomainError
from .wiring import get_services


def _fail(exc: DomainError) -> None:
    click.echo(f"FAIL {exc}")
    for key, value in exc.details.items():
        click.echo(f"     {key}: {value}")


def _parse_item(raw: str) -> dict:
    """'<product_id>:<quantity>:<unit_price_cents>' -> sale line dict."""
    parts = raw.split(":")
    if len(parts) != 3:
        raise click.BadParameter(f"expected PRODUCT_ID:QUANTITY:UNIT_PRICE_CENTS, got {raw!r}")
    product_id, quantity, price = parts
    try:
        return {"product_id": product_id, "quantity": int(quantity), "unit_price_cents": int(price)}
    except ValueError:
        raise click.BadParameter(f"quantity and price must be integers in {raw!r}")


# =============================================================================
# DATABASE COMMANDS
# =============================================================================

@click.group('store')
def store_group():
    """Database bootstrap and demo data."""


@store_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (no-op for tables that already exist)."""
    db.create_all()
    click.echo("PASS Database tables created")


@store_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


SEED_PASSWORD = "Password123"

SEED_USERS = [
    ("owner@shop.local", "Shop Owner", ROLE_OWNER),
    ("cashier@shop.local", "Front Counter", ROLE_CASHIER),
]

SEED_PRODUCTS = [
    # sku, name, category, unit, cost, price, opening stock
    ("CEM-050", "Cement 50kg", "Building", UNIT_BAG, 4500, 5200, 40),
    ("NAIL-3IN", "Nails 3in (1kg)", "Hardware", "kg", 900, 1200, 25),
    ("PVC-20", "PVC pipe 20mm", "Plumbing", "meter", 150, 250, 8),
    ("BULB-9W", "LED bulb 9W", "Electrical", UNIT_PCS, 300, 450, 60),
]


@store_group.command('seed')
@with_appcontext
def seed():
    """Create demo users and products. Existing rows are left alone."""
    services = get_services()
    users = UserRepository()

    for email, full_name, role in SEED_USERS:
        if users.find_by_email(email) is not None:
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            auth_service.create_user(email, SEED_PASSWORD, full_name, role, users=users)
            click.echo(f"PASS Created user: {email} with role '{role}'")
        except DomainError as e:
            _fail(e)

    for sku, name, category, unit, cost, price, opening in SEED_PRODUCTS:
        if services.products.products.find_by_sku(sku) is not None:
            click.echo(f"WARN  Product '{sku}' already exists, skipping...")
            continue
        try:
            product = services.products.create_product({
                "sku": sku,
                "name": name,
                "category": category,
                "unit": unit,
                "cost_price_cents": cost,
                "selling_price_cents": price,
            })
            services.inventory.adjust_opening_stock(product.id, opening)
            click.echo(f"PASS Created product: {sku} ({name}) with {opening} on hand")
        except DomainError as e:
            _fail(e)

    click.echo(f"\nDefault password for seeded users: {SEED_PASSWORD} (CHANGE IN PRODUCTION!)")


# =============================================================================
# USER COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--phone', default=None, help='Phone number (optional)')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, full_name, phone, password, role):
    """
    Create a new user.

    Password must be 8-128 characters with at least one letter and one digit.
    """
    try:
        user = auth_service.create_user(email, password, full_name, role, phone)
    except auth_service.PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8-128 chars, at least one letter and one digit")
        return
    except DomainError as e:
        _fail(e)
        return

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users."""
    users = auth_service.list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<38} {'Email':<30} {'Name':<20} {'Role'}")
    click.echo("=" * 100)
    for user in users:
        click.echo(f"{user.id:<38} {user.email:<30} {user.full_name:<20} {user.role}")
    click.echo("=" * 100 + "\n")


# =============================================================================
# PRODUCT COMMANDS
# =============================================================================

@click.group('products')
def products_group():
    """Product catalog commands."""


@products_group.command('create')
@click.option('--sku', required=True)
@click.option('--name', required=True)
@click.option('--category', required=True)
@click.option('--unit', type=click.Choice(sorted(UNITS)), default=UNIT_PCS, show_default=True)
@click.option('--cost', 'cost_price_cents', type=int, required=True, help='Cost price in cents')
@click.option('--price', 'selling_price_cents', type=int, required=True, help='Selling price in cents')
@click.option('--supplier', default=None)
@click.option('--opening-stock', type=click.IntRange(min=0), default=0, show_default=True)
@with_appcontext
def create_product_cli(sku, name, category, unit, cost_price_cents, selling_price_cents, supplier, opening_stock):
    """Create a product and its inventory row."""
    services = get_services()
    data = {
        "sku": sku,
        "name": name,
        "category": category,
        "unit": unit,
        "cost_price_cents": cost_price_cents,
        "selling_price_cents": selling_price_cents,
    }
    if supplier:
        data["supplier"] = supplier

    try:
        product = services.products.create_product(data)
        if opening_stock:
            services.inventory.adjust_opening_stock(product.id, opening_stock)
    except DomainError as e:
        _fail(e)
        return
    click.echo(f"PASS Created product: {product.sku} (ID: {product.id})")


@products_group.command('list')
@click.option('--category', default=None)
@click.option('--search', default=None, help='Match name or SKU')
@with_appcontext
def list_products_cli(category, search):
    """List products with their stock on hand."""
    products = get_services().products.list_products(category=category, search=search)
    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<38} {'SKU':<12} {'Name':<24} {'Price':>10} {'Stock':>7}")
    for product in products:
        stock = product.inventory.current_stock if product.inventory else "-"
        click.echo(
            f"{product.id:<38} {product.sku:<12} {product.name[:24]:<24} "
            f"{product.selling_price_cents:>10} {stock:>7}"
        )


# =============================================================================
# INVENTORY COMMANDS
# =============================================================================

@click.group('inventory')
def inventory_group():
    """Stock movement and threshold commands."""


@inventory_group.command('adjust')
@click.argument('product_id')
@click.argument('quantity', type=int)
@click.option('--direction', type=click.Choice(sorted(DIRECTIONS)), default=DIRECTION_IN, show_default=True)
@with_appcontext
def adjust_stock_cli(product_id, quantity, direction):
    """Move stock in or out for one product."""
    try:
        inventory = get_services().inventory.adjust_stock(product_id, quantity, direction)
    except DomainError as e:
        _fail(e)
        return
    click.echo(f"PASS {product_id}: current stock {inventory.current_stock}")
    if inventory.is_low_stock():
        click.echo(f"WARN  At or below reorder threshold ({inventory.reorder_threshold})")


@inventory_group.command('opening')
@click.argument('product_id')
@click.argument('opening_stock', type=int)
@with_appcontext
def opening_stock_cli(product_id, opening_stock):
    """Replace the opening balance and recompute current stock."""
    try:
        inventory = get_services().inventory.adjust_opening_stock(product_id, opening_stock)
    except DomainError as e:
        _fail(e)
        return
    click.echo(f"PASS {product_id}: opening {inventory.opening_stock}, current {inventory.current_stock}")


@inventory_group.command('threshold')
@click.argument('product_id')
@click.argument('threshold', type=int)
@with_appcontext
def threshold_cli(product_id, threshold):
    """Set the reorder threshold for one product."""
    try:
        inventory = get_services().inventory.update_reorder_threshold(product_id, threshold)
    except DomainError as e:
        _fail(e)
        return
    click.echo(f"PASS {product_id}: reorder threshold {inventory.reorder_threshold}")


@inventory_group.command('low')
@with_appcontext
def low_stock_cli():
    """List products at or below their reorder threshold."""
    rows = get_services().inventory.list_low_stock()
    if not rows:
        click.echo("No low-stock products.")
        return
    for inventory in rows:
        click.echo(f"{inventory.product_id:<38} {inventory.current_stock:>7} / {inventory.reorder_threshold}")


# =============================================================================
# SALES COMMANDS
# =============================================================================

@click.group('sales')
def sales_group():
    """Sale recording and history."""


@sales_group.command('create')
@click.option('--cashier', 'cashier_id', required=True, help='User ID of the cashier')
@click.option('--payment', 'payment_method', type=click.Choice(sorted(PAYMENT_METHODS)), required=True)
@click.option('--item', 'items', multiple=True, required=True, help='PRODUCT_ID:QUANTITY:UNIT_PRICE_CENTS')
@with_appcontext
def create_sale_cli(cashier_id, payment_method, items):
    """Record a sale and deduct its stock."""
    lines = [_parse_item(raw) for raw in items]
    try:
        sale = get_services().sales.create_sale(cashier_id, payment_method, lines)
    except DomainError as e:
        _fail(e)
        return
    click.echo(f"PASS Recorded {sale.sale_number}: {len(sale.items)} item(s), total {sale.total_amount_cents}")


@sales_group.command('list')
@click.option('--from', 'start_date', default=None, help='YYYY-MM-DD or ISO-8601')
@click.option('--to', 'end_date', default=None, help='YYYY-MM-DD or ISO-8601')
@click.option('--cashier', 'cashier_id', default=None)
@with_appcontext
def list_sales_cli(start_date, end_date, cashier_id):
    """Sales history, newest first."""
    try:
        sales = get_services().sales.list_sales(start_date=start_date, end_date=end_date, cashier_id=cashier_id)
    except DomainError as e:
        _fail(e)
        return
    if not sales:
        click.echo("No sales found.")
        return
    for sale in sales:
        click.echo(
            f"{sale.sale_number:<18} {sale.created_at:%Y-%m-%d %H:%M} {sale.payment_method:<13} "
            f"{sale.total_amount_cents:>10} {sale.cashier_id}"
        )


# =============================================================================
# NOTIFICATION COMMANDS
# =============================================================================

@click.group('notifications')
def notifications_group():
    """Stock alert inspection."""


@notifications_group.command('list')
@click.argument('user_id')
@with_appcontext
def list_notifications_cli(user_id):
    """A user's notifications plus broadcast ones."""
    service = get_services().notifications
    notifications = service.get_user_notifications(user_id)
    click.echo(f"{service.get_unread_count(user_id)} unread")
    for n in notifications:
        marker = " " if n.is_read else "*"
        click.echo(f"{marker} {n.id:<38} {n.type:<14} {n.message}")


@notifications_group.command('read')
@click.argument('notification_id')
@with_appcontext
def read_notification_cli(notification_id):
    """Mark a notification as read."""
    try:
        get_services().notifications.mark_as_read(notification_id)
    except DomainError as e:
        _fail(e)
        return
    click.echo(f"PASS Marked {notification_id} as read")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(store_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(notifications_group)
