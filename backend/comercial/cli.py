# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/comercial/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask system seed-demo
#   Idempotent demo data: admin/manager/salesperson users, customers, products with stock.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inspection:
# - python -m flask inventory show 1
#   Stock position and recent movements for a product.
# - python -m flask sales show 1
#   Sale header, items and allowed next statuses.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, Inventory, Product, Sale, User, UserRole
from .services import inventory_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema created")


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
    click.echo("PASS Database reset complete")


DEMO_USERS = [
    ("Admin", "admin@comercial.local", UserRole.ADMIN),
    ("Manager", "manager@comercial.local", UserRole.MANAGER),
    ("Salesperson", "vendas@comercial.local", UserRole.SALESPERSON),
]

DEMO_CUSTOMERS = [
    ("Mercado Central Ltda", "12.345.678/0001-90", "compras@mercadocentral.local"),
    ("Padaria Boa Vista", "98.765.432/0001-10", "contato@boavista.local"),
]

# (code, name, price_cents, quantity, min_stock)
DEMO_PRODUCTS = [
    ("ARZ-5KG", "Arroz tipo 1 5kg", 2890, 120, 20),
    ("FEJ-1KG", "Feijao carioca 1kg", 849, 80, 15),
    ("OLE-900", "Oleo de soja 900ml", 799, 10, 10),
    ("CAF-500", "Cafe torrado 500g", 1590, 0, 5),
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create demo users, customers, products and stock (skips existing rows)."""
    click.echo("START Seeding demo data...")

    for name, email, role in DEMO_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        db.session.add(User(name=name, email=email, role=role, is_active=True))
        click.echo(f"PASS Created user: {email} ({role.value})")

    for name, document, email in DEMO_CUSTOMERS:
        if db.session.query(Customer).filter_by(document=document).first():
            continue
        db.session.add(Customer(name=name, document=document, email=email, is_active=True))
        click.echo(f"PASS Created customer: {name}")

    for code, name, price_cents, quantity, min_stock in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(code=code).first():
            continue
        product = Product(code=code, name=name, price_cents=price_cents, is_active=True)
        product.inventory = Inventory(quantity=quantity, min_stock=min_stock)
        db.session.add(product)
        click.echo(f"PASS Created product: {code} (stock {quantity})")

    db.session.commit()

    users = db.session.query(User).order_by(User.id).all()
    click.echo("\nUsers (send the id in the X-User-Id header):")
    for user in users:
        click.echo(f"   {user.id:>3}  {user.role.value:<12} {user.email}")


@click.group('inventory')
def inventory_group():
    """Inventory ledger inspection."""


@inventory_group.command('show')
@click.argument('product_id', type=int)
@click.option('--limit', type=int, default=10, help='Movements to show')
@with_appcontext
def show_inventory(product_id, limit):
    product = db.session.get(Product, product_id)
    if product is None:
        raise click.ClickException(f"Product {product_id} not found")

    inventory = product.inventory
    click.echo(f"{product.code} - {product.name}")
    if inventory is None:
        click.echo("   No inventory record (on hand: 0)")
        return

    flags = [
        label for label, on in (
            ("LOW", inventory.is_low_stock),
            ("OUT", inventory.is_out_of_stock),
            ("OVER", inventory.is_overstock),
        ) if on
    ]
    click.echo(f"   On hand: {inventory.quantity}  min: {inventory.min_stock}  max: {inventory.max_stock or '-'}"
               + (f"  [{', '.join(flags)}]" if flags else ""))

    movements = inventory_service.list_movements(product_id, limit=limit)
    if not movements:
        click.echo("   No movements")
    for m in movements:
        click.echo(f"   {m.created_at}  {m.type.value:<3} {m.quantity:>6}  sale={m.sale_id or '-'}  {m.reason or ''}")


@click.group('sales')
def sales_group():
    """Sale inspection."""


@sales_group.command('show')
@click.argument('sale_id', type=int)
@with_appcontext
def show_sale(sale_id):
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise click.ClickException(f"Sale {sale_id} not found")

    data = sale.to_dict()
    click.echo(f"{data['sale_number']}  status={data['status']}  customer={sale.customer_id}  owner={sale.user_id}")
    for item in sale.items:
        click.echo(
            f"   {item.product.code:<12} qty={item.quantity:>5}  unit={item.unit_price_cents:>9}"
            f"  disc={item.discount_cents:>7}  total={item.total_cents:>10}"
        )
    click.echo(
        f"   subtotal={sale.subtotal_cents}  discount={sale.discount_cents}"
        f"  tax={sale.tax_cents}  total={sale.total_cents}"
    )
    click.echo(f"   next: {', '.join(data['allowed_transitions']) or '(terminal)'}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sales_group)
