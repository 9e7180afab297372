# Overview: Flask CLI command groups for database bootstrap and demo data.

# backend/storepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Create a demo store with a manager, an approved cashier and stocked products.

import uuid

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .services import inventory_service, products_service, store_service
from .services.identity_service import MANAGER, ActorRef

DEMO_PRODUCTS = [
    # sku suffix, name, category, price_cents, cost_cents, quantity
    ("0001", "Bottled Water 500ml", "Beverages", 100, 60, 120),
    ("0002", "White Bread Loaf", "Bakery", 250, 150, 30),
    ("0003", "Rice 5kg", "Groceries", 1850, 1400, 8),
    ("0004", "Dish Soap", "Household", 399, 220, 15),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    db.create_all()
    click.echo("PASS Tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for sample data.")


@system_group.command('seed-demo')
@click.option('--store-name', default='Demo Mart', help='Store name')
@click.option('--cashier-phone', default='0700000001', help='Demo cashier phone number')
@click.option('--cashier-password', default='Password123!', help='Demo cashier password')
@with_appcontext
def seed_demo(store_name, cashier_phone, cashier_password):
    """Create a demo store, manager, cashier and products with stock."""
    db.create_all()

    manager_id = str(uuid.uuid4())
    try:
        store, manager = store_service.create_store(
            store_name=store_name,
            manager_id=manager_id,
            manager_email="manager@demo.local",
            manager_name="Demo Manager",
            manager_phone="0700000000",
        )
        cashier, join_request = store_service.signup_cashier(
            full_name="Demo Cashier",
            phone_number=cashier_phone,
            password=cashier_password,
            store_code=store.store_code,
        )
        store_service.review_join_request(
            request_id=join_request.id,
            action="approve",
            reviewer=ActorRef(MANAGER, manager.id),
        )

        prefix = products_service.sku_prefix(store.store_name)
        for suffix, name, category, price, cost, qty in DEMO_PRODUCTS:
            product = products_service.create_product(
                store_id=store.id,
                payload={"sku": f"{prefix}-{suffix}", "name": name, "category": category},
            )
            inventory_service.restock(
                store_id=store.id,
                product_id=product["id"],
                quantity=qty,
                cost_price_cents=cost,
                selling_price_cents=price,
            )
    except ServiceError as e:
        raise click.ClickException(str(e))

    click.echo("\n" + "=" * 60)
    click.echo("PASS Demo data created")
    click.echo("=" * 60)
    click.echo(f"  Store:      {store.store_name} (id={store.id}, code={store.store_code})")
    click.echo(f"  Manager:    {manager.full_name} (id={manager.id})")
    click.echo(f"  Cashier:    {cashier.full_name} (id={cashier.id}, phone={cashier_phone})")
    click.echo(f"  Products:   {len(DEMO_PRODUCTS)}")
    click.echo("=" * 60 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
