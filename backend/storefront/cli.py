# Overview: Flask CLI command groups for the local backend: bootstrap, accounts, demo data.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory, local "sql" backend only):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users create --name "Admin" --email admin@store.local --password "Password123" --role admin
#   Create a local sign-in account (prompts if options are omitted).
# - python -m flask users list
#
# Demo data:
# - python -m flask demo seed [--reset]
#   Insert sample products, orders and customers.

from datetime import date, timedelta

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Account, Customer, Order, Product
from .remote import RemoteStoreError
from .remote.sql import create_account
from .services.auth_service import ROLES
from .timestamps import utcnow


def _require_sql_backend() -> None:
    backend = current_app.config["REMOTE_BACKEND"]
    if backend != "sql":
        raise click.ClickException(
            f"REMOTE_BACKEND is '{backend}'; these commands only manage the local sql backend"
        )


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    _require_sql_backend()
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
    _require_sql_backend()
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask users create' to add an account.")


@click.group('users')
def users_group():
    """Local account commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(ROLES)), default='admin', show_default=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a sign-in account for the local backend."""
    _require_sql_backend()
    if len(password) < 8:
        click.echo("FAIL Password must be at least 8 characters")
        return

    try:
        account = create_account(email, password, name=name, role=role)
    except RemoteStoreError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created account: {account.email} (role: {account.role}, id: {account.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List local accounts."""
    _require_sql_backend()
    accounts = db.session.query(Account).order_by(Account.created_at).all()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'Email':<35} {'Name':<25} {'Role':<10} {'Last sign-in'}")
    click.echo("=" * 90)
    for a in accounts:
        last = a.last_sign_in_at.strftime("%Y-%m-%d %H:%M") if a.last_sign_in_at else "never"
        click.echo(f"{a.email:<35} {a.name or '':<25} {a.role:<10} {last}")


DEMO_PRODUCTS = [
    ("Wireless Headphones", "Over-ear, noise cancelling", 129.99, 25, "Electronics", True),
    ("Smart Watch", "Fitness tracking and notifications", 199.0, 12, "Electronics", False),
    ("USB-C Charger", "65W fast charger", 39.5, 80, "Electronics", False),
    ("Denim Jacket", "Classic fit", 89.0, 18, "Clothing", True),
    ("Cotton T-Shirt", "Plain crew neck", 19.99, 150, "Clothing", False),
    ("Ceramic Mug", "350ml, dishwasher safe", 12.0, 60, "Home & Kitchen", False),
    ("Chef Knife", "8 inch stainless steel", 54.0, 9, "Home & Kitchen", False),
    ("Yoga Mat", "Non-slip, 6mm", 29.0, 4, "Sports", False),
]

DEMO_CUSTOMERS = [
    ("Alice Martin", "alice@example.com", 4, 512.47),
    ("Bruno Silva", "bruno@example.com", 1, 89.0),
    ("Chen Wei", "chen@example.com", 7, 1203.9),
    ("Dana Novak", "dana@example.com", 0, 0.0),
    ("Emeka Obi", "emeka@example.com", 2, 159.0),
    ("Fatima Zahra", "fatima@example.com", 3, 318.25),
]

DEMO_STATUSES = ["Pending", "Processing", "Shipped", "Delivered", "Cancelled"]


@click.group('demo')
def demo_group():
    """Sample data for local development."""


@demo_group.command('seed')
@click.option('--reset', is_flag=True, help='Delete existing products, orders and customers first')
@with_appcontext
def seed_demo(reset):
    """Insert sample products, orders and customers."""
    _require_sql_backend()
    if reset:
        for model in (Order, Customer, Product):
            db.session.query(model).delete()
        db.session.commit()
        click.echo("DELETE  Cleared products, orders and customers")

    now = utcnow()
    for i, (name, description, price, stock, category, featured) in enumerate(DEMO_PRODUCTS):
        db.session.add(Product(
            name=name,
            description=description,
            price=price,
            stock=stock,
            category=category,
            featured=featured,
            created_at=now - timedelta(days=len(DEMO_PRODUCTS) - i),
        ))

    today = date.today()
    for i, (name, email, orders, spent) in enumerate(DEMO_CUSTOMERS):
        db.session.add(Customer(
            name=name,
            email=email,
            orders=orders,
            spent=spent,
            last_order=(today - timedelta(days=9 * i)).isoformat(),
        ))

    # Spread over roughly the last five months so the sales chart has a series
    for i in range(24):
        customer = DEMO_CUSTOMERS[i % len(DEMO_CUSTOMERS)][0]
        db.session.add(Order(
            customer_name=customer,
            status=DEMO_STATUSES[i % len(DEMO_STATUSES)],
            total=round(25 + (i * 37.5) % 400, 2),
            created_at=now - timedelta(days=6 * i),
        ))

    db.session.commit()
    click.echo(
        f"PASS Seeded {len(DEMO_PRODUCTS)} products, {len(DEMO_CUSTOMERS)} customers and 24 orders"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(demo_group)
