# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@store.local] [--admin-password "Password123!"]
#   Idempotent bootstrap: creates tables and a default admin if none exists.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired and revoked session tokens older than 30 days.
#
# User inspection/bootstrap:
# - python -m flask users list [--role admin]
#   List all users with their roles.
# - python -m flask users create --username alice --email alice@store.local --password "secret1" --role logistics
#   Create a user (prompts if options are omitted).
#
# Catalog:
# - python -m flask catalog seed
#   Insert a handful of sample products when the catalog is empty.

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product, ROLES, ROLE_ADMIN
from .services.auth_service import create_user
from .services import session_service
from .validation import StorefrontError


SAMPLE_PRODUCTS = [
    ("Apples", 50, Decimal("1.50"), "apples.png"),
    ("Bananas", 75, Decimal("0.80"), "bananas.png"),
    ("Milk", 30, Decimal("3.50"), "milk.png"),
    ("Bread", 12, Decimal("2.20"), "bread.png"),
    ("Eggs (12)", 8, Decimal("4.10"), "eggs.png"),
    ("Rice 5kg", 3, Decimal("12.90"), "rice.png"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Username of the default admin')
@click.option('--admin-email', default='admin@store.local', help='Email of the default admin')
@click.option('--admin-password', default='Password123!', help='Password of the default admin')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Create tables and make sure at least one admin exists.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing storefront...")

    db.create_all()
    click.echo("PASS Tables ready")

    admin = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if admin:
        click.echo(f"PASS Using existing admin: {admin.username} ({admin.email})")
        return

    try:
        admin = create_user(
            username=admin_username,
            email=admin_email,
            password=admin_password,
            role=ROLE_ADMIN,
        )
    except StorefrontError as e:
        click.echo(f"FAIL Could not create admin: {e}")
        return

    click.echo(f"PASS Created admin: {admin.username} ({admin.email})")
    click.echo("SECURITY Password securely hashed with bcrypt")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session tokens")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--address', default='', help='Address')
@click.option('--contact', default='', help='Contact number')
@with_appcontext
def create_user_cli(username, email, password, role, address, contact):
    """Create a new user (minimum password length 6)."""
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            address=address,
            contact=contact,
        )
    except StorefrontError as e:
        click.echo(f"FAIL Failed to create user: {e}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@users_group.command('list')
@click.option('--role', type=click.Choice(list(ROLES)), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Role'}")
    click.echo("="*80)

    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<35} {user.role}")

    click.echo("="*80 + "\n")


@click.group('catalog')
def catalog_group():
    """Catalog bootstrap commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert sample products when the catalog is empty."""
    if db.session.query(Product).count():
        click.echo("SKIP Catalog already has products")
        return

    for name, stock, price, image in SAMPLE_PRODUCTS:
        db.session.add(Product(name=name, stock=stock, price=price, image=image))
    db.session.commit()

    click.echo(f"PASS Seeded {len(SAMPLE_PRODUCTS)} products")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
