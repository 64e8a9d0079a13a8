# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: roles, default categories, and the super admin when
#   SUPER_USER_EMAIL / SUPER_USER_PASSWORD are set.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Seeds:
# - python -m flask roles seed
#   Create default roles (admin, user, superadmin).
# - python -m flask categories seed
#   Create default categories (Mobile, Laptop, Accessories, Home Appliances).
#
# Users:
# - python -m flask users create-superadmin --email root@shop.local --password "Password123!"
#   Create or repair the super admin (falls back to SUPER_USER_EMAIL / SUPER_USER_PASSWORD).
# - python -m flask users list
#   List all users with roles and active status.
#
# Maintenance:
# - python -m flask maintenance purge-expired-tokens
#   Delete refresh tokens past their expiry.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import auth_service, product_service, user_service
from .services.errors import ServiceError
from .services.role_service import RoleService
from .services.token_service import TokenService


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the storefront: roles, categories and (optionally) the super admin.

    Safe to run repeatedly.
    """
    click.echo("START Initializing storefront...")

    roles = RoleService(db.session).ensure_default_roles()
    click.echo(f"PASS Roles ready: {', '.join(r.slug for r in roles)}")

    created = product_service.seed_default_categories(db.session)
    click.echo(f"PASS Categories created: {', '.join(created) if created else 'none (already seeded)'}")

    email = current_app.config.get("SUPER_USER_EMAIL")
    password = current_app.config.get("SUPER_USER_PASSWORD")
    if email and password:
        _create_superadmin(email, password)
    else:
        click.echo("SKIP Super admin: set SUPER_USER_EMAIL and SUPER_USER_PASSWORD to create one")

    click.echo("DONE Storefront initialized.")


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


@click.group('roles')
def roles_group():
    """Role seeding."""


@roles_group.command('seed')
@with_appcontext
def seed_roles():
    roles = RoleService(db.session).ensure_default_roles()
    for role in roles:
        click.echo(f"PASS {role.slug:<12} {role.name}")


@click.group('categories')
def categories_group():
    """Category seeding."""


@categories_group.command('seed')
@with_appcontext
def seed_categories():
    created = product_service.seed_default_categories(db.session)
    if not created:
        click.echo("Categories already seeded.")
        return
    for name in created:
        click.echo(f"PASS Created category {name}")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


def _create_superadmin(email: str, password: str) -> None:
    RoleService(db.session).ensure_default_roles()
    try:
        user, created = auth_service.ensure_super_admin(db.session, email=email, password=password)
    except ServiceError as e:
        raise click.ClickException(e.message)

    if created:
        click.echo(f"PASS Created super admin {user.email} (ID: {user.id})")
    else:
        click.echo(f"PASS Super admin {user.email} already exists; roles verified")


@users_group.command('create-superadmin')
@click.option('--email', help='Email address (default: SUPER_USER_EMAIL)')
@click.option('--password', help='Password (default: SUPER_USER_PASSWORD)')
@with_appcontext
def create_superadmin_cli(email, password):
    """Create the super admin account, or repair its roles."""
    email = email or current_app.config.get("SUPER_USER_EMAIL")
    password = password or current_app.config.get("SUPER_USER_PASSWORD")

    if not email:
        email = click.prompt("Email")
    if not password:
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)

    _create_superadmin(email, password)


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = user_service.list_users(db.session)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<35} {'Active':<8} {'Roles'}")
    click.echo("="*90)

    for user in users:
        roles_str = ", ".join(RoleService.role_slugs(user)) or "none"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {(user.name or ''):<20} {user.email:<35} {active_str:<8} {roles_str}")

    click.echo("="*90 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('purge-expired-tokens')
@with_appcontext
def purge_expired_tokens():
    deleted = TokenService.from_config(db.session, current_app.config).purge_expired()
    click.echo(f"PASS Deleted {deleted} expired refresh token(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(roles_group)
    app.cli.add_command(categories_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
