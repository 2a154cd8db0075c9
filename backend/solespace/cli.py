# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/solespace/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Super admins:
# - python -m flask admins create --name "Ops" --email ops@solespace.local
#   Create an active super admin (prompts for the password).
# - python -m flask admins list
#
# Shop registrations:
# - python -m flask shops list [--status pending]
# - python -m flask shops approve 3
# - python -m flask shops reject 3 --reason "Incomplete documents"
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired/revoked guard sessions.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.
# - python -m flask maintenance cleanup-notices
#   Delete one-time notices (temporary passwords) nobody claimed in time.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import ShopOwner, SuperAdmin
from .services import auth_service, lifecycle_service, maintenance_service, shop_owner_service
from .services.lifecycle_service import InvalidStatusTransition
from .validation import UniquenessConflict, ValidationError


def _echo_errors(errors: dict) -> None:
    for field, messages in errors.items():
        for message in messages:
            click.echo(f"FAIL {field}: {message}", err=True)


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that don't exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask admins create' to add an operator.")


@click.group('admins')
def admins_group():
    """Super admin account commands."""


@admins_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password (min 8)')
@with_appcontext
def create_admin_cli(name, email, password):
    """Create an active super admin."""
    try:
        admin = auth_service.create_super_admin(
            {"name": name, "email": email, "password": password},
            require_confirmation=False,
        )
    except (ValidationError, UniquenessConflict) as e:
        _echo_errors(e.errors)
        raise SystemExit(1)

    click.echo(f"PASS Created super admin #{admin.id} {admin.email}")


@admins_group.command('list')
@with_appcontext
def list_admins():
    """List all super admins."""
    admins = db.session.query(SuperAdmin).order_by(SuperAdmin.id.asc()).all()

    if not admins:
        click.echo("No super admins found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Status'}")
    click.echo("="*80)
    for admin in admins:
        click.echo(f"{admin.id:<5} {admin.name:<25} {admin.email:<35} {admin.status}")
    click.echo("="*80 + "\n")


@click.group('shops')
def shops_group():
    """Shop registration commands."""


@shops_group.command('list')
@click.option('--status', type=click.Choice(ShopOwner.STATUSES), help='Filter by status')
@with_appcontext
def list_shops(status):
    """List shop registrations, newest first."""
    shops = shop_owner_service.list_registrations(status)

    if not shops:
        click.echo("No shop registrations found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Business':<30} {'Email':<35} {'Status'}")
    click.echo("="*90)
    for shop in shops:
        click.echo(f"{shop.id:<5} {shop.business_name:<30} {shop.email:<35} {shop.status}")
    click.echo("="*90 + "\n")


def _get_shop(shop_id: int) -> ShopOwner:
    shop = db.session.get(ShopOwner, shop_id)
    if shop is None:
        click.echo(f"FAIL Shop owner #{shop_id} not found", err=True)
        raise SystemExit(1)
    return shop


@shops_group.command('approve')
@click.argument('shop_id', type=int)
@with_appcontext
def approve_shop(shop_id):
    """Approve a pending shop registration."""
    shop = _get_shop(shop_id)
    try:
        lifecycle_service.approve_shop_owner(shop)
    except InvalidStatusTransition as e:
        click.echo(f"FAIL {e}", err=True)
        raise SystemExit(1)
    click.echo(f"PASS Approved shop owner #{shop.id} {shop.business_name}")


@shops_group.command('reject')
@click.argument('shop_id', type=int)
@click.option('--reason', default=None, help='Shown to the shop owner at login')
@with_appcontext
def reject_shop(shop_id, reason):
    """Reject a pending shop registration."""
    shop = _get_shop(shop_id)
    try:
        lifecycle_service.reject_shop_owner(shop, reason)
    except InvalidStatusTransition as e:
        click.echo(f"FAIL {e}", err=True)
        raise SystemExit(1)
    click.echo(f"PASS Rejected shop owner #{shop.id} {shop.business_name}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired or revoked guard sessions."""
    deleted = maintenance_service.cleanup_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} guard sessions older than {older_than_days} days.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


@maintenance_group.command('cleanup-notices')
@with_appcontext
def cleanup_notices_cli():
    """Delete expired sealed notices."""
    deleted = maintenance_service.cleanup_notices()
    click.echo(f"Deleted {deleted} expired notices.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(admins_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(maintenance_group)
