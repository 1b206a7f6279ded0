# Overview: Flask CLI command groups for bootstrap and tenant provisioning.

# backend/bizledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create the documents table if missing (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management (MULTI-TENANT):
# - python -m flask tenants list
#   List all tenants.
# - python -m flask tenants create --id acme --name "Acme Traders" --timezone Asia/Kolkata
#   Create a new ACTIVE tenant.
# - python -m flask tenants suspend acme
#   Block every operation for the tenant.
# - python -m flask tenants activate acme
#   Lift a suspension.

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import TENANT_STATUS_ACTIVE, TENANT_STATUS_SUSPENDED
from .services import tenant_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database initialized.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask tenants create' to add a tenant.")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants_cli():
    """List all tenants."""
    tenants = tenant_service.list_tenants()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<20} {'Name':<30} {'Status':<10} {'Timezone'}")
    click.echo("="*80)

    for tenant in tenants:
        click.echo(f"{tenant.tenant_id:<20} {tenant.name:<30} {tenant.status:<10} {tenant.timezone}")

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--id', 'tenant_id', required=True, help='Tenant identifier (used in X-Tenant-Id)')
@click.option('--name', required=True, help='Business name')
@click.option('--timezone', default='UTC', show_default=True, help='IANA timezone for monthly reports')
@with_appcontext
def create_tenant_cli(tenant_id, name, timezone):
    """Create a new ACTIVE tenant."""
    try:
        tenant = tenant_service.create_tenant(tenant_id, name, timezone=timezone)
    except LedgerError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created tenant '{tenant.name}' (ID: {tenant.tenant_id})")


def _set_status(tenant_id: str, status: str) -> None:
    try:
        tenant = tenant_service.set_tenant_status(tenant_id, status)
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Tenant {tenant.tenant_id} is now {tenant.status}")


@tenants_group.command('suspend')
@click.argument('tenant_id')
@with_appcontext
def suspend_tenant_cli(tenant_id):
    """Suspend a tenant (all operations return 403)."""
    _set_status(tenant_id, TENANT_STATUS_SUSPENDED)


@tenants_group.command('activate')
@click.argument('tenant_id')
@with_appcontext
def activate_tenant_cli(tenant_id):
    """Re-activate a suspended tenant."""
    _set_status(tenant_id, TENANT_STATUS_ACTIVE)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
