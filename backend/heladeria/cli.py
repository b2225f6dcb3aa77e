# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/heladeria/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Database:
# - python -m flask db upgrade
#   Apply migrations (creates every table on a fresh database).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Idempotently create the default categories, products, price lists and prices.
#
# Ledger maintenance:
# - python -m flask ledger recover
#   Finish reversals whose compensating record exists but whose original is not flagged.
#
# Registers:
# - python -m flask registers list [--user-id 1] [--status open]
#   List register sessions, newest first.
#
# Sync:
# - python -m flask sync run
#   Push unsynced records to the configured server once.
# - python -m flask sync purge
#   Delete local history older than the last successful sync minus the grace period.
# - python -m flask sync schedule [--interval 3600]
#   Keep running and sync on an interval until interrupted.

import time

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import CashRegister
from .models.registers import REGISTER_OPEN, REGISTER_CLOSED
from .services import catalog_service, reversal_service, sync_service
from .time_utils import to_utc_z


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask catalog seed' to load the catalog.")


@click.group('catalog')
def catalog_group():
    """Catalog bootstrap commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog_cli():
    """
    Create the default catalog. Safe to run repeatedly.

    Example:
        flask catalog seed
    """
    created = catalog_service.seed_catalog()
    click.echo(
        f"PASS Catalog seeded: {created['categories']} categories, {created['price_lists']} price lists, "
        f"{created['products']} products, {created['prices']} prices created"
    )


@click.group('ledger')
def ledger_group():
    """Ledger maintenance commands."""


@ledger_group.command('recover')
@with_appcontext
def recover_ledger_cli():
    """Complete interrupted reversals."""
    repaired = reversal_service.recover_interrupted_reversals()
    if not repaired["sales"] and not repaired["cashMovements"]:
        click.echo("PASS Nothing to recover.")
        return

    for sale_id in repaired["sales"]:
        click.echo(f"FIXED sale {sale_id}")
    for movement_id in repaired["cashMovements"]:
        click.echo(f"FIXED movement {movement_id}")


@click.group('registers')
def registers_group():
    """Register session inspection commands."""


@registers_group.command('list')
@click.option('--user-id', help='Filter by user ID')
@click.option('--status', type=click.Choice([REGISTER_OPEN, REGISTER_CLOSED]), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max rows')
@with_appcontext
def list_registers_cli(user_id, status, limit):
    """
    List register sessions.

    Example:
        flask registers list
        flask registers list --status open
    """
    query = db.session.query(CashRegister)

    if user_id:
        query = query.filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)

    registers = query.order_by(CashRegister.opened_at.desc()).limit(limit).all()

    if not registers:
        click.echo("No registers found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<38} {'User':<10} {'Status':<8} {'Opening':>10} {'Closing':>10} {'Opened at':<22} {'Synced'}")
    click.echo("="*110)

    for register in registers:
        closing = "" if register.closing_amount is None else f"{register.closing_amount:.2f}"
        click.echo(
            f"{register.id:<38} {register.user_id:<10} {register.status:<8} "
            f"{register.opening_amount:>10.2f} {closing:>10} {to_utc_z(register.opened_at):<22} "
            f"{'yes' if register.synced else 'no'}"
        )

    click.echo("="*110 + "\n")


@click.group('sync')
def sync_group():
    """Remote sync commands."""


@sync_group.command('run')
@with_appcontext
def sync_run_cli():
    """Push unsynced records once."""
    result = sync_service.attempt_sync()
    if result.ok:
        click.echo(f"PASS Synced at {result.synced_at}: {result.marked}")
    else:
        click.echo(f"FAIL Sync failed: {result.error}")
        raise SystemExit(1)


@sync_group.command('purge')
@with_appcontext
def sync_purge_cli():
    """Remove local history already covered by a successful sync."""
    counts = sync_service.purge_old_local_data()
    if counts is None:
        click.echo("SKIP No successful sync yet; nothing purged.")
        return
    click.echo(f"PASS Purged: {counts}")


@sync_group.command('schedule')
@click.option('--interval', type=float, help='Seconds between runs (default SYNC_INTERVAL_SECONDS)')
@with_appcontext
def sync_schedule_cli(interval):
    """Run the sync scheduler in the foreground until Ctrl+C."""
    app = current_app._get_current_object()
    scheduler = sync_service.SyncScheduler(app, interval=interval)
    scheduler.start()
    click.echo(f"START Syncing every {scheduler.interval:g}s. Press Ctrl+C to stop.")
    try:
        while scheduler.running:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("STOP Stopping scheduler...")
    finally:
        scheduler.stop()


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(registers_group)
    app.cli.add_command(sync_group)
