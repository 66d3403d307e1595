# Overview: Flask CLI command groups for bootstrap, backup, and ledger inspection.

# backend/gestor/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Backup:
# - python -m flask backup export backup.json
#   Write every collection to a JSON file.
# - python -m flask backup import backup.json --yes
#   Replace ALL data with the file contents (no ledger rules applied).
#
# Ledger inspection:
# - python -m flask ledger check
#   Recompute balances and stock from history; exit code 1 on mismatch.
# - python -m flask reports dashboard
#   Print dashboard totals.

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import backup_service, reporting_service
from .services.entity_store import get_store
from .validation import LedgerError


def _money(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables ready.")


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


@click.group('backup')
def backup_group():
    """Full-state export and import."""


@backup_group.command('export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def backup_export(path):
    """Write every collection to PATH as JSON."""
    state = backup_service.export_state(get_store())
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(state, fh, indent=2)
    total = sum(len(rows) for rows in state["collections"].values())
    click.echo(f"PASS Exported {total} rows to {path}")


@backup_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def backup_import(path, yes):
    """Replace ALL data with the contents of PATH."""
    if not yes:
        click.confirm("WARN This will REPLACE ALL DATA. Are you sure?", abort=True)

    with open(path, encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as exc:
            raise click.ClickException(f"Invalid JSON in {path}: {exc}")

    try:
        counts = backup_service.import_state(get_store(), payload)
    except LedgerError as exc:
        raise click.ClickException(exc.message)

    for table, count in counts.items():
        click.echo(f"  {table}: {count}")
    current_app.logger.warning("Backup imported from %s", path)
    click.echo("PASS Import complete. Run 'python -m flask ledger check' to verify balances.")


@click.group('ledger')
def ledger_group():
    """Ledger inspection commands."""


@ledger_group.command('check')
@with_appcontext
def ledger_check():
    """Recompute balances and stock from ledger history."""
    audit = reporting_service.balance_audit(get_store())
    checked = audit["checked"]
    click.echo(
        f"Checked {checked['suppliers']} suppliers, {checked['customers']} customers, "
        f"{checked['products']} products"
    )
    if audit["ok"]:
        click.echo("PASS All balances match ledger history.")
        return

    for m in audit["mismatches"]:
        click.echo(f"FAIL {m['entity']} {m['id']} ({m['name']}): {m['field']} stored={m['stored']} expected={m['expected']}")
    raise SystemExit(1)


@click.group('reports')
def reports_group():
    """Read-only report commands."""


@reports_group.command('dashboard')
@click.option('--low-stock', type=int, default=None, help='Low stock threshold (defaults to config)')
@with_appcontext
def reports_dashboard(low_stock):
    """Print dashboard totals."""
    threshold = current_app.config["LOW_STOCK_THRESHOLD"] if low_stock is None else low_stock
    data = reporting_service.dashboard(get_store(), low_stock_threshold=threshold)

    click.echo(f"Revenue:        {_money(data['total_revenue_cents'])}")
    click.echo(f"Profit:         {_money(data['total_profit_cents'])}")
    click.echo(f"Customer debt:  {_money(data['total_customer_debt_cents'])}")
    click.echo(f"Supplier debt:  {_money(data['total_supplier_debt_cents'])}")
    click.echo(f"Expenses:       {_money(data['total_expenses_cents'])}")
    click.echo(f"Cash balance:   {_money(data['cash_balance_cents'])}")
    click.echo(f"Low stock (<= {data['low_stock_threshold']}): {data['low_stock_count']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(backup_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(reports_group)
