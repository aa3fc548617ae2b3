# Overview: Flask CLI command groups for bootstrap and finance operations.

# backend/bursar/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Bootstrap:
# - python -m flask finance init-db
#   Create all tables (dev only; use `flask db upgrade` for real databases).
# - python -m flask finance create-institution --name "Colegio San Jose" --code "CSJ" --timezone "America/Bogota"
#   Create a tenant with its financial settings row.
# - python -m flask finance institutions
#   List institutions.
#
# Sequences:
# - python -m flask finance sequences --institution-id 1
#   Show prefixes and next numbers for every series.
# - python -m flask finance allocate --institution-id 1 --series RECEIPT
#   Allocate (and burn) the next number of a series.
#
# Cash register:
# - python -m flask finance close-register --institution-id 1 --actor-id 5 --date 2026-02-03 [--physical-cash 250000.00]
#   Close (or re-close) the register for a local calendar day.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Institution
from .services import cash_register_service, sequence_service, settings_service
from .services.tenant_service import TenantAccessError
from .validation import ConflictError, NotFoundError, ValidationError, coerce_date


@click.group('finance')
def finance_group():
    """Financial ledger bootstrap and operations."""


@finance_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the current models."""
    db.create_all()
    click.echo("PASS Tables created")


@finance_group.command('create-institution')
@click.option('--name', required=True, help='Institution name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--timezone', 'tz_name', default='UTC', help='IANA timezone for the local calendar')
@with_appcontext
def create_institution_cli(name, code, tz_name):
    """Create a new institution (tenant)."""
    existing = db.session.query(Institution).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Institution with code '{code}' already exists")
        return

    institution = Institution(name=name, code=code, timezone=tz_name, is_active=True)
    db.session.add(institution)
    db.session.commit()
    settings_service.get_settings(institution.id)

    click.echo(f"PASS Created institution: {institution.name} (ID: {institution.id}, Code: {institution.code})")


@finance_group.command('institutions')
@with_appcontext
def list_institutions():
    """List all institutions."""
    institutions = db.session.query(Institution).order_by(Institution.id).all()
    if not institutions:
        click.echo("No institutions found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<10} {'Timezone':<18} {'Active'}")
    click.echo("="*70)
    for inst in institutions:
        active_str = "Yes" if inst.is_active else "No"
        click.echo(f"{inst.id:<5} {inst.name:<30} {inst.code or '-':<10} {inst.timezone:<18} {active_str}")
    click.echo("="*70 + "\n")


@finance_group.command('sequences')
@click.option('--institution-id', type=int, required=True, help='Institution ID')
@with_appcontext
def show_sequences(institution_id):
    """Show prefix and next number for every series."""
    try:
        settings = settings_service.get_settings(institution_id)
    except TenantAccessError as exc:
        click.echo(f"FAIL {exc}")
        return

    for series, (prefix_col, counter_col) in sequence_service.SERIES_COLUMNS.items():
        prefix = getattr(settings, prefix_col)
        next_number = getattr(settings, counter_col)
        preview = sequence_service.format_number(series, prefix, next_number)
        click.echo(f"{series:<12} next={next_number:<8} ({preview})")


@finance_group.command('allocate')
@click.option('--institution-id', type=int, required=True, help='Institution ID')
@click.option('--series', type=click.Choice(sorted(sequence_service.SERIES_COLUMNS)), required=True)
@with_appcontext
def allocate_cli(institution_id, series):
    """Allocate the next number of a series (the number is consumed)."""
    try:
        number = sequence_service.allocate(institution_id, series)
    except ValidationError as exc:
        click.echo(f"FAIL {exc}")
        return
    click.echo(f"PASS Allocated {number}")


@finance_group.command('close-register')
@click.option('--institution-id', type=int, required=True, help='Institution ID')
@click.option('--actor-id', type=int, required=True, help='User closing the register')
@click.option('--date', 'close_date', required=True, help='Local calendar day (YYYY-MM-DD)')
@click.option('--physical-cash', default=None, help='Counted cash, e.g. 250000.00')
@click.option('--notes', default=None)
@with_appcontext
def close_register_cli(institution_id, actor_id, close_date, physical_cash, notes):
    """Close (or re-close) the cash register for a day."""
    try:
        record = cash_register_service.close_register(
            institution_id,
            actor_id,
            coerce_date(close_date, "date"),
            physical_cash=physical_cash,
            notes=notes,
        )
    except (ValidationError, NotFoundError, ConflictError, TenantAccessError) as exc:
        click.echo(f"FAIL {exc}")
        return

    click.echo(f"PASS Register closed for {record.close_date.isoformat()}")
    click.echo(f"   cash      {record.cash_total}")
    click.echo(f"   transfer  {record.transfer_total}")
    click.echo(f"   card      {record.card_total}")
    click.echo(f"   other     {record.other_total}")
    click.echo(f"   total     {record.grand_total} ({record.payment_count} payments)")
    if record.variance is not None:
        click.echo(f"   variance  {record.variance}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(finance_group)
