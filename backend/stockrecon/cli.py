# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockrecon/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent). Prefer `flask db upgrade`
#   for databases managed by migrations.
#
# Monthly stock:
# - python -m flask stock purge --month 2024-05 --yes
#   Delete every snapshot of the month (transfers are kept).
# - python -m flask stock audit --month 2024-05
#   Report partially applied uploads/transfers for the month.
# - python -m flask stock upload-unified ./export.csv --month 2024-05
#   Replace the month from a unified export on disk.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import audit_service, snapshot_service
from .services.catalog_service import get_catalog
from .services.ingest_schemas import decode_upload
from .services.ingest_service import UploadFile, ingest_unified
from .time_utils import month_key, parse_month_key
from .validation import ConflictError, PartialFailureError, ValidationError


def _month_option(value: str):
    try:
        return parse_month_key(value)
    except ValidationError as e:
        raise click.BadParameter(str(e))


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    click.echo("BUILD  Creating tables...")
    db.create_all()
    click.echo("PASS Database ready.")


@click.group('stock')
def stock_group():
    """Monthly stock maintenance commands."""


@stock_group.command('purge')
@click.option('--month', 'month_raw', required=True, help='Month to purge (YYYY-MM)')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def purge_stock(month_raw, yes):
    """Delete every snapshot of one month."""
    month = _month_option(month_raw)
    if not yes:
        click.confirm(f"WARN This will DELETE all stock data for {month_key(month)}. Are you sure?", abort=True)

    deleted = snapshot_service.purge_month(month)
    click.echo(f"PASS Deleted {deleted} snapshots for {month_key(month)}")


@stock_group.command('audit')
@click.option('--month', 'month_raw', required=True, help='Month to audit (YYYY-MM)')
@with_appcontext
def audit_stock(month_raw):
    """Report inconsistencies left by partially applied writes."""
    month = _month_option(month_raw)
    report = audit_service.audit_month(month)

    click.echo(f"Month: {report['month']}  snapshots: {report['snapshot_count']}")
    for wh, count in report["per_warehouse"].items():
        click.echo(f"  {wh}: {count}")

    if report["status"] == "ok":
        click.echo("PASS No inconsistencies found")
        return

    if report["missing_warehouses"]:
        click.echo(f"FAIL Warehouses without data: {', '.join(report['missing_warehouses'])}")
    if report["unknown_warehouses"]:
        click.echo(f"FAIL Unknown warehouses: {', '.join(report['unknown_warehouses'])}")
    for dup in report["duplicate_keys"]:
        click.echo(f"FAIL Duplicate cell: product {dup['product_id']} @ {dup['warehouse']} x{dup['count']}")
    for cell in report["negative_theoretical"]:
        click.echo(
            f"FAIL Negative theoretical: product {cell['product_id']} @ {cell['warehouse']} = {cell['theoretical']:g}"
        )
    for t in report["transfers_missing_cells"]:
        click.echo(
            f"FAIL Transfer {t['transfer_id']}: no cell for product {t['product_id']} in {', '.join(t['missing_cells'])}"
        )
    raise SystemExit(1)


@stock_group.command('upload-unified')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--month', 'month_raw', required=True, help='Target month (YYYY-MM)')
@with_appcontext
def upload_unified(path, month_raw):
    """Replace a month from a unified CSV export."""
    month = _month_option(month_raw)
    with open(path, "rb") as f:
        data = f.read()

    try:
        upload = UploadFile(filename=path, content=decode_upload(data, path))
        result = ingest_unified(upload, month, get_catalog())
    except (ValidationError, ConflictError, PartialFailureError) as e:
        raise click.ClickException(str(e))

    for w in result.warnings:
        click.echo(f"WARN {w}")
    click.echo(
        f"PASS {result.rows_written} rows for {result.products_seen} products "
        f"({result.products_created} new) stored for {month_key(month)}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
