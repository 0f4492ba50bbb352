# Overview: Flask CLI command groups for setup, stock checks and reports.

# backend/phonepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to phonepos (PowerShell: $env:FLASK_APP="phonepos").
# - Use: python -m flask <group> <command> [options]
#
# Shop setup:
# - python -m flask shop init-db
#   Create all tables (idempotent).
# - python -m flask shop seed-sample
#   Load the sample catalog, categories and IMEI units (skipped if catalog is not empty).
# - python -m flask shop low-stock
#   List items at or below their minimum stock level.
#
# Reports:
# - python -m flask reports sales --start 2026-10-01 --end 2026-10-07 --granularity daily [--csv]
#   Print the bucketed sales report (or its CSV export).

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .extensions import db
from .services.inventory_service import InventoryRepository
from .services.sample_data import seed_sample_data
from .services import reporting_service, export_service
from .money import format_cents
from .time_utils import utcnow
from .validation import ShopError


@click.group('shop')
def shop_group():
    """Shop setup and inventory commands."""


@shop_group.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables."""
    db.create_all()
    click.echo("Database tables created.")


@shop_group.command('seed-sample')
@with_appcontext
def seed_sample_command():
    """Load sample catalog data."""
    db.create_all()
    created = seed_sample_data()
    if created:
        click.echo(f"Seeded {created} catalog items.")
    else:
        click.echo("Catalog is not empty; nothing seeded.")


@shop_group.command('low-stock')
@with_appcontext
def low_stock_command():
    """List items at or below minimum stock."""
    items = InventoryRepository().low_stock_items()
    if not items:
        click.echo("No low-stock items.")
        return
    for item in items:
        click.echo(f"{item.sku:<24} {item.name:<32} stock={item.stock_quantity} min={item.min_stock_level}")


@click.group('reports')
def reports_group():
    """Sales reporting commands."""


@reports_group.command('sales')
@click.option('--start', 'start', type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option('--end', 'end', type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option('--granularity', type=click.Choice(reporting_service.GRANULARITIES), default="daily")
@click.option('--csv', 'as_csv', is_flag=True, help="Print the CSV export instead of a table.")
@with_appcontext
def sales_report_command(start, end, granularity, as_csv):
    """Print the sales report for a date range (default: last 7 days)."""
    end_date = end.date() if end else utcnow().date()
    start_date = start.date() if start else end_date - timedelta(days=6)

    try:
        report = reporting_service.sales_report(start=start_date, end=end_date, granularity=granularity)
    except ShopError as e:
        raise click.ClickException(str(e))

    if as_csv:
        click.echo(export_service.overview_csv(report["buckets"]), nl=False)
        return

    for bucket in report["buckets"]:
        click.echo(
            f"{bucket['period']:<20} sales={format_cents(bucket['sales_cents']):>12} "
            f"tx={bucket['transactions']:<4} items={bucket['items']:<4} "
            f"aov={format_cents(bucket['avg_order_value_cents'])}"
        )
    summary = report["summary"]
    click.echo(
        f"TOTAL sales={format_cents(summary['total_sales_cents'])} "
        f"tx={summary['total_transactions']} items={summary['total_items_sold']}"
    )


def register_commands(app):
    app.cli.add_command(shop_group)
    app.cli.add_command(reports_group)
