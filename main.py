#!/usr/bin/env python3
"""
Procurement Console CLI entry point.

Usage examples:
  python main.py check                              # Verify setup (config, database, data files)
  python main.py import-data                        # Load suppliers, products and POs from data/*.csv
  python main.py import-data --po-csv other.csv
  python main.py cancelled                          # Print the cancelled-items report
  python main.py cancelled --returned --search acme
  python main.py serve                              # Run the console API on :8000
  python main.py serve --port 9000 --reload
"""
import logging
import sys
from pathlib import Path

import click
import uvicorn

from bootstrap import ensure_config_files
from config import Config
from procurement.database import Database
from procurement.po_loader import csv_row_count, import_all
from procurement.recycle import flatten_flagged_items
from dashboard.services.receipt import format_currency


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Procurement Console: purchase orders, purchases, sales and stock."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Verify that the config, database and data files are ready."""
    config = Config()

    click.echo("\n=== Console Setup Check ===\n")

    tick = "✓" if config.users_file.exists() else "✗"
    click.echo(f"  users.json                   {tick}  {config.users_file}")
    if not config.users_file.exists():
        click.echo("     → Run bootstrap.py to restore the default users")

    db = Database(config.db_path)
    stats = db.get_stats()
    click.echo(f"  Database                     ✓  {config.db_path}")
    click.echo(
        f"     {stats['products']['total']} products, "
        f"{stats['purchase_orders']['total']} purchase orders, "
        f"{stats['purchases']['count']} purchases, "
        f"{stats['recycle_bin']['all']} in recycle bin"
    )

    click.echo()

    # Data files
    for path in (config.suppliers_csv, config.products_csv, config.po_csv, config.po_lines_csv):
        exists = path.exists()
        tick = "✓" if exists else "✗"
        count_str = f" ({csv_row_count(path)} rows)" if exists else " (file not found)"
        click.echo(f"  {path.name:<28} {tick}{count_str}")
        if not exists:
            click.echo(f"     → Expected at: {path}")

    click.echo()


# --------------------------------------------------------------------
# import-data command
# --------------------------------------------------------------------

@cli.command("import-data")
@click.option("--suppliers", default=None, type=click.Path(), help="Path to suppliers CSV")
@click.option("--products", default=None, type=click.Path(), help="Path to products CSV")
@click.option("--po-csv", default=None, type=click.Path(), help="Path to purchase_orders CSV")
@click.option("--po-lines-csv", default=None, type=click.Path(), help="Path to purchase_order_lines CSV")
@click.pass_context
def import_data(
    ctx: click.Context,
    suppliers: str | None,
    products: str | None,
    po_csv: str | None,
    po_lines_csv: str | None,
) -> None:
    """Load suppliers, products and purchase orders from CSV into the database."""
    config = Config()
    if suppliers:
        config.suppliers_csv = Path(suppliers)
    if products:
        config.products_csv = Path(products)
    if po_csv:
        config.po_csv = Path(po_csv)
    if po_lines_csv:
        config.po_lines_csv = Path(po_lines_csv)

    db = Database(config.db_path)
    summary = import_all(
        db,
        config.suppliers_csv,
        config.products_csv,
        config.po_csv,
        config.po_lines_csv,
        fuzzy_threshold=config.supplier_fuzzy_threshold,
    )

    click.echo()
    click.echo(f"  Suppliers:        {summary.suppliers}")
    click.echo(f"  Products:         {summary.products}")
    click.echo(f"  Purchase orders:  {summary.purchase_orders}")
    if summary.skipped_locked:
        click.echo(f"  ⚠  Skipped {len(summary.skipped_locked)} locked order(s): "
                   f"{', '.join(summary.skipped_locked)}")
    if summary.unmatched_vendors:
        click.echo(f"  ⚠  Vendors not in supplier list: {', '.join(sorted(set(summary.unmatched_vendors)))}")
    click.echo()


# --------------------------------------------------------------------
# cancelled command
# --------------------------------------------------------------------

@cli.command()
@click.option("--returned", is_flag=True, help="Report returned lines instead of cancelled ones")
@click.option("--search", "-s", default=None, help="Filter by DB number, receipt number or supplier")
@click.pass_context
def cancelled(ctx: click.Context, returned: bool, search: str | None) -> None:
    """Print one row per cancelled (or returned) purchase line."""
    config = Config()
    db = Database(config.db_path)
    purchases, _ = db.list_purchases(search or None)
    rows = flatten_flagged_items(purchases, "isReturn" if returned else "isCancelled")

    label = "returned" if returned else "cancelled"
    if not rows:
        click.echo(f"No {label} items.")
        return

    click.echo()
    click.echo(f"  {'DB No.':<12} {'Receipt':<20} {'Supplier':<24} {'Product':<24} {'Qty':>8} {'Total':>14}")
    for r in rows:
        click.echo(
            f"  {r.ref_num:<12} {r.receipt_number or '-':<20} {r.vendor[:24]:<24} "
            f"{(r.product_name or r.product_id)[:24]:<24} {r.quantity:>8g} "
            f"{format_currency(r.total, config.currency_symbol):>14}"
        )
    grand = sum(r.total for r in rows)
    click.echo()
    click.echo(f"  {len(rows)} {label} item(s), {format_currency(grand, config.currency_symbol)}")
    click.echo()


# --------------------------------------------------------------------
# serve command
# --------------------------------------------------------------------

@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", "-p", default=8000, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool) -> None:
    """Run the console API with uvicorn."""
    ensure_config_files()
    config = Config()
    config.ensure_data_dirs()
    level = "debug" if ctx.obj.get("verbose") else "info"
    try:
        uvicorn.run("dashboard.app:app", host=host, port=port, reload=reload, log_level=level)
    except OSError as exc:
        click.echo(f"Error: could not start server: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
