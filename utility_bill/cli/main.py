"""
CLI interface for Utility Bill.

Provides command-line access to cost calculation and tariff inspection.
"""

import logging
import sys
from datetime import datetime
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from utility_bill.config.loader import default_config, load_billing_config
from utility_bill.core.billing import (
    CostCalculationError,
    InvalidDateRangeError,
    create_billing_service,
)
from utility_bill.core.intervals import IntervalStore
from utility_bill.core.usage import ALL_TARIFFS
from utility_bill.demo.seed_demo_data import seed_demo_data
from utility_bill.storage.db import DEFAULT_DB_PATH, StorageError
from utility_bill.storage.repository import get_repository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _parse_date(value: str, option: str):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(f"{option} must be a date in YYYY-MM-DD format")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
):
    """Utility Bill CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    if ctx.invoked_subcommand is None:
        console.print("Utility Bill - Use --help to see available commands")


@app.command()
def init(
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="Path to SQLite database"),
    demo: bool = typer.Option(False, "--demo", help="Seed demo accounts and tariffs")
):
    """Initialize the Utility Bill database."""
    try:
        initialize_schema(db)
        if demo:
            seed_demo_data(db)
            console.print("[green]✓[/] Demo accounts 123 (ausgrid) and 456 (jemena) created")
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def cost(
    account_id: int = typer.Argument(..., help="Account to bill"),
    start: str = typer.Option(..., "--start", "-s", help="Start date (YYYY-MM-DD)"),
    end: str = typer.Option(..., "--end", "-e", help="End date (YYYY-MM-DD)"),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML billing configuration"
    )
):
    """
    Calculate the cost of an account's usage between two dates.

    Usage is fetched from the account's provider and priced against the
    stored tariff rates and green power surcharges.
    """
    start_date = _parse_date(start, "--start")
    end_date = _parse_date(end, "--end")

    try:
        billing_config = load_billing_config(config) if config else default_config()
        service = create_billing_service(billing_config)
        total = service.calculate_cost(account_id, start_date, end_date)
    except InvalidDateRangeError as e:
        console.print(f"[red]Invalid date range:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    except CostCalculationError as e:
        console.print(f"[red]Error ({e.stage}):[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"\n[bold]Account {account_id}[/bold] {start_date} to {end_date}")
    console.print(f"Total cost: {_format_currency(total)}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def rates(
    account_id: int = typer.Argument(..., help="Account to inspect"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="Path to SQLite database")
):
    """Show rate and surcharge intervals for an account."""
    store = IntervalStore(get_repository(db))
    try:
        rate_map = store.get_rates(account_id)
        surcharge_map = store.get_surcharges(account_id)
    except StorageError as e:
        console.print(f"[red]Error reading tariffs:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    if not rate_map and not surcharge_map:
        console.print(f"\n[bold yellow]No tariffs found for account {account_id}[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title=f"Tariffs for account {account_id}")
    table.add_column("Tariff")
    table.add_column("Rate (c/min)", justify="right")
    table.add_column("Surcharge", justify="right")
    table.add_column("From")
    table.add_column("Until")

    for category in ALL_TARIFFS:
        for rate in rate_map.get(category, []):
            table.add_row(category.value, str(rate.rate_per_minute), "",
                          rate.valid_from.isoformat(), rate.valid_until.isoformat())
        for surcharge in surcharge_map.get(category, []):
            table.add_row(category.value, "", f"{surcharge.percent_increase}%",
                          surcharge.valid_from.isoformat(), surcharge.valid_until.isoformat())

    console.print(table)
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.2f}"


if __name__ == "__main__":
    app()
