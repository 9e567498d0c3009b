"""Report CLI commands."""

from __future__ import annotations

import click

from monkeep.cli.common import get_client, parse_date

MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@click.group()
def report() -> None:
    """Report commands."""


def _echo_totals(totals, empty_message: str) -> None:
    if not totals:
        click.echo(empty_message)
        return
    for item in totals:
        click.echo(f"{item.categoryId}\t{item.total}")


@report.command("spending")
@click.option("--currency", default=None, help="Only accounts in this currency.")
@click.option("--start", "start_date", required=True, help="Start date in YYYY-MM-DD.")
@click.option("--end", "end_date", required=True, help="End date in YYYY-MM-DD.")
@click.pass_context
def spending(ctx: click.Context, currency: str | None, start_date: str, end_date: str) -> None:
    """Expense totals per category, largest first."""
    start = parse_date(start_date, "--start")
    end = parse_date(end_date, "--end")
    with get_client(ctx) as client:
        if currency:
            totals = client.get_spending_by_category_and_currency(currency, start, end)
        else:
            totals = client.get_spending_by_category(start, end)
    _echo_totals(totals, "No spending found.")


@report.command("income")
@click.option("--currency", default=None, help="Only accounts in this currency.")
@click.option("--start", "start_date", required=True, help="Start date in YYYY-MM-DD.")
@click.option("--end", "end_date", required=True, help="End date in YYYY-MM-DD.")
@click.pass_context
def income(ctx: click.Context, currency: str | None, start_date: str, end_date: str) -> None:
    """Income totals per category, largest first."""
    start = parse_date(start_date, "--start")
    end = parse_date(end_date, "--end")
    with get_client(ctx) as client:
        if currency:
            totals = client.get_income_by_category_and_currency(currency, start, end)
        else:
            totals = client.get_income_by_category(start, end)
    _echo_totals(totals, "No income found.")


@report.command("months")
@click.pass_context
def months(ctx: click.Context) -> None:
    """List months that have operations, newest first."""
    with get_client(ctx) as client:
        available = client.get_available_months()
    if not available:
        click.echo("No operations found.")
        return
    for item in available:
        click.echo(f"{item.year}-{item.month + 1:02d}\t{MONTH_NAMES[item.month]} {item.year}")
