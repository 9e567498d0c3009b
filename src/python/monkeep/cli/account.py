"""Account CLI commands."""

from __future__ import annotations

import click

from monkeep.cli.common import get_client, parse_decimal


@click.group()
def account() -> None:
    """Account commands."""


@account.command("add")
@click.option("--name", required=True, help="Account name.")
@click.option("--currency", default="USD", show_default=True, help="Currency code.")
@click.option("--balance", "balance_value", default="0", help="Opening balance.")
@click.pass_context
def add_account(ctx: click.Context, name: str, currency: str, balance_value: str) -> None:
    """Add an account.

    Examples:
        monkeep account add --name Wallet
        monkeep account add --name "Euro savings" --currency EUR --balance 250
    """
    balance = parse_decimal(balance_value, "--balance")
    with get_client(ctx) as client:
        try:
            record = client.add_account(name, currency=currency, balance=balance)
        except ValueError as e:
            raise click.ClickException(str(e))
    click.echo(f"Added account {record.id}")


@account.command("list")
@click.option("--currency", default=None, help="Filter by currency code (e.g., USD, EUR).")
@click.pass_context
def list_accounts(ctx: click.Context, currency: str | None) -> None:
    """List all accounts with current balances."""
    with get_client(ctx) as client:
        accounts = client.list_accounts()

    if currency:
        accounts = [item for item in accounts if item.currency == currency]
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 70)
    click.echo(f"{'Id':<6} {'Name':<30} {'Balance':>15} {'Currency':<10}")
    click.echo("-" * 70)
    for item in accounts:
        click.echo(f"{item.id:<6} {item.name:<30} {item.balance:>15} {item.currency:<10}")
    click.echo("-" * 70)
