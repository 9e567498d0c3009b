"""Operation CLI commands."""

from __future__ import annotations

import click

from monkeep.cli.common import format_operation, get_client, parse_date, parse_decimal
from monkeep.exceptions import NotFoundError, ReferentialGapError
from monkeep.models import FilterSet, OperationDTO
from monkeep.schema import OPERATION_TYPES

LEDGER_ERRORS = (NotFoundError, ReferentialGapError, ValueError)


@click.group()
def operation() -> None:
    """Operation commands."""


@operation.command("add")
@click.option("--type", "operation_type", required=True, type=click.Choice(OPERATION_TYPES))
@click.option("--amount", "amount_value", required=True, help="Positive amount.")
@click.option("--account", "account_id", required=True, type=int, help="Source account id.")
@click.option("--date", "date_value", required=True, help="Operation date in YYYY-MM-DD.")
@click.option("--category", "category_id", default=None, help="Category id (expense, income).")
@click.option("--to-account", "to_account_id", type=int, default=None, help="Destination account id (transfer).")
@click.option("--description", default=None, help="Free-text description.")
@click.option("--exchange-rate", default=None, help="Rate for cross-currency transfers.")
@click.option("--destination-amount", default=None, help="Amount credited for cross-currency transfers.")
@click.pass_context
def add_operation(
    ctx: click.Context,
    operation_type: str,
    amount_value: str,
    account_id: int,
    date_value: str,
    category_id: str | None,
    to_account_id: int | None,
    description: str | None,
    exchange_rate: str | None,
    destination_amount: str | None,
) -> None:
    """Add an operation and update account balances.

    Examples:
        monkeep operation add --type expense --amount 12.50 --account 1 --category food --date 2026-03-01
        monkeep operation add --type transfer --amount 100 --account 1 --to-account 2 --date 2026-03-01
    """
    try:
        dto = OperationDTO(
            type=operation_type,
            amount=parse_decimal(amount_value, "--amount"),
            account_id=account_id,
            date=parse_date(date_value, "--date"),
            category_id=category_id,
            to_account_id=to_account_id,
            description=description,
            exchange_rate=parse_decimal(exchange_rate, "--exchange-rate"),
            destination_amount=parse_decimal(destination_amount, "--destination-amount"),
        )
    except ValueError as e:
        raise click.UsageError(str(e))
    with get_client(ctx) as client:
        try:
            record = client.create_operation(dto)
        except LEDGER_ERRORS as e:
            raise click.ClickException(f"Operation add failed: {e}")
    click.echo(f"Added operation {record.id}")


@operation.command("get")
@click.argument("key", type=int)
@click.pass_context
def get_operation(ctx: click.Context, key: int) -> None:
    """Get an operation by id."""
    with get_client(ctx) as client:
        try:
            record = client.get_operation(key)
        except NotFoundError as e:
            raise click.ClickException(str(e))
    click.echo(format_operation(record))


@operation.command("update")
@click.argument("key", type=int)
@click.option("--amount", "amount_value", default=None, help="Updated amount.")
@click.option("--account", "account_id", type=int, default=None, help="Updated source account id.")
@click.option("--to-account", "to_account_id", type=int, default=None, help="Updated destination account id.")
@click.option("--category", "category_id", default=None, help="Updated category id.")
@click.option("--date", "date_value", default=None, help="Updated date in YYYY-MM-DD.")
@click.option("--description", default=None, help="Updated description.")
@click.pass_context
def update_operation(
    ctx: click.Context,
    key: int,
    amount_value: str | None,
    account_id: int | None,
    to_account_id: int | None,
    category_id: str | None,
    date_value: str | None,
    description: str | None,
) -> None:
    """Update an operation and rebalance the affected accounts."""
    changes = {
        "amount": parse_decimal(amount_value, "--amount"),
        "account_id": account_id,
        "to_account_id": to_account_id,
        "category_id": category_id,
        "date": parse_date(date_value, "--date"),
        "description": description,
    }
    changes = {name: value for name, value in changes.items() if value is not None}
    if not changes:
        raise click.UsageError(
            "Provide --amount, --account, --to-account, --category, --date, or --description."
        )
    with get_client(ctx) as client:
        try:
            record = client.update_operation(key, **changes)
        except LEDGER_ERRORS as e:
            raise click.ClickException(f"Operation update failed: {e}")
    click.echo(f"Updated operation {record.id}")


@operation.command("delete")
@click.argument("key", type=int)
@click.option("--yes", is_flag=True, help="Skip delete confirmation.")
@click.pass_context
def delete_operation(ctx: click.Context, key: int, yes: bool) -> None:
    """Delete an operation and reverse its balance effect."""
    if not yes:
        confirm = click.confirm("Delete operation?", default=False)
        if not confirm:
            click.echo("Delete cancelled.")
            return
    with get_client(ctx) as client:
        try:
            client.delete_operation(key)
        except LEDGER_ERRORS as e:
            raise click.ClickException(f"Operation delete failed: {e}")
    click.echo(f"Deleted operation {key}")


def _filter_options(command):
    """Attach the shared filter options to a command."""
    options = [
        click.option("--type", "types", multiple=True, type=click.Choice(OPERATION_TYPES), help="Operation type, repeatable."),
        click.option("--account", "account_ids", multiple=True, type=int, help="Account id, repeatable."),
        click.option("--category", "category_ids", multiple=True, help="Category id, repeatable."),
        click.option("--search", default=None, help="Case-insensitive text search."),
        click.option("--min", "min_amount", default=None, help="Minimum amount."),
        click.option("--max", "max_amount", default=None, help="Maximum amount."),
        click.option("--start", "start_date", default=None, help="Start date in YYYY-MM-DD."),
        click.option("--end", "end_date", default=None, help="End date in YYYY-MM-DD."),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def _build_filters(
    types: tuple[str, ...],
    account_ids: tuple[int, ...],
    category_ids: tuple[str, ...],
    search: str | None,
    min_amount: str | None,
    max_amount: str | None,
    start_date: str | None,
    end_date: str | None,
) -> FilterSet:
    try:
        return FilterSet.build(
            types=types,
            account_ids=account_ids,
            category_ids=category_ids,
            search_text=search,
            start_date=parse_date(start_date, "--start"),
            end_date=parse_date(end_date, "--end"),
            min_amount=parse_decimal(min_amount, "--min"),
            max_amount=parse_decimal(max_amount, "--max"),
        )
    except ValueError as e:
        raise click.UsageError(str(e))


@operation.command("week")
@click.option("--offset", type=click.IntRange(min=0), default=0, show_default=True, help="Weeks before today.")
@_filter_options
@click.pass_context
def list_week(ctx: click.Context, offset: int, **filter_values) -> None:
    """List the operations of one week, newest first.

    Examples:
        monkeep operation week
        monkeep operation week --offset 2 --type expense --search coffee
    """
    filters = _build_filters(**filter_values)
    with get_client(ctx) as client:
        if filters.is_active():
            records = client.get_filtered_operations_by_week_offset(offset, filters)
        else:
            records = client.get_operations_by_week_offset(offset)
    if not records:
        click.echo("No operations found.")
        return
    for record in records:
        click.echo(format_operation(record))


@operation.command("history")
@_filter_options
@click.pass_context
def list_history(ctx: click.Context, **filter_values) -> None:
    """Walk every operation newest to oldest, one week page at a time."""
    filters = _build_filters(**filter_values)
    found = False
    with get_client(ctx) as client:
        for page in client.iter_pages(filters):
            found = True
            click.echo(f"# {page[-1].date.isoformat()} .. {page[0].date.isoformat()}")
            for record in page:
                click.echo(format_operation(record))
    if not found:
        click.echo("No operations found.")
