"""Shared CLI helpers."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal, InvalidOperation

import click

from monkeep.client import MonkeepClient
from monkeep.models import OperationRecord


def parse_date(value: str | None, field_name: str) -> dt.date | None:
    """Parse an ISO date string into a date."""
    if value is None:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter("Use YYYY-MM-DD format.", param_hint=field_name) from exc


def parse_decimal(value: str | None, field_name: str) -> Decimal | None:
    """Parse a decimal string into a Decimal."""
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise click.BadParameter("Use a valid decimal value.", param_hint=field_name) from exc


def format_operation(record: OperationRecord) -> str:
    """Render an operation as one tab-separated line."""
    target = record.categoryId if record.type != "transfer" else f"-> {record.toAccountId}"
    description = record.description or ""
    return (
        f"{record.id}\t{record.date.isoformat()}\t{record.type}\t{record.amount}"
        f"\t{record.accountId}\t{target}\t{description}"
    )


def get_client(ctx: click.Context) -> MonkeepClient:
    """Build a Monkeep client from Click context."""
    payload = ctx.obj or {}
    return MonkeepClient(
        db_path=payload.get("db_path"),
        strict_references=payload.get("strict_references"),
        enable_forex_rates=payload.get("enable_forex_rates", True),
    )
