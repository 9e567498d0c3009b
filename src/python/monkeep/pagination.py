"""Weekly window arithmetic and filter clause building for operation paging.

Operations are paged in fixed 7-day windows. Week offset 0 ends on the
injected ``today`` and starts six days earlier; offset N ends ``7 * N`` days
before today. Load-more paging anchors a window on an explicit end date
instead, which is how the caller walks back through older data.
"""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

from monkeep.models import FilterSet
from monkeep.schema import OPERATION_TYPES

WEEK_LENGTH_DAYS = 7
SEARCH_FUNCTION = "casefold"
# SQL function mapping a stored amount string to integer cents
MINOR_UNITS_FUNCTION = "minor_units"
AMOUNT_FILTER_PLACES = 2
LIKE_ESCAPE = "\\"

ORDER_NEWEST_FIRST = "ORDER BY {alias}date DESC, {alias}created_at DESC, {alias}id DESC"
ORDER_OLDEST_FIRST = "ORDER BY {alias}date ASC, {alias}created_at ASC, {alias}id ASC"


@dataclass(frozen=True)
class Window:
    """Inclusive calendar date window."""

    start: dt.date
    end: dt.date


def window_ending(end: dt.date) -> Window:
    """Return the 7-day window that ends on ``end``."""
    return Window(start=end - dt.timedelta(days=WEEK_LENGTH_DAYS - 1), end=end)


def window_starting(start: dt.date) -> Window:
    """Return the 7-day window that starts on ``start``."""
    return Window(start=start, end=start + dt.timedelta(days=WEEK_LENGTH_DAYS - 1))


def week_window(offset: int, today: dt.date) -> Window:
    """Return the window for a week offset relative to ``today``."""
    if offset < 0:
        raise ValueError("Week offset must not be negative")
    return window_ending(today - dt.timedelta(days=WEEK_LENGTH_DAYS * offset))


def order_clause(newest_first: bool = True, alias: str = "") -> str:
    prefix = f"{alias}." if alias else ""
    template = ORDER_NEWEST_FIRST if newest_first else ORDER_OLDEST_FIRST
    return template.format(alias=prefix)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the search text matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _bound_units(value: Decimal, rounding: str) -> int:
    """Scale an amount bound to cents, rounding toward the inside of the range."""
    return int(value.scaleb(AMOUNT_FILTER_PLACES).to_integral_value(rounding=rounding))


def filter_conditions(filters: FilterSet) -> tuple[list[str], list[object]]:
    """Build AND-ed SQL conditions for a filter set.

    The conditions expect the filtered query's aliases: ``o`` for
    operations, ``src`` and ``dst`` for the source and destination accounts
    and ``c`` for the category.
    """
    conditions: list[str] = []
    params: list[object] = []

    # All types selected restricts nothing
    if filters.types and filters.types != set(OPERATION_TYPES):
        types = sorted(filters.types)
        conditions.append(f"o.type IN ({_placeholders(len(types))})")
        params.extend(types)

    if filters.account_ids:
        account_ids = sorted(filters.account_ids)
        marks = _placeholders(len(account_ids))
        conditions.append(f"(o.account_id IN ({marks}) OR o.to_account_id IN ({marks}))")
        params.extend(account_ids)
        params.extend(account_ids)

    if filters.category_ids:
        category_ids = sorted(filters.category_ids)
        conditions.append(f"o.category_id IN ({_placeholders(len(category_ids))})")
        params.extend(category_ids)

    if filters.amount_range is not None:
        if filters.amount_range.min is not None:
            conditions.append(f"{MINOR_UNITS_FUNCTION}(o.amount) >= ?")
            params.append(_bound_units(filters.amount_range.min, ROUND_CEILING))
        if filters.amount_range.max is not None:
            conditions.append(f"{MINOR_UNITS_FUNCTION}(o.amount) <= ?")
            params.append(_bound_units(filters.amount_range.max, ROUND_FLOOR))

    if filters.date_range is not None:
        if filters.date_range.start is not None:
            conditions.append("o.date >= ?")
            params.append(filters.date_range.start.isoformat())
        if filters.date_range.end is not None:
            conditions.append("o.date <= ?")
            params.append(filters.date_range.end.isoformat())

    if filters.search_text:
        pattern = f"%{escape_like(filters.search_text.casefold())}%"
        searchable = [
            "o.description",
            "o.amount",
            "src.name",
            "dst.name",
            "c.name",
        ]
        matches = [
            f"{SEARCH_FUNCTION}({column}) LIKE ? ESCAPE '{LIKE_ESCAPE}'"
            for column in searchable
        ]
        conditions.append("(" + " OR ".join(matches) + ")")
        params.extend([pattern] * len(searchable))

    return conditions, params
