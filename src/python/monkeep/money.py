"""Decimal-safe money arithmetic.

Balances and amounts are stored as fixed-precision decimal strings. All
arithmetic is done on integer minor units (cents for a two-place currency)
so repeated balance updates never accumulate floating-point drift.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Mapping, Union

from monkeep.schema import DEFAULT_DECIMAL_PLACES

ALLOWED_DECIMAL_PLACES = {0, 2}

MoneyValue = Union[Decimal, str, int, float]


def resolve_decimal_places(decimal_places: int | None) -> int:
    """Resolve decimal places using defaults when not provided."""
    if decimal_places is None:
        return DEFAULT_DECIMAL_PLACES
    if decimal_places not in ALLOWED_DECIMAL_PLACES:
        raise ValueError("decimal_places must be 0 or 2")
    return decimal_places


def decimal_places_for(currency: str | None, overrides: Mapping[str, int] | None = None) -> int:
    """Return the storage precision for a currency code."""
    if currency and overrides and currency in overrides:
        return resolve_decimal_places(int(overrides[currency]))
    return DEFAULT_DECIMAL_PLACES


def to_decimal(value: MoneyValue, field_name: str = "Amount") -> Decimal:
    """Parse a monetary value into a finite Decimal."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a decimal")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{field_name} must be a decimal") from exc
    if not amount.is_finite():
        raise ValueError(f"{field_name} must be a finite decimal")
    return amount


def to_minor_units(value: MoneyValue, decimal_places: int = DEFAULT_DECIMAL_PLACES) -> int:
    """Convert an amount to integer minor units, rounding half up."""
    places = resolve_decimal_places(decimal_places)
    scaled = to_decimal(value).scaleb(places)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(units: int, decimal_places: int = DEFAULT_DECIMAL_PLACES) -> str:
    """Format integer minor units as a fixed-precision decimal string."""
    places = resolve_decimal_places(decimal_places)
    return f"{Decimal(units).scaleb(-places):.{places}f}"


def normalize(value: MoneyValue, decimal_places: int = DEFAULT_DECIMAL_PLACES) -> str:
    """Round an amount to its storage string at the given precision."""
    return from_minor_units(to_minor_units(value, decimal_places), decimal_places)


def add(
    balance: MoneyValue,
    delta: MoneyValue,
    decimal_places: int = DEFAULT_DECIMAL_PLACES,
) -> str:
    """Add a signed delta to a balance and return the new balance string.

    Each operand is rounded to minor units independently before summing, so
    applying the same set of deltas in any order yields the same string.
    """
    total = to_minor_units(balance, decimal_places) + to_minor_units(delta, decimal_places)
    return from_minor_units(total, decimal_places)
