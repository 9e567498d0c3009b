from __future__ import annotations

from decimal import Decimal
import itertools

import pytest

from monkeep import money


def test_normalize_pads_to_two_places() -> None:
    assert money.normalize("10") == "10.00"
    assert money.normalize(Decimal("3.1")) == "3.10"
    assert money.normalize(0) == "0.00"


def test_normalize_rounds_half_up() -> None:
    assert money.normalize("1.005") == "1.01"
    assert money.normalize("1.004") == "1.00"
    assert money.normalize("2.5", 0) == "3"
    assert money.normalize("-2.5", 0) == "-3"


def test_add_avoids_float_drift() -> None:
    assert money.add("0.10", "0.20") == "0.30"
    assert money.add("0.00", Decimal("-50.00")) == "-50.00"
    assert money.add("-0.05", "0.05") == "0.00"


def test_add_is_order_independent() -> None:
    deltas = [Decimal("0.015"), Decimal("-12.345"), Decimal("7.10"), Decimal("0.004")]
    results = set()
    for ordering in itertools.permutations(deltas):
        balance = "100.00"
        for delta in ordering:
            balance = money.add(balance, delta)
        results.add(balance)

    assert len(results) == 1


def test_add_zero_decimal_currency() -> None:
    assert money.add("1000", "250", 0) == "1250"


def test_float_input_is_parsed_through_string() -> None:
    assert money.to_minor_units(0.1 + 0.2) == 30


def test_from_minor_units_negative() -> None:
    assert money.from_minor_units(-5) == "-0.05"
    assert money.from_minor_units(0) == "0.00"


@pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", True])
def test_to_decimal_rejects_invalid_values(value) -> None:
    with pytest.raises(ValueError):
        money.to_decimal(value)


def test_decimal_places_validation() -> None:
    assert money.resolve_decimal_places(None) == 2
    assert money.resolve_decimal_places(0) == 0
    with pytest.raises(ValueError):
        money.resolve_decimal_places(3)


def test_decimal_places_for_currency_overrides() -> None:
    overrides = {"JPY": 0}

    assert money.decimal_places_for("JPY", overrides) == 0
    assert money.decimal_places_for("USD", overrides) == 2
    assert money.decimal_places_for(None, overrides) == 2
