from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from monkeep.models import FilterSet
from monkeep.pagination import (
    Window,
    escape_like,
    filter_conditions,
    order_clause,
    week_window,
    window_ending,
    window_starting,
)

TODAY = dt.date(2026, 3, 18)


def test_week_zero_ends_today() -> None:
    assert week_window(0, TODAY) == Window(dt.date(2026, 3, 12), TODAY)


def test_week_offset_steps_back_seven_days() -> None:
    assert week_window(1, TODAY) == Window(dt.date(2026, 3, 5), dt.date(2026, 3, 11))
    assert week_window(4, TODAY).end == TODAY - dt.timedelta(days=28)


def test_consecutive_weeks_are_disjoint_and_contiguous() -> None:
    for offset in range(10):
        newer = week_window(offset, TODAY)
        older = week_window(offset + 1, TODAY)
        assert older.end < newer.start
        assert older.end + dt.timedelta(days=1) == newer.start
        assert (newer.end - newer.start).days == 6


def test_negative_offset_raises() -> None:
    with pytest.raises(ValueError):
        week_window(-1, TODAY)


def test_windows_anchored_on_dates() -> None:
    assert window_ending(dt.date(2025, 1, 3)) == Window(dt.date(2024, 12, 28), dt.date(2025, 1, 3))
    assert window_starting(dt.date(2024, 12, 28)) == Window(dt.date(2024, 12, 28), dt.date(2025, 1, 3))


def test_order_clause() -> None:
    assert order_clause() == "ORDER BY date DESC, created_at DESC, id DESC"
    assert order_clause(newest_first=False, alias="o") == (
        "ORDER BY o.date ASC, o.created_at ASC, o.id ASC"
    )


def test_escape_like() -> None:
    assert escape_like("50%_off") == "50\\%\\_off"
    assert escape_like("a\\b") == "a\\\\b"


def test_empty_filter_set_has_no_conditions() -> None:
    assert filter_conditions(FilterSet()) == ([], [])


def test_all_types_selected_adds_no_clause() -> None:
    conditions, params = filter_conditions(
        FilterSet(types=frozenset({"expense", "income", "transfer"}))
    )

    assert conditions == []
    assert params == []


def test_type_subset() -> None:
    conditions, params = filter_conditions(FilterSet(types=frozenset({"income", "expense"})))

    assert conditions == ["o.type IN (?, ?)"]
    assert params == ["expense", "income"]


def test_account_filter_matches_source_or_destination() -> None:
    conditions, params = filter_conditions(FilterSet(account_ids=frozenset({2, 1})))

    assert conditions == ["(o.account_id IN (?, ?) OR o.to_account_id IN (?, ?))"]
    assert params == [1, 2, 1, 2]


def test_amount_and_date_ranges() -> None:
    filters = FilterSet.build(
        min_amount=Decimal("10"),
        max_amount=Decimal("20.50"),
        start_date="2026-01-01",
        end_date="2026-01-31",
    )

    conditions, params = filter_conditions(filters)

    assert conditions == [
        "minor_units(o.amount) >= ?",
        "minor_units(o.amount) <= ?",
        "o.date >= ?",
        "o.date <= ?",
    ]
    assert params == [1000, 2050, "2026-01-01", "2026-01-31"]


def test_search_is_casefolded_and_spans_joined_names() -> None:
    conditions, params = filter_conditions(FilterSet(search_text="  CAFÉ  "))

    assert len(conditions) == 1
    assert "src.name" in conditions[0]
    assert "dst.name" in conditions[0]
    assert "c.name" in conditions[0]
    assert params == ["%café%"] * 5


def test_amount_bounds_round_toward_the_range() -> None:
    conditions, params = filter_conditions(
        FilterSet.build(min_amount="10.005", max_amount="20.509")
    )

    assert conditions == ["minor_units(o.amount) >= ?", "minor_units(o.amount) <= ?"]
    assert params == [1001, 2050]
