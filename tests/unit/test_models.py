from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from monkeep.models import (
    UNSET,
    AmountRange,
    DateRange,
    FilterSet,
    OperationDTO,
    OperationPatch,
    OperationRecord,
)


def _expense(**overrides) -> OperationDTO:
    values = {
        "type": "expense",
        "amount": "25.50",
        "account_id": 1,
        "date": "2026-02-16",
        "category_id": "food",
    }
    values.update(overrides)
    return OperationDTO(**values)


def test_operation_dto_normalizes_inputs() -> None:
    operation = _expense(description="  Lunch  ")

    assert operation.amount == Decimal("25.50")
    assert operation.date == dt.date(2026, 2, 16)
    assert operation.description == "Lunch"
    assert operation.to_account_id is None


def test_operation_dto_accepts_datetime() -> None:
    operation = _expense(date=dt.datetime(2026, 2, 16, 8, 30))

    assert operation.date == dt.date(2026, 2, 16)


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": "0"},
        {"amount": "-5"},
        {"amount": "ten"},
        {"type": "refund"},
        {"date": "16/02/2026"},
        {"category_id": None},
        {"category_id": "   "},
        {"to_account_id": 2},
        {"exchange_rate": "1.1"},
    ],
)
def test_operation_dto_validation(overrides) -> None:
    with pytest.raises(ValueError):
        _expense(**overrides)


def test_transfer_requires_distinct_destination() -> None:
    with pytest.raises(ValueError):
        OperationDTO(type="transfer", amount="10", account_id=1, date="2026-02-16")
    with pytest.raises(ValueError):
        OperationDTO(
            type="transfer", amount="10", account_id=1, to_account_id=1, date="2026-02-16"
        )


def test_transfer_rejects_category() -> None:
    with pytest.raises(ValueError):
        OperationDTO(
            type="transfer",
            amount="10",
            account_id=1,
            to_account_id=2,
            category_id="food",
            date="2026-02-16",
        )


def test_transfer_keeps_exchange_fields() -> None:
    transfer = OperationDTO(
        type="transfer",
        amount="100",
        account_id=1,
        to_account_id="2",
        date="2026-02-16",
        destination_amount="92.00",
        exchange_rate="0.92",
    )

    assert transfer.to_account_id == 2
    assert transfer.destination_amount == Decimal("92.00")
    assert transfer.exchange_rate == Decimal("0.92")


def test_patch_tracks_only_provided_fields() -> None:
    patch = OperationPatch(amount=Decimal("75.00"), description=None)

    assert patch.changes() == {"amount": Decimal("75.00"), "description": None}
    assert patch.date is UNSET
    assert not UNSET


def test_patch_from_fields_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="created_at"):
        OperationPatch.from_fields(created_at="2026-01-01")


def test_patch_merge_validates_result() -> None:
    record = OperationRecord(
        id=7,
        type="expense",
        amount=Decimal("50.00"),
        accountId=1,
        categoryId="food",
        toAccountId=None,
        date=dt.date(2025, 1, 15),
        createdAt="2025-01-15T10:00:00.000000",
    )

    merged = OperationPatch(amount="75.00").merge(record)
    assert merged.amount == Decimal("75.00")
    assert merged.category_id == "food"

    with pytest.raises(ValueError):
        OperationPatch(type="transfer").merge(record)


def test_amount_range_bounds() -> None:
    assert AmountRange().is_empty()
    assert AmountRange(min="5").min == Decimal("5")
    with pytest.raises(ValueError):
        AmountRange(min="10", max="5")


def test_date_range_parses_strings() -> None:
    date_range = DateRange("2026-01-01", None)

    assert date_range.start == dt.date(2026, 1, 1)
    assert not date_range.is_empty()


def test_filter_set_build_drops_empty_ranges() -> None:
    filters = FilterSet.build()

    assert filters == FilterSet()
    assert filters.date_range is None
    assert filters.amount_range is None
    assert not filters.is_active()


def test_filter_set_is_active_per_dimension() -> None:
    assert FilterSet(types=frozenset({"expense"})).is_active()
    assert FilterSet.build(account_ids=["3"]).account_ids == frozenset({3})
    assert FilterSet.build(search_text="coffee").is_active()
    assert FilterSet.build(end_date="2026-01-01").is_active()
    assert FilterSet.build(max_amount="10").is_active()
    assert not FilterSet(search_text="   ").is_active()


def test_filter_set_rejects_unknown_type() -> None:
    with pytest.raises(ValueError):
        FilterSet(types=frozenset({"refund"}))
