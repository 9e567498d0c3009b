"""Domain models and data transfer objects."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import datetime as dt
from decimal import Decimal
from typing import Any, Iterable

from monkeep.money import to_decimal
from monkeep.schema import OPERATION_TYPES, PATCH_COLUMNS


class _Unset:
    """Marker for patch fields that were not provided."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _ensure_date(value: dt.date | dt.datetime | str, field_name: str = "Date") -> dt.date:
    """Normalize a date, datetime or ISO string to a date."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError(f"{field_name} must be YYYY-MM-DD") from exc
    raise ValueError(f"{field_name} must be a datetime.date")


def _ensure_optional_date(value: dt.date | str | None, field_name: str) -> dt.date | None:
    if value is None:
        return None
    return _ensure_date(value, field_name)


def _ensure_positive(value: Decimal | str | int | float, field_name: str) -> Decimal:
    """Parse and validate positive decimal values."""
    amount = to_decimal(value, field_name)
    if amount <= Decimal("0"):
        raise ValueError(f"{field_name} must be greater than zero")
    return amount


def _ensure_optional_positive(value: Any, field_name: str) -> Decimal | None:
    if value is None or value == "":
        return None
    return _ensure_positive(value, field_name)


def _ensure_key(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be an integer") from exc


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


@dataclass(frozen=True)
class OperationDTO:
    """Validated operation input for persistence.

    Enforces the per-type field requirements before anything reaches the
    ledger: expense and income need a category and no destination account,
    transfers need a destination account different from the source and no
    category.
    """

    type: str
    amount: Decimal
    account_id: int
    date: dt.date
    category_id: str | None = None
    to_account_id: int | None = None
    description: str | None = None
    exchange_rate: Decimal | None = None
    destination_amount: Decimal | None = None
    source_currency: str | None = None
    destination_currency: str | None = None

    def __post_init__(self) -> None:
        if self.type not in OPERATION_TYPES:
            raise ValueError(
                f"Operation type must be one of {', '.join(OPERATION_TYPES)}"
            )
        object.__setattr__(self, "amount", _ensure_positive(self.amount, "Amount"))
        object.__setattr__(self, "account_id", _ensure_key(self.account_id, "Account"))
        object.__setattr__(self, "date", _ensure_date(self.date))
        object.__setattr__(self, "description", _clean_text(self.description))
        object.__setattr__(self, "category_id", _clean_text(self.category_id))
        object.__setattr__(
            self,
            "exchange_rate",
            _ensure_optional_positive(self.exchange_rate, "Exchange rate"),
        )
        object.__setattr__(
            self,
            "destination_amount",
            _ensure_optional_positive(self.destination_amount, "Destination amount"),
        )
        object.__setattr__(self, "source_currency", _clean_text(self.source_currency))
        object.__setattr__(
            self, "destination_currency", _clean_text(self.destination_currency)
        )

        if self.type == "transfer":
            if self.to_account_id is None:
                raise ValueError("Destination account is required for transfers")
            object.__setattr__(
                self, "to_account_id", _ensure_key(self.to_account_id, "Destination account")
            )
            if self.to_account_id == self.account_id:
                raise ValueError("Source and destination accounts must differ")
            if self.category_id is not None:
                raise ValueError("Transfers must not have a category")
        else:
            if self.category_id is None:
                raise ValueError(f"Category is required for {self.type}")
            if self.to_account_id is not None:
                raise ValueError("Destination account is only allowed for transfers")
            if self.destination_amount is not None or self.exchange_rate is not None:
                raise ValueError("Exchange fields are only allowed for transfers")


@dataclass(frozen=True)
class OperationPatch:
    """Partial update for an operation.

    Only fields that were explicitly provided are written; everything left
    as ``UNSET`` keeps its stored value. ``None`` clears a nullable field.
    """

    type: Any = UNSET
    amount: Any = UNSET
    account_id: Any = UNSET
    category_id: Any = UNSET
    to_account_id: Any = UNSET
    date: Any = UNSET
    description: Any = UNSET
    exchange_rate: Any = UNSET
    destination_amount: Any = UNSET
    source_currency: Any = UNSET
    destination_currency: Any = UNSET

    @classmethod
    def from_fields(cls, **values: Any) -> "OperationPatch":
        """Build a patch from keyword arguments, rejecting unknown names."""
        unknown = sorted(set(values) - set(PATCH_COLUMNS))
        if unknown:
            raise ValueError(f"Unknown operation fields: {', '.join(unknown)}")
        return cls(**values)

    def changes(self) -> dict[str, Any]:
        """Return provided fields keyed by field name."""
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not UNSET
        }

    def merge(self, record: "OperationRecord") -> OperationDTO:
        """Overlay this patch on a stored record and validate the result."""
        current = {
            "type": record.type,
            "amount": record.amount,
            "account_id": record.accountId,
            "category_id": record.categoryId,
            "to_account_id": record.toAccountId,
            "date": record.date,
            "description": record.description,
            "exchange_rate": record.exchangeRate,
            "destination_amount": record.destinationAmount,
            "source_currency": record.sourceCurrency,
            "destination_currency": record.destinationCurrency,
        }
        current.update(self.changes())
        return OperationDTO(**current)


@dataclass(frozen=True)
class OperationRecord:
    """Persisted operation in its application-facing shape."""

    id: int
    type: str
    amount: Decimal
    accountId: int
    categoryId: str | None
    toAccountId: int | None
    date: dt.date
    createdAt: str
    description: str | None = None
    exchangeRate: Decimal | None = None
    destinationAmount: Decimal | None = None
    sourceCurrency: str | None = None
    destinationCurrency: str | None = None


@dataclass(frozen=True)
class AccountRecord:
    """Reference record for an account with its running balance.

    Attributes:
        id: Internal database key for the account
        name: Display name of the account
        currency: Currency code for the account
        balance: Current balance as a fixed-precision decimal string
    """

    id: int
    name: str
    currency: str
    balance: str
    createdAt: str | None = None
    updatedAt: str | None = None


@dataclass(frozen=True)
class CategoryRecord:
    """Reference record for a category."""

    id: str
    name: str
    type: str
    categoryType: str
    parentId: str | None = None
    isShadow: bool = False


@dataclass(frozen=True)
class CategoryTotal:
    """Summed operation amounts for one category."""

    categoryId: str
    total: Decimal


@dataclass(frozen=True)
class MonthRecord:
    """A calendar month that has operations. ``month`` is 0-based."""

    year: int
    month: int


@dataclass(frozen=True)
class DateRange:
    """Inclusive date bounds; either side may be open."""

    start: dt.date | None = None
    end: dt.date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", _ensure_optional_date(self.start, "Start date"))
        object.__setattr__(self, "end", _ensure_optional_date(self.end, "End date"))

    def is_empty(self) -> bool:
        return self.start is None and self.end is None


@dataclass(frozen=True)
class AmountRange:
    """Inclusive bounds on the stored (positive) operation amount."""

    min: Decimal | None = None
    max: Decimal | None = None

    def __post_init__(self) -> None:
        if self.min is not None:
            object.__setattr__(self, "min", to_decimal(self.min, "Minimum amount"))
        if self.max is not None:
            object.__setattr__(self, "max", to_decimal(self.max, "Maximum amount"))
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("Minimum amount must not exceed maximum amount")

    def is_empty(self) -> bool:
        return self.min is None and self.max is None


@dataclass(frozen=True)
class FilterSet:
    """Conjunctive filter over operations. Empty values do not restrict."""

    types: frozenset[str] = field(default_factory=frozenset)
    account_ids: frozenset[int] = field(default_factory=frozenset)
    category_ids: frozenset[str] = field(default_factory=frozenset)
    search_text: str = ""
    date_range: DateRange | None = None
    amount_range: AmountRange | None = None

    def __post_init__(self) -> None:
        types = frozenset(self.types or ())
        invalid = sorted(types - set(OPERATION_TYPES))
        if invalid:
            raise ValueError(f"Unknown operation types: {', '.join(invalid)}")
        object.__setattr__(self, "types", types)
        object.__setattr__(
            self,
            "account_ids",
            frozenset(_ensure_key(value, "Account") for value in self.account_ids or ()),
        )
        object.__setattr__(
            self, "category_ids", frozenset(str(value) for value in self.category_ids or ())
        )
        object.__setattr__(self, "search_text", (self.search_text or "").strip())

    @classmethod
    def build(
        cls,
        types: Iterable[str] | None = None,
        account_ids: Iterable[int] | None = None,
        category_ids: Iterable[str] | None = None,
        search_text: str | None = None,
        start_date: dt.date | str | None = None,
        end_date: dt.date | str | None = None,
        min_amount: Decimal | str | None = None,
        max_amount: Decimal | str | None = None,
    ) -> "FilterSet":
        """Build a filter set from flat optional values."""
        date_range = DateRange(start_date, end_date)
        amount_range = AmountRange(min_amount, max_amount)
        return cls(
            types=frozenset(types or ()),
            account_ids=frozenset(account_ids or ()),
            category_ids=frozenset(category_ids or ()),
            search_text=search_text or "",
            date_range=None if date_range.is_empty() else date_range,
            amount_range=None if amount_range.is_empty() else amount_range,
        )

    def is_active(self) -> bool:
        """Return True when at least one dimension restricts results."""
        return bool(
            self.types
            or self.account_ids
            or self.category_ids
            or self.search_text
            or (self.date_range is not None and not self.date_range.is_empty())
            or (self.amount_range is not None and not self.amount_range.is_empty())
        )
