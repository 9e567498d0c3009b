"""Client orchestration layer for Monkeep."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Iterator, TypeVar
import datetime as dt
from decimal import Decimal
import json
import logging
import os

from monkeep import money
from monkeep.exceptions import NotFoundError
from monkeep.forex import ForexRateManager
from monkeep.models import (
    AccountRecord,
    CategoryRecord,
    CategoryTotal,
    FilterSet,
    MonthRecord,
    OperationDTO,
    OperationPatch,
    OperationRecord,
)
from monkeep.pagination import week_window, window_ending, window_starting
from monkeep.persistence import PersistenceBackend
from monkeep.repository import Repository

T = TypeVar("T")

# Configure logging
logger = logging.getLogger(__name__)
log_level = os.environ.get('LOGGING_LEVEL', 'INFO').upper()
logger.setLevel(getattr(logging, log_level, logging.INFO))
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    logger.addHandler(handler)

CONFIG_ENV_VAR = "MONKEEP_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".monkeep" / "monkeep-config.json"
DEFAULT_FOREX_TTL_HOURS = 1
DEFAULT_FOREX_CACHE_NAME = "forex-rates.json"
EXCHANGE_RATE_QUANTUM = Decimal("0.000001")
EXCHANGE_FIELDS = ("exchange_rate", "destination_amount", "source_currency", "destination_currency")
# Patch fields that change which accounts a transfer moves money between
RETARGET_FIELDS = frozenset({"type", "account_id", "to_account_id"})


def _stored_exchange(record: OperationRecord) -> dict[str, Any]:
    return {
        "exchange_rate": record.exchangeRate,
        "destination_amount": record.destinationAmount,
        "source_currency": record.sourceCurrency,
        "destination_currency": record.destinationCurrency,
    }


class MonkeepClient:
    """Coordinate ledger mutations, paging queries and reference lookups."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        repository: PersistenceBackend | None = None,
        strict_references: bool | None = None,
        enable_forex_rates: bool = True,
        clock: Callable[[], dt.date] | None = None,
        now: Callable[[], dt.datetime] | None = None,
        config_path: str | Path | None = None,
    ) -> None:
        """Initialize the client with a repository backend.

        Args:
            db_path: Path to the SQLite database
            repository: Optional custom persistence backend
            strict_references: Abort a mutation when a balance update points
                at a missing account instead of logging and skipping it
            enable_forex_rates: Whether to fetch rates for cross-currency
                transfers that carry neither a rate nor a destination amount
            clock: Returns "today" for week windows, defaults to the local date
            now: Timestamp source for created_at and updated_at stamps
            config_path: Optional JSON config file
        """
        self.config = self._load_config(config_path)
        self.db_path = self._resolve_db_path(db_path, repository)
        if strict_references is None:
            strict_references = bool(self.config.get("strict_references", False))
        self.strict_references = strict_references
        self.currency_decimal_places = dict(self.config.get("currency_decimal_places", {}))
        self.repository = repository or Repository(
            self.db_path,
            strict_references=strict_references,
            currency_decimal_places=self.currency_decimal_places,
            now=now,
        )
        self.clock = clock or dt.date.today
        self.enable_forex_rates = enable_forex_rates
        self._forex_manager = None
        if self.enable_forex_rates:
            self._forex_manager = ForexRateManager(
                config=self.config.get("forex", {"cache_ttl_hours": DEFAULT_FOREX_TTL_HOURS}),
                cache_path=self._derive_cache_path(),
            )

    def __enter__(self) -> "MonkeepClient":
        """Open the repository connection and make sure the schema exists."""
        self.repository.connect()
        self.repository.initialize_schema()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Close the repository connection."""
        self.close()

    def close(self) -> None:
        """Close the repository connection."""
        self.repository.close()

    @staticmethod
    def _load_config(config_path: str | Path | None) -> dict:
        """Load config file if present, else return empty config."""
        if config_path is None:
            config_path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
        path = Path(config_path)
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            return {}
        return payload

    def _resolve_db_path(
        self,
        db_path: str | Path | None,
        repository: PersistenceBackend | None,
    ) -> Path:
        """Resolve the database path from arguments or config."""
        if repository is not None and db_path is None:
            return Path("")
        if db_path is not None:
            return Path(db_path)
        resolved = self.config.get("db_path")
        if not resolved:
            raise ValueError("db_path is required when the config file does not set one")
        return Path(resolved).expanduser()

    def _derive_cache_path(self) -> Path:
        """Place the forex cache next to the database."""
        if not str(self.db_path):
            return Path(DEFAULT_FOREX_CACHE_NAME)
        return Path(self.db_path).parent / DEFAULT_FOREX_CACHE_NAME

    def _run_transaction(self, action: Callable[[], T]) -> T:
        """Run repository work as one unit of work.

        Everything done by ``action`` commits together or, if it raises,
        rolls back together and the exception propagates.
        """
        with self.repository.transaction():
            return action()

    def _today(self) -> dt.date:
        return self.clock()

    @staticmethod
    def _parse_date(value: dt.date | str, label: str) -> dt.date:
        """Parse a date argument."""
        if isinstance(value, dt.datetime):
            return value.date()
        if isinstance(value, dt.date):
            return value
        try:
            return dt.date.fromisoformat(str(value))
        except ValueError as exc:
            raise ValueError(f"{label} must be YYYY-MM-DD") from exc

    # Reference data

    def add_account(
        self,
        name: str,
        currency: str = "USD",
        balance: Decimal | str = "0",
    ) -> AccountRecord:
        """Create an account with an opening balance."""
        return self._run_transaction(
            lambda: self.repository.insert_account(name, currency=currency, balance=balance)
        )

    def get_account(self, account_id: int) -> AccountRecord:
        return self.repository.get_account(account_id)

    def list_accounts(self) -> list[AccountRecord]:
        return self.repository.list_accounts()

    def add_category(
        self,
        category_id: str,
        name: str,
        category_type: str,
        kind: str = "entry",
        parent_id: str | None = None,
        is_shadow: bool = False,
    ) -> CategoryRecord:
        """Create a category lookup row."""
        return self._run_transaction(
            lambda: self.repository.insert_category(
                category_id,
                name,
                category_type,
                kind=kind,
                parent_id=parent_id,
                is_shadow=is_shadow,
            )
        )

    def list_categories(self) -> list[CategoryRecord]:
        return self.repository.list_categories()

    # Ledger mutations

    def create_operation(self, operation: OperationDTO) -> OperationRecord:
        """Record an operation together with its balance effect."""

        def action() -> OperationRecord:
            self._validate_category(operation)
            resolved = self._resolve_transfer_amounts(operation)
            return self.repository.insert_operation(resolved)

        record = self._run_transaction(action)
        logger.info("Created %s operation %s", record.type, record.id)
        return record

    def update_operation(
        self,
        key: int,
        patch: OperationPatch | None = None,
        **fields: Any,
    ) -> OperationRecord:
        """Apply a partial update and rebalance the affected accounts.

        Pass either an OperationPatch or the changed fields as keyword
        arguments. Passing ``None`` for a field clears it.
        """
        if patch is not None and fields:
            raise ValueError("Provide a patch or field keywords, not both")
        if patch is None:
            patch = OperationPatch.from_fields(**fields)

        def action() -> OperationRecord:
            old = self.repository.get_operation(key)
            provided = patch.changes()
            merged = self._clear_stale_exchange(patch, provided, old).merge(old)
            self._validate_category(merged)

            if (
                merged.type == "transfer"
                and "amount" in provided
                and "destination_amount" not in provided
                and merged.exchange_rate is not None
            ):
                # Amount edits keep the stored rate and recompute the credit
                merged = replace(merged, destination_amount=None)
            resolved = self._resolve_transfer_amounts(merged)

            names = set(provided)
            stored = _stored_exchange(old)
            for name in EXCHANGE_FIELDS:
                if getattr(resolved, name) != stored[name]:
                    names.add(name)
            normalized = OperationPatch(**{name: getattr(resolved, name) for name in names})
            return self.repository.update_operation(key, normalized)

        record = self._run_transaction(action)
        logger.info("Updated operation %s", key)
        return record

    def delete_operation(self, key: int) -> None:
        """Remove an operation and reverse its balance effect."""
        self._run_transaction(lambda: self.repository.delete_operation(key))
        logger.info("Deleted operation %s", key)

    def _validate_category(self, operation: OperationDTO) -> None:
        """Reject categories that are missing or are folders."""
        if operation.category_id is None:
            return
        category = self.repository.get_category(operation.category_id)
        if category.type == "folder":
            raise ValueError(f"Category {category.name!r} is a folder and cannot hold operations")

    @staticmethod
    def _clear_stale_exchange(
        patch: OperationPatch,
        provided: dict[str, Any],
        old: OperationRecord,
    ) -> OperationPatch:
        """Drop stored exchange fields that no longer describe the operation.

        They are kept only while the operation stays a transfer between the
        same two accounts. Exchange fields passed in the patch always win.
        """
        still_transfer = provided.get("type", old.type) == "transfer"
        if still_transfer and not RETARGET_FIELDS & provided.keys():
            return patch
        cleared = {name: None for name in EXCHANGE_FIELDS if name not in provided}
        return replace(patch, **cleared)

    def _find_account(self, account_id: int | None) -> AccountRecord | None:
        if account_id is None:
            return None
        try:
            return self.repository.get_account(account_id)
        except NotFoundError:
            return None

    def _resolve_transfer_amounts(self, operation: OperationDTO) -> OperationDTO:
        """Fill exchange fields for transfers between accounts in different currencies.

        Transfers touching unknown accounts are returned unchanged. Transfers
        within one currency carry no exchange fields and credit ``amount``.
        """
        if operation.type != "transfer":
            return operation
        source = self._find_account(operation.account_id)
        destination = self._find_account(operation.to_account_id)
        if source is None or destination is None:
            return operation
        if source.currency == destination.currency:
            return replace(operation, **{name: None for name in EXCHANGE_FIELDS})

        source_currency = operation.source_currency or source.currency
        destination_currency = operation.destination_currency or destination.currency
        rate = operation.exchange_rate
        destination_amount = operation.destination_amount
        if destination_amount is None:
            if rate is None:
                rate = self._get_forex_rate(source_currency, destination_currency)
            places = money.decimal_places_for(destination.currency, self.currency_decimal_places)
            destination_amount = Decimal(money.normalize(operation.amount * rate, places))
        elif rate is None:
            rate = (destination_amount / operation.amount).quantize(EXCHANGE_RATE_QUANTUM)

        logger.debug(
            "Resolved transfer %s %s -> %s %s at rate %s",
            operation.amount,
            source_currency,
            destination_amount,
            destination_currency,
            rate,
        )
        return replace(
            operation,
            exchange_rate=rate,
            destination_amount=destination_amount,
            source_currency=source_currency,
            destination_currency=destination_currency,
        )

    def _get_forex_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """Get the forex rate between two currencies."""
        if not self._forex_manager:
            raise ValueError(
                "Cross-currency transfers need an exchange rate or destination amount"
            )
        rate = self._forex_manager.get_rate(from_currency, to_currency)
        if rate is None:
            raise ValueError(f"No exchange rate available for {from_currency} to {to_currency}")
        return rate.quantize(EXCHANGE_RATE_QUANTUM)

    # Operation reads

    def get_operation(self, key: int) -> OperationRecord:
        return self.repository.get_operation(key)

    def operation_exists(self, key: int) -> bool:
        return self.repository.operation_exists(key)

    def list_operations(self) -> list[OperationRecord]:
        """List every operation, newest first."""
        return self.repository.list_operations()

    def list_operations_by_account(self, account_id: int) -> list[OperationRecord]:
        """List operations where the account is source or destination."""
        return self.repository.list_operations(account_id=account_id)

    def list_operations_by_category(self, category_id: str) -> list[OperationRecord]:
        return self.repository.list_operations(category_id=category_id)

    def list_operations_by_type(self, operation_type: str) -> list[OperationRecord]:
        return self.repository.list_operations(operation_type=operation_type)

    def list_operations_by_date_range(
        self,
        start_date: dt.date | str,
        end_date: dt.date | str,
    ) -> list[OperationRecord]:
        return self.repository.list_operations(
            start_date=self._parse_date(start_date, "Start date"),
            end_date=self._parse_date(end_date, "End date"),
        )

    # Weekly paging

    def get_operations_by_week_offset(self, offset: int) -> list[OperationRecord]:
        """Operations in the 7-day window ``offset`` weeks before today."""
        return self.repository.list_operations_in_window(week_window(offset, self._today()))

    def get_filtered_operations_by_week_offset(
        self,
        offset: int,
        filters: FilterSet | None = None,
    ) -> list[OperationRecord]:
        return self.repository.list_operations_in_window(
            week_window(offset, self._today()), filters or FilterSet()
        )

    def get_operations_by_week_from_date(self, end_date: dt.date | str) -> list[OperationRecord]:
        """Operations in the 7-day window ending on ``end_date``."""
        window = window_ending(self._parse_date(end_date, "End date"))
        return self.repository.list_operations_in_window(window)

    def get_filtered_operations_by_week_from_date(
        self,
        end_date: dt.date | str,
        filters: FilterSet | None = None,
    ) -> list[OperationRecord]:
        window = window_ending(self._parse_date(end_date, "End date"))
        return self.repository.list_operations_in_window(window, filters or FilterSet())

    def get_operations_by_week_to_date(self, start_date: dt.date | str) -> list[OperationRecord]:
        """Operations in the 7-day window starting on ``start_date``."""
        window = window_starting(self._parse_date(start_date, "Start date"))
        return self.repository.list_operations_in_window(window)

    def get_filtered_operations_by_week_to_date(
        self,
        start_date: dt.date | str,
        filters: FilterSet | None = None,
    ) -> list[OperationRecord]:
        window = window_starting(self._parse_date(start_date, "Start date"))
        return self.repository.list_operations_in_window(window, filters or FilterSet())

    def get_next_oldest_operation(self, before: dt.date | str) -> OperationRecord | None:
        """Most recent operation dated strictly before ``before``."""
        return self.repository.find_operation_before(self._parse_date(before, "Date"))

    def get_next_oldest_filtered_operation(
        self,
        before: dt.date | str,
        filters: FilterSet | None = None,
    ) -> OperationRecord | None:
        return self.repository.find_operation_before(
            self._parse_date(before, "Date"), filters or FilterSet()
        )

    def get_next_newest_operation(self, after: dt.date | str) -> OperationRecord | None:
        """Oldest operation dated strictly after ``after``."""
        return self.repository.find_operation_after(self._parse_date(after, "Date"))

    def get_next_newest_filtered_operation(
        self,
        after: dt.date | str,
        filters: FilterSet | None = None,
    ) -> OperationRecord | None:
        return self.repository.find_operation_after(
            self._parse_date(after, "Date"), filters or FilterSet()
        )

    def load_more_operations(
        self,
        oldest_loaded: dt.date | str | None = None,
        filters: FilterSet | None = None,
    ) -> list[OperationRecord]:
        """Return the next older page, or an empty list when none is left.

        With nothing loaded yet the search starts before today. Active
        filters take the filtered path; anything else the plain one.
        """
        before = self._today() if oldest_loaded is None else self._parse_date(oldest_loaded, "Date")
        active = filters if filters is not None and filters.is_active() else None
        anchor = self.repository.find_operation_before(before, active)
        if anchor is None:
            return []
        return self.repository.list_operations_in_window(window_ending(anchor.date), active)

    def iter_pages(self, filters: FilterSet | None = None) -> Iterator[list[OperationRecord]]:
        """Walk every operation newest to oldest, one anchored week at a time.

        Each page is the week ending on the next-oldest operation's date, so
        no operation is skipped or repeated across page boundaries. Calling
        again with a different filter set starts a fresh walk.
        """
        active = filters if filters is not None and filters.is_active() else None
        anchor = self.repository.find_operation_before(dt.date.max, active)
        while anchor is not None:
            page = self.repository.list_operations_in_window(window_ending(anchor.date), active)
            if not page:
                break
            yield page
            anchor = self.repository.find_operation_before(page[-1].date, active)

    # Reports

    def get_spending_by_category_and_currency(
        self,
        currency: str,
        start_date: dt.date | str,
        end_date: dt.date | str,
    ) -> list[CategoryTotal]:
        """Expense totals per category for accounts in one currency."""
        return self.repository.sum_by_category(
            "expense",
            self._parse_date(start_date, "Start date"),
            self._parse_date(end_date, "End date"),
            currency=currency,
        )

    def get_income_by_category_and_currency(
        self,
        currency: str,
        start_date: dt.date | str,
        end_date: dt.date | str,
    ) -> list[CategoryTotal]:
        """Income totals per category for accounts in one currency."""
        return self.repository.sum_by_category(
            "income",
            self._parse_date(start_date, "Start date"),
            self._parse_date(end_date, "End date"),
            currency=currency,
        )

    def get_spending_by_category(
        self,
        start_date: dt.date | str,
        end_date: dt.date | str,
    ) -> list[CategoryTotal]:
        return self.repository.sum_by_category(
            "expense",
            self._parse_date(start_date, "Start date"),
            self._parse_date(end_date, "End date"),
        )

    def get_income_by_category(
        self,
        start_date: dt.date | str,
        end_date: dt.date | str,
    ) -> list[CategoryTotal]:
        return self.repository.sum_by_category(
            "income",
            self._parse_date(start_date, "Start date"),
            self._parse_date(end_date, "End date"),
        )

    def get_total_expenses(
        self,
        account_id: int,
        start_date: dt.date | str,
        end_date: dt.date | str,
    ) -> Decimal:
        return self.repository.sum_for_account(
            account_id,
            "expense",
            self._parse_date(start_date, "Start date"),
            self._parse_date(end_date, "End date"),
        )

    def get_total_income(
        self,
        account_id: int,
        start_date: dt.date | str,
        end_date: dt.date | str,
    ) -> Decimal:
        return self.repository.sum_for_account(
            account_id,
            "income",
            self._parse_date(start_date, "Start date"),
            self._parse_date(end_date, "End date"),
        )

    def get_available_months(self) -> list[MonthRecord]:
        """Months with operations, newest first, ``month`` 0-based."""
        return self.repository.get_available_months()

    def get_today_adjustment_operation(self, account_id: int) -> OperationRecord | None:
        """Latest balance adjustment booked today on an account."""
        return self.repository.get_adjustment_operation(account_id, self._today())
