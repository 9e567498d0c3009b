"""SQLite repository implementation for Monkeep."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Mapping
import datetime as dt
from decimal import Decimal
import logging
import sqlite3

from monkeep import money
from monkeep.exceptions import NotFoundError, ReferentialGapError
from monkeep.ledger import (
    BalanceChanges,
    calculate_balance_changes,
    merge_changes,
    negate_changes,
)
from monkeep.mapper import map_operation_row, map_operation_rows
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
from monkeep.pagination import (
    AMOUNT_FILTER_PLACES,
    MINOR_UNITS_FUNCTION,
    SEARCH_FUNCTION,
    Window,
    filter_conditions,
    order_clause,
)
from monkeep.persistence import PersistenceBackend
from monkeep.schema import (
    DEFAULT_BALANCE,
    DEFAULT_CURRENCY,
    PATCH_COLUMNS,
    SCHEMA_STATEMENTS,
    TIMESTAMP_FORMAT,
)

logger = logging.getLogger(__name__)

FILTERED_OPERATIONS_QUERY = """
    SELECT o.*
    FROM operations AS o
    LEFT JOIN accounts AS src ON src.id = o.account_id
    LEFT JOIN accounts AS dst ON dst.id = o.to_account_id
    LEFT JOIN categories AS c ON c.id = o.category_id
"""

_AMOUNT_PATCH_FIELDS = {"amount", "destination_amount", "exchange_rate"}


def _casefold(value: Any) -> str | None:
    """SQL helper for case-insensitive search beyond ASCII."""
    if value is None:
        return None
    return str(value).casefold()


def _minor_units(value: Any) -> int | None:
    """SQL helper comparing stored amount strings as integer cents."""
    if value is None:
        return None
    return money.to_minor_units(value, AMOUNT_FILTER_PLACES)


class Repository(PersistenceBackend):
    """SQLite-backed persistence implementation.

    Write methods expect to run inside ``transaction()``; they never commit
    on their own.
    """

    def __init__(
        self,
        db_path: str | Path,
        strict_references: bool = False,
        currency_decimal_places: Mapping[str, int] | None = None,
        now: Callable[[], dt.datetime] | None = None,
    ) -> None:
        """Create a repository for the given database path."""
        self.db_path = Path(db_path)
        self.strict_references = strict_references
        self.currency_decimal_places = dict(currency_decimal_places or {})
        self._now = now or dt.datetime.now
        self.connection: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open the database connection."""
        if self.connection is None:
            self.connection = sqlite3.connect(self.db_path, isolation_level=None)
            self.connection.row_factory = sqlite3.Row
            self.connection.create_function(SEARCH_FUNCTION, 1, _casefold, deterministic=True)
            self.connection.create_function(
                MINOR_UNITS_FUNCTION, 1, _minor_units, deterministic=True
            )

    def close(self) -> None:
        """Close the database connection."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def begin_transaction(self) -> None:
        """Begin a database transaction."""
        self._ensure_connection()
        self.connection.execute("BEGIN")

    def commit(self) -> None:
        """Commit the current transaction."""
        self._ensure_connection()
        self.connection.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self._ensure_connection()
        self.connection.rollback()

    def initialize_schema(self) -> None:
        """Create tables and indexes when they do not exist yet."""
        self._ensure_connection()
        for statement in SCHEMA_STATEMENTS:
            self.connection.execute(statement)

    def query_all(self, sql: str, params: tuple | list = ()) -> list[sqlite3.Row]:
        """Return every row produced by a statement."""
        self._ensure_connection()
        return self.connection.execute(sql, params).fetchall()

    def query_first(self, sql: str, params: tuple | list = ()) -> sqlite3.Row | None:
        """Return the first row produced by a statement, or None."""
        self._ensure_connection()
        return self.connection.execute(sql, params).fetchone()

    def execute(self, sql: str, params: tuple | list = ()) -> int:
        """Execute a write statement and return the last inserted row id."""
        self._ensure_connection()
        cursor = self.connection.execute(sql, params)
        return int(cursor.lastrowid or 0)

    # Accounts and categories

    def insert_account(
        self,
        name: str,
        currency: str = DEFAULT_CURRENCY,
        balance: Decimal | str = DEFAULT_BALANCE,
    ) -> AccountRecord:
        """Insert a new account row and return the record."""
        if not name or not name.strip():
            raise ValueError("Account name is required")
        timestamp = self._timestamp()
        normalized = money.normalize(balance, self._decimal_places(currency))
        account_id = self.execute(
            """
            INSERT INTO accounts (name, balance, currency, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (name.strip(), normalized, currency, timestamp, timestamp),
        )
        return self.get_account(account_id)

    def get_account(self, account_id: int) -> AccountRecord:
        """Fetch a single account by id."""
        row = self.query_first(
            "SELECT id, name, currency, balance, created_at, updated_at FROM accounts WHERE id = ?",
            (account_id,),
        )
        if row is None:
            raise NotFoundError(f"Account {account_id} not found")
        return self._account_from_row(row)

    def list_accounts(self) -> list[AccountRecord]:
        """Return accounts ordered by display order, then name."""
        rows = self.query_all(
            """
            SELECT id, name, currency, balance, created_at, updated_at
            FROM accounts
            ORDER BY COALESCE(display_order, id), name
            """
        )
        return [self._account_from_row(row) for row in rows]

    def insert_category(
        self,
        category_id: str,
        name: str,
        category_type: str,
        kind: str = "entry",
        parent_id: str | None = None,
        is_shadow: bool = False,
    ) -> CategoryRecord:
        """Insert a category lookup row and return the record."""
        timestamp = self._timestamp()
        self.execute(
            """
            INSERT INTO categories (
                id, name, type, category_type, parent_id, is_shadow, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                category_id,
                name,
                kind,
                category_type,
                parent_id,
                1 if is_shadow else 0,
                timestamp,
                timestamp,
            ),
        )
        return self.get_category(category_id)

    def get_category(self, category_id: str) -> CategoryRecord:
        """Fetch a single category by id."""
        row = self.query_first(
            """
            SELECT id, name, type, category_type, parent_id, is_shadow
            FROM categories WHERE id = ?
            """,
            (category_id,),
        )
        if row is None:
            raise NotFoundError(f"Category {category_id} not found")
        return self._category_from_row(row)

    def list_categories(self) -> list[CategoryRecord]:
        """Return categories ordered by name."""
        rows = self.query_all(
            "SELECT id, name, type, category_type, parent_id, is_shadow FROM categories ORDER BY name"
        )
        return [self._category_from_row(row) for row in rows]

    # Ledger writes

    def insert_operation(self, operation: OperationDTO) -> OperationRecord:
        """Insert an operation and apply its balance effect."""
        source_places = self._account_decimal_places(
            operation.account_id, operation.source_currency
        )
        destination_places = (
            self._account_decimal_places(operation.to_account_id, operation.destination_currency)
            if operation.to_account_id is not None
            else source_places
        )
        destination_amount = (
            money.normalize(operation.destination_amount, destination_places)
            if operation.destination_amount is not None
            else None
        )
        operation_id = self.execute(
            """
            INSERT INTO operations (
                type,
                amount,
                account_id,
                category_id,
                to_account_id,
                date,
                created_at,
                description,
                exchange_rate,
                destination_amount,
                source_currency,
                destination_currency
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                operation.type,
                money.normalize(operation.amount, source_places),
                operation.account_id,
                operation.category_id,
                operation.to_account_id,
                operation.date.isoformat(),
                self._timestamp(),
                operation.description,
                str(operation.exchange_rate) if operation.exchange_rate is not None else None,
                destination_amount,
                operation.source_currency,
                operation.destination_currency,
            ),
        )
        record = self.get_operation(operation_id)
        self._apply_balance_changes(calculate_balance_changes(record), operation_id)
        return record

    def update_operation(self, key: int, patch: OperationPatch) -> OperationRecord:
        """Apply a partial update and net the balance effect of old and new state."""
        old = self.get_operation(key)
        changes = patch.changes()
        if not changes:
            return old

        assignments = []
        params: list[object] = []
        for field_name, value in changes.items():
            assignments.append(f"{PATCH_COLUMNS[field_name]} = ?")
            params.append(self._encode_patch_value(field_name, value, old, changes))
        params.append(key)
        self.execute(
            f"UPDATE operations SET {', '.join(assignments)} WHERE id = ?",
            params,
        )

        new = self.get_operation(key)
        self._apply_balance_changes(
            merge_changes(calculate_balance_changes(old), calculate_balance_changes(new)),
            key,
        )
        return new

    def delete_operation(self, key: int) -> OperationRecord:
        """Delete an operation and reverse its balance effect."""
        operation = self.get_operation(key)
        self.execute("DELETE FROM operations WHERE id = ?", (key,))
        self._apply_balance_changes(
            negate_changes(calculate_balance_changes(operation)),
            key,
        )
        return operation

    def _apply_balance_changes(self, changes: BalanceChanges, operation_id: int) -> None:
        """Write every non-zero delta onto its account balance."""
        update_time = self._timestamp()
        for account_id, delta in changes.items():
            if delta == 0:
                continue
            account = self.query_first(
                "SELECT balance, currency FROM accounts WHERE id = ?",
                (account_id,),
            )
            if account is None:
                message = (
                    f"Account {account_id} not found for operation {operation_id}, "
                    "skipping balance update"
                )
                if self.strict_references:
                    raise ReferentialGapError(message, account_id, operation_id)
                logger.warning(message)
                continue

            new_balance = money.add(
                account["balance"],
                delta,
                self._decimal_places(account["currency"]),
            )
            self.execute(
                "UPDATE accounts SET balance = ?, updated_at = ? WHERE id = ?",
                (new_balance, update_time, account_id),
            )
            logger.debug(
                "Updated balance for account %s: %s + (%s) -> %s",
                account_id,
                account["balance"],
                delta,
                new_balance,
            )

    # Operation reads

    def get_operation(self, key: int) -> OperationRecord:
        """Fetch a single operation by id."""
        row = self.query_first("SELECT * FROM operations WHERE id = ?", (key,))
        if row is None:
            raise NotFoundError(f"Operation {key} not found")
        return map_operation_row(row)

    def operation_exists(self, key: int) -> bool:
        """Return True when an operation with the id exists."""
        return self.query_first("SELECT 1 FROM operations WHERE id = ? LIMIT 1", (key,)) is not None

    def list_operations(
        self,
        account_id: int | None = None,
        category_id: str | None = None,
        operation_type: str | None = None,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
    ) -> list[OperationRecord]:
        """List operations newest first with optional simple filters."""
        filters = []
        params: list[object] = []
        if account_id is not None:
            filters.append("(account_id = ? OR to_account_id = ?)")
            params.extend([account_id, account_id])
        if category_id is not None:
            filters.append("category_id = ?")
            params.append(category_id)
        if operation_type is not None:
            filters.append("type = ?")
            params.append(operation_type)
        if start_date is not None:
            filters.append("date >= ?")
            params.append(start_date.isoformat())
        if end_date is not None:
            filters.append("date <= ?")
            params.append(end_date.isoformat())
        where_clause = ""
        if filters:
            where_clause = "WHERE " + " AND ".join(filters)
        rows = self.query_all(
            f"SELECT * FROM operations {where_clause} {order_clause()}",
            params,
        )
        return map_operation_rows(rows)

    def list_operations_in_window(
        self,
        window: Window,
        filters: FilterSet | None = None,
    ) -> list[OperationRecord]:
        """List operations dated inside a window, newest first.

        ``filters=None`` takes the plain path; a FilterSet (even an empty one)
        takes the joined filtered path.
        """
        rows = self._select_operations(
            ["date >= ?", "date <= ?"],
            [window.start.isoformat(), window.end.isoformat()],
            filters,
        )
        return map_operation_rows(rows)

    def find_operation_before(
        self,
        before: dt.date,
        filters: FilterSet | None = None,
    ) -> OperationRecord | None:
        """Return the most recent operation dated strictly before ``before``."""
        rows = self._select_operations(
            ["date < ?"], [before.isoformat()], filters, limit=1
        )
        return map_operation_row(rows[0]) if rows else None

    def find_operation_after(
        self,
        after: dt.date,
        filters: FilterSet | None = None,
    ) -> OperationRecord | None:
        """Return the oldest operation dated strictly after ``after``."""
        rows = self._select_operations(
            ["date > ?"], [after.isoformat()], filters, newest_first=False, limit=1
        )
        return map_operation_row(rows[0]) if rows else None

    def _select_operations(
        self,
        conditions: list[str],
        params: list[object],
        filters: FilterSet | None,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[sqlite3.Row]:
        if filters is None:
            query = "SELECT * FROM operations WHERE " + " AND ".join(conditions)
            query += " " + order_clause(newest_first)
            all_params = list(params)
        else:
            extra_conditions, extra_params = filter_conditions(filters)
            aliased = [f"o.{condition}" for condition in conditions]
            query = FILTERED_OPERATIONS_QUERY + " WHERE " + " AND ".join(aliased + extra_conditions)
            query += " " + order_clause(newest_first, alias="o")
            all_params = list(params) + extra_params
        if limit is not None:
            query += " LIMIT ?"
            all_params.append(limit)
        return self.query_all(query, all_params)

    # Aggregates

    def sum_by_category(
        self,
        operation_type: str,
        start_date: dt.date,
        end_date: dt.date,
        currency: str | None = None,
    ) -> list[CategoryTotal]:
        """Sum amounts per category for one operation type, largest first."""
        filters = [
            "o.type = ?",
            "o.date >= ?",
            "o.date <= ?",
            "o.category_id IS NOT NULL",
        ]
        params: list[object] = [operation_type, start_date.isoformat(), end_date.isoformat()]
        join_clause = ""
        if currency is not None:
            join_clause = "JOIN accounts AS a ON a.id = o.account_id"
            filters.append("a.currency = ?")
            params.append(currency)
        rows = self.query_all(
            f"""
            SELECT o.category_id, o.amount
            FROM operations AS o
            {join_clause}
            WHERE {' AND '.join(filters)}
            """,
            params,
        )
        totals: dict[str, Decimal] = {}
        for row in rows:
            category_id = row["category_id"]
            totals[category_id] = totals.get(category_id, Decimal("0")) + Decimal(str(row["amount"]))
        ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
        return [CategoryTotal(categoryId=category_id, total=total) for category_id, total in ordered]

    def sum_for_account(
        self,
        account_id: int,
        operation_type: str,
        start_date: dt.date,
        end_date: dt.date,
    ) -> Decimal:
        """Sum amounts of one operation type booked on an account."""
        rows = self.query_all(
            """
            SELECT amount FROM operations
            WHERE account_id = ? AND type = ? AND date >= ? AND date <= ?
            """,
            (account_id, operation_type, start_date.isoformat(), end_date.isoformat()),
        )
        return sum((Decimal(str(row["amount"])) for row in rows), Decimal("0"))

    def get_available_months(self) -> list[MonthRecord]:
        """Return distinct months that have operations, newest first."""
        rows = self.query_all(
            """
            SELECT DISTINCT
                CAST(strftime('%Y', date) AS INTEGER) AS year,
                CAST(strftime('%m', date) AS INTEGER) AS month
            FROM operations
            ORDER BY year DESC, month DESC
            """
        )
        return [MonthRecord(year=row["year"], month=row["month"] - 1) for row in rows]

    def get_adjustment_operation(self, account_id: int, on_date: dt.date) -> OperationRecord | None:
        """Return the latest operation on a date booked to a shadow category."""
        row = self.query_first(
            """
            SELECT o.* FROM operations AS o
            JOIN categories AS c ON o.category_id = c.id
            WHERE o.account_id = ?
              AND o.date = ?
              AND c.is_shadow = 1
            ORDER BY o.created_at DESC, o.id DESC
            LIMIT 1
            """,
            (account_id, on_date.isoformat()),
        )
        return map_operation_row(row)

    # Helpers

    def _ensure_connection(self) -> None:
        """Ensure the connection is initialized before use."""
        if self.connection is None:
            raise RuntimeError("Repository connection is not initialized")

    def _timestamp(self) -> str:
        return self._now().strftime(TIMESTAMP_FORMAT)

    def _decimal_places(self, currency: str | None) -> int:
        return money.decimal_places_for(currency, self.currency_decimal_places)

    def _account_decimal_places(self, account_id: int | None, fallback_currency: str | None) -> int:
        """Resolve precision from the account currency, else the given currency."""
        currency = fallback_currency
        if account_id is not None:
            row = self.query_first("SELECT currency FROM accounts WHERE id = ?", (account_id,))
            if row is not None:
                currency = row["currency"]
        return self._decimal_places(currency)

    def _encode_patch_value(
        self,
        field_name: str,
        value: Any,
        old: OperationRecord,
        changes: Mapping[str, Any],
    ) -> Any:
        """Convert a patch value to its stored representation."""
        if value is None:
            return None
        if field_name == "date":
            if isinstance(value, dt.datetime):
                return value.date().isoformat()
            if isinstance(value, dt.date):
                return value.isoformat()
            return dt.date.fromisoformat(str(value)).isoformat()
        if field_name not in _AMOUNT_PATCH_FIELDS:
            return value
        if field_name == "exchange_rate":
            return str(money.to_decimal(value, "Exchange rate"))
        if field_name == "amount":
            account_id = changes.get("account_id", old.accountId)
            currency = changes.get("source_currency", old.sourceCurrency)
        else:
            account_id = changes.get("to_account_id", old.toAccountId)
            currency = changes.get("destination_currency", old.destinationCurrency)
        return money.normalize(value, self._account_decimal_places(account_id, currency))

    @staticmethod
    def _account_from_row(row: sqlite3.Row) -> AccountRecord:
        return AccountRecord(
            id=row["id"],
            name=row["name"],
            currency=row["currency"],
            balance=row["balance"],
            createdAt=row["created_at"],
            updatedAt=row["updated_at"],
        )

    @staticmethod
    def _category_from_row(row: sqlite3.Row) -> CategoryRecord:
        return CategoryRecord(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            categoryType=row["category_type"],
            parentId=row["parent_id"],
            isShadow=bool(row["is_shadow"]),
        )
