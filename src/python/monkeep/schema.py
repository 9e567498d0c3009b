"""Database schema constants."""

from __future__ import annotations

OPERATION_TYPES = ("expense", "income", "transfer")

CATEGORY_TYPES = ("expense", "income")
CATEGORY_KINDS = ("folder", "entry")

DEFAULT_CURRENCY = "USD"
DEFAULT_BALANCE = "0.00"
DEFAULT_DECIMAL_PLACES = 2

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"

OPERATION_COLUMNS = [
    "id",
    "type",
    "amount",
    "account_id",
    "category_id",
    "to_account_id",
    "date",
    "created_at",
    "description",
    "exchange_rate",
    "destination_amount",
    "source_currency",
    "destination_currency",
]

# Storage column -> read-model attribute
OPERATION_FIELD_MAP = {
    "id": "id",
    "type": "type",
    "amount": "amount",
    "account_id": "accountId",
    "category_id": "categoryId",
    "to_account_id": "toAccountId",
    "date": "date",
    "created_at": "createdAt",
    "description": "description",
    "exchange_rate": "exchangeRate",
    "destination_amount": "destinationAmount",
    "source_currency": "sourceCurrency",
    "destination_currency": "destinationCurrency",
}

# Patchable fields -> storage column. id and created_at are immutable.
PATCH_COLUMNS = {
    "type": "type",
    "amount": "amount",
    "account_id": "account_id",
    "category_id": "category_id",
    "to_account_id": "to_account_id",
    "date": "date",
    "description": "description",
    "exchange_rate": "exchange_rate",
    "destination_amount": "destination_amount",
    "source_currency": "source_currency",
    "destination_currency": "destination_currency",
}

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        balance TEXT NOT NULL DEFAULT '0',
        currency TEXT NOT NULL DEFAULT 'USD',
        display_order INTEGER,
        hidden INTEGER DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('folder', 'entry')),
        category_type TEXT NOT NULL CHECK (category_type IN ('expense', 'income')),
        parent_id TEXT REFERENCES categories(id) ON DELETE CASCADE,
        is_shadow INTEGER DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS operations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        type TEXT NOT NULL CHECK (type IN ('expense', 'income', 'transfer')),
        amount TEXT NOT NULL,
        account_id INTEGER NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
        category_id TEXT REFERENCES categories(id) ON DELETE SET NULL,
        to_account_id INTEGER REFERENCES accounts(id) ON DELETE CASCADE,
        date TEXT NOT NULL,
        created_at TEXT NOT NULL,
        description TEXT,
        exchange_rate TEXT,
        destination_amount TEXT,
        source_currency TEXT,
        destination_currency TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_operations_date ON operations(date)",
    "CREATE INDEX IF NOT EXISTS idx_operations_account ON operations(account_id)",
    "CREATE INDEX IF NOT EXISTS idx_operations_category ON operations(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_operations_type ON operations(type)",
]
