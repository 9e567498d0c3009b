from __future__ import annotations

import sqlite3

from monkeep import schema


def test_operation_columns() -> None:
    assert schema.OPERATION_COLUMNS == [
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


def test_field_map_covers_every_column() -> None:
    assert list(schema.OPERATION_FIELD_MAP) == schema.OPERATION_COLUMNS
    assert schema.OPERATION_FIELD_MAP["account_id"] == "accountId"
    assert schema.OPERATION_FIELD_MAP["created_at"] == "createdAt"


def test_patch_columns_exclude_immutable_fields() -> None:
    assert "id" not in schema.PATCH_COLUMNS
    assert "created_at" not in schema.PATCH_COLUMNS
    assert set(schema.PATCH_COLUMNS.values()) <= set(schema.OPERATION_COLUMNS)


def test_schema_statements_create_tables() -> None:
    connection = sqlite3.connect(":memory:")
    for statement in schema.SCHEMA_STATEMENTS:
        connection.execute(statement)
    tables = {
        row[0]
        for row in connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    }
    connection.close()

    assert {"accounts", "categories", "operations"} <= tables
