"""Translation between stored operation rows and read-model records."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, Mapping

from monkeep.models import OperationRecord
from monkeep.schema import OPERATION_FIELD_MAP

_DECIMAL_FIELDS = {"amount", "exchangeRate", "destinationAmount"}


def _decode(attribute: str, value: Any) -> Any:
    if value is None:
        return None
    if attribute in _DECIMAL_FIELDS:
        return Decimal(str(value))
    if attribute == "date":
        return dt.date.fromisoformat(str(value))
    return value


def map_operation_row(row: Mapping[str, Any] | None) -> OperationRecord | None:
    """Map a snake_case storage row onto an OperationRecord."""
    if row is None:
        return None
    keys = row.keys()
    values = {
        attribute: _decode(attribute, row[column] if column in keys else None)
        for column, attribute in OPERATION_FIELD_MAP.items()
    }
    return OperationRecord(**values)


def map_operation_rows(rows: list[Mapping[str, Any]]) -> list[OperationRecord]:
    """Map every row of a result set."""
    return [map_operation_row(row) for row in rows or []]
