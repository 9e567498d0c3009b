"""Custom exception types for Monkeep."""

from __future__ import annotations


class NotFoundError(Exception):
    """Raised when a requested record does not exist."""


class ReferentialGapError(Exception):
    """Raised when a balance update references a missing account."""

    def __init__(self, message: str, account_id: int, operation_id: int | None = None) -> None:
        super().__init__(message)
        self.account_id = account_id
        self.operation_id = operation_id
