"""Balance-delta calculation for ledger operations."""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from monkeep.models import OperationRecord

BalanceChanges = dict[int, Decimal]


def calculate_balance_changes(operation: OperationRecord) -> BalanceChanges:
    """Return the signed balance delta each account receives from an operation.

    Expenses debit the source account, income credits it, and transfers debit
    the source by ``amount`` while crediting the destination by
    ``destinationAmount`` when present (cross-currency) or ``amount``
    otherwise.
    """
    amount = Decimal(operation.amount)
    if operation.type == "expense":
        return {operation.accountId: -amount}
    if operation.type == "income":
        return {operation.accountId: amount}
    if operation.type == "transfer":
        if operation.toAccountId is None:
            raise ValueError(f"Transfer {operation.id} has no destination account")
        if operation.toAccountId == operation.accountId:
            raise ValueError(f"Transfer {operation.id} has the same source and destination")
        credit = (
            Decimal(operation.destinationAmount)
            if operation.destinationAmount is not None
            else amount
        )
        return {operation.accountId: -amount, operation.toAccountId: credit}
    raise ValueError(f"Unknown operation type: {operation.type}")


def negate_changes(changes: Mapping[int, Decimal]) -> BalanceChanges:
    """Return the reversal of a set of balance changes."""
    return {account_id: -delta for account_id, delta in changes.items()}


def merge_changes(
    old_changes: Mapping[int, Decimal],
    new_changes: Mapping[int, Decimal],
) -> BalanceChanges:
    """Net the new changes against the old ones per account.

    An account missing from one side counts as zero there.
    """
    merged: BalanceChanges = {}
    for account_id, delta in old_changes.items():
        merged[account_id] = merged.get(account_id, Decimal("0")) - delta
    for account_id, delta in new_changes.items():
        merged[account_id] = merged.get(account_id, Decimal("0")) + delta
    return merged
