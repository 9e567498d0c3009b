"""Integration tests for the Monkeep CLI."""

from __future__ import annotations

import datetime as dt

import pytest
from click.testing import CliRunner

from monkeep.cli.main import main
from tests.utils.database import BANK, WALLET, fetch_balance


def _invoke(db_path, *args: str, input: str | None = None):
    runner = CliRunner()
    return runner.invoke(main, ["--db", str(db_path), "--no-forex", *args], input=input)


@pytest.mark.sit
def test_cli_version() -> None:
    result = CliRunner().invoke(main, ["--version"])

    assert result.exit_code == 0
    assert "monkeep" in result.output


@pytest.mark.sit
def test_cli_account_add_and_list(empty_db_path) -> None:
    added = _invoke(empty_db_path, "account", "add", "--name", "Wallet", "--balance", "12.5")
    listed = _invoke(empty_db_path, "account", "list")

    assert added.exit_code == 0, added.output
    assert "Added account 1" in added.output
    assert listed.exit_code == 0
    assert "Wallet" in listed.output
    assert "12.50" in listed.output


@pytest.mark.sit
def test_cli_account_list_empty(empty_db_path) -> None:
    result = _invoke(empty_db_path, "account", "list")

    assert result.exit_code == 0
    assert "No accounts found." in result.output


@pytest.mark.sit
def test_cli_category_add_and_list(empty_db_path) -> None:
    added = _invoke(
        empty_db_path, "category", "add", "--id", "food", "--name", "Food", "--type", "expense"
    )
    duplicate = _invoke(
        empty_db_path, "category", "add", "--id", "food", "--name", "Food", "--type", "expense"
    )
    listed = _invoke(empty_db_path, "category", "list")

    assert added.exit_code == 0, added.output
    assert duplicate.exit_code != 0
    assert "food" in listed.output


@pytest.mark.sit
def test_cli_operation_lifecycle(test_db_path) -> None:
    added = _invoke(
        test_db_path,
        "operation", "add",
        "--type", "expense",
        "--amount", "25.50",
        "--account", str(WALLET),
        "--category", "food",
        "--date", "2026-03-10",
        "--description", "Groceries",
    )
    assert added.exit_code == 0, added.output
    assert "Added operation 1" in added.output
    assert fetch_balance(test_db_path, WALLET) == "74.50"

    shown = _invoke(test_db_path, "operation", "get", "1")
    assert shown.exit_code == 0
    assert "Groceries" in shown.output
    assert "25.50" in shown.output

    updated = _invoke(test_db_path, "operation", "update", "1", "--amount", "30")
    assert updated.exit_code == 0, updated.output
    assert fetch_balance(test_db_path, WALLET) == "70.00"

    cancelled = _invoke(test_db_path, "operation", "delete", "1", input="n\n")
    assert "Delete cancelled." in cancelled.output
    assert fetch_balance(test_db_path, WALLET) == "70.00"

    deleted = _invoke(test_db_path, "operation", "delete", "1", "--yes")
    assert deleted.exit_code == 0
    assert fetch_balance(test_db_path, WALLET) == "100.00"


@pytest.mark.sit
def test_cli_operation_errors(test_db_path) -> None:
    missing = _invoke(test_db_path, "operation", "get", "42")
    invalid = _invoke(
        test_db_path,
        "operation", "add",
        "--type", "expense",
        "--amount", "0",
        "--account", str(WALLET),
        "--category", "food",
        "--date", "2026-03-10",
    )
    folder = _invoke(
        test_db_path,
        "operation", "add",
        "--type", "expense",
        "--amount", "5",
        "--account", str(WALLET),
        "--category", "household",
        "--date", "2026-03-10",
    )
    no_changes = _invoke(test_db_path, "operation", "update", "1")

    assert missing.exit_code != 0
    assert "not found" in missing.output
    assert invalid.exit_code != 0
    assert "greater than zero" in invalid.output
    assert folder.exit_code != 0
    assert "folder" in folder.output
    assert no_changes.exit_code != 0


@pytest.mark.sit
def test_cli_strict_flag(test_db_path) -> None:
    result = _invoke(
        test_db_path,
        "--strict",
        "operation", "add",
        "--type", "transfer",
        "--amount", "5",
        "--account", str(WALLET),
        "--to-account", "99",
        "--date", "2026-03-10",
    )

    assert result.exit_code == 1
    assert "Account 99 not found" in result.output
    assert fetch_balance(test_db_path, WALLET) == "100.00"


@pytest.mark.sit
def test_cli_week_and_history(test_db_path) -> None:
    today = dt.date.today()
    for amount, account, days in (("10", WALLET, 0), ("20", BANK, 1), ("30", WALLET, 20)):
        result = _invoke(
            test_db_path,
            "operation", "add",
            "--type", "expense",
            "--amount", amount,
            "--account", str(account),
            "--category", "food",
            "--date", (today - dt.timedelta(days=days)).isoformat(),
        )
        assert result.exit_code == 0, result.output

    week = _invoke(test_db_path, "operation", "week")
    filtered = _invoke(test_db_path, "operation", "week", "--account", str(BANK))
    empty = _invoke(test_db_path, "operation", "week", "--offset", "1")
    history = _invoke(test_db_path, "operation", "history", "--search", "wallet")

    assert week.exit_code == 0, week.output
    assert "10.00" in week.output and "20.00" in week.output
    assert "30.00" not in week.output
    assert "20.00" in filtered.output and "10.00" not in filtered.output
    assert "No operations found." in empty.output
    assert history.exit_code == 0, history.output
    assert history.output.count("# ") == 2
    assert "30.00" in history.output and "20.00" not in history.output


@pytest.mark.sit
def test_cli_reports(test_db_path) -> None:
    for category, kind, amount in (("food", "expense", "12"), ("salary", "income", "300")):
        result = _invoke(
            test_db_path,
            "operation", "add",
            "--type", kind,
            "--amount", amount,
            "--account", str(WALLET),
            "--category", category,
            "--date", "2026-03-10",
        )
        assert result.exit_code == 0, result.output

    spending = _invoke(test_db_path, "report", "spending", "--start", "2026-03-01", "--end", "2026-03-31")
    income = _invoke(
        test_db_path, "report", "income", "--currency", "EUR", "--start", "2026-03-01", "--end", "2026-03-31"
    )
    months = _invoke(test_db_path, "report", "months")
    bad_date = _invoke(test_db_path, "report", "spending", "--start", "March", "--end", "2026-03-31")

    assert "food\t12.00" in spending.output
    assert "No income found." in income.output
    assert "2026-03\tMar 2026" in months.output
    assert bad_date.exit_code != 0
