"""System integration tests for client configuration and connection handling."""

from __future__ import annotations

import json
import logging

import pytest

from monkeep import MonkeepClient
from monkeep.client import logger as client_logger
from monkeep.repository import Repository


@pytest.mark.sit
def test_db_path_from_config(empty_db_path, isolated_config) -> None:
    isolated_config.write_text(json.dumps({"db_path": str(empty_db_path)}), encoding="utf-8")

    with MonkeepClient(enable_forex_rates=False) as client:
        account = client.add_account("Wallet")

    assert client.db_path == empty_db_path
    assert account.balance == "0.00"


@pytest.mark.sit
def test_explicit_config_path_overrides_environment(tmp_path, empty_db_path) -> None:
    config_path = tmp_path / "custom.json"
    config_path.write_text(
        json.dumps({"db_path": str(empty_db_path), "strict_references": True}),
        encoding="utf-8",
    )

    client = MonkeepClient(config_path=config_path, enable_forex_rates=False)

    assert client.db_path == empty_db_path
    assert client.strict_references is True


@pytest.mark.sit
def test_constructor_arguments_override_config(empty_db_path, isolated_config) -> None:
    isolated_config.write_text(json.dumps({"strict_references": True}), encoding="utf-8")

    client = MonkeepClient(db_path=empty_db_path, strict_references=False, enable_forex_rates=False)

    assert client.strict_references is False
    assert client.repository.strict_references is False


@pytest.mark.sit
def test_missing_db_path_raises() -> None:
    with pytest.raises(ValueError, match="db_path"):
        MonkeepClient(enable_forex_rates=False)


@pytest.mark.sit
def test_client_creates_schema_on_new_database(tmp_path) -> None:
    db_path = tmp_path / "fresh.db"

    with MonkeepClient(db_path=db_path, enable_forex_rates=False) as client:
        assert client.list_accounts() == []

    assert db_path.exists()
    assert client.repository.connection is None


@pytest.mark.sit
def test_custom_repository_is_used(empty_db_path) -> None:
    repository = Repository(empty_db_path)

    with MonkeepClient(repository=repository, enable_forex_rates=False) as client:
        client.add_account("Wallet", balance="5")
        assert repository.get_account(1).balance == "5.00"


@pytest.mark.sit
def test_client_logger_is_configured() -> None:
    assert client_logger.name == "monkeep.client"
    assert client_logger.handlers
    assert client_logger.level != logging.NOTSET
