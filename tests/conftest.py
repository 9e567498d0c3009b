"""Pytest configuration and fixtures for system integration tests.

Every SIT test gets a fresh SQLite database in ``tmp_path`` built from the
package schema, so nothing depends on checked-in database files.
"""
from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src" / "python"

for path in (SRC_DIR, ROOT_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from monkeep.client import MonkeepClient  # noqa: E402
from monkeep.repository import Repository  # noqa: E402
from tests.utils.database import TODAY, seed_reference_data  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config lookup at a file that does not exist."""
    config_path = tmp_path / "monkeep-config.json"
    monkeypatch.setenv("MONKEEP_CONFIG", str(config_path))
    return config_path


@pytest.fixture()
def empty_db_path(tmp_path: Path) -> Path:
    """Database with schema only for SIT tests."""
    path = tmp_path / "monkeep.db"
    repository = Repository(path)
    repository.connect()
    repository.initialize_schema()
    repository.close()
    return path


@pytest.fixture()
def make_client(empty_db_path: Path):
    """Factory for clients pinned to a fixed ``today`` with forex disabled."""

    def _make(**kwargs) -> MonkeepClient:
        kwargs.setdefault("db_path", empty_db_path)
        kwargs.setdefault("clock", lambda: TODAY)
        kwargs.setdefault("enable_forex_rates", False)
        return MonkeepClient(**kwargs)

    return _make


@pytest.fixture()
def test_db_path(empty_db_path: Path, make_client) -> Path:
    """Database seeded with reference accounts and categories."""
    with make_client() as client:
        seed_reference_data(client)
    return empty_db_path
