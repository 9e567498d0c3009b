"""Persistence interfaces for Monkeep storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator


class PersistenceBackend(ABC):
    """Abstract interface for repository backends."""

    @abstractmethod
    def __init__(self, db_path: str | Path) -> None:
        """Initialize the backend with a storage path."""

    @abstractmethod
    def connect(self) -> None:
        """Establish a backend connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the backend connection."""

    @abstractmethod
    def begin_transaction(self) -> None:
        """Start a transaction."""

    @abstractmethod
    def commit(self) -> None:
        """Commit the active transaction."""

    @abstractmethod
    def rollback(self) -> None:
        """Rollback the active transaction."""

    @abstractmethod
    def initialize_schema(self) -> None:
        """Create the storage schema when missing."""

    @contextmanager
    def transaction(self) -> Iterator["PersistenceBackend"]:
        """Scope a unit of work.

        Commits when the block exits normally and rolls back on any
        exception, which is then re-raised unchanged.
        """
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    @abstractmethod
    def query_all(self, sql: str, params: tuple | list = ()) -> list[Any]:
        """Return every row produced by a statement."""

    @abstractmethod
    def query_first(self, sql: str, params: tuple | list = ()) -> Any | None:
        """Return the first row produced by a statement, or None."""

    @abstractmethod
    def execute(self, sql: str, params: tuple | list = ()) -> int:
        """Execute a write statement and return the last inserted row id."""
