"""Public Monkeep package exports."""

from __future__ import annotations

from monkeep.__version__ import __version__
from monkeep.client import MonkeepClient
from monkeep.exceptions import NotFoundError, ReferentialGapError
from monkeep.models import (
    AccountRecord,
    AmountRange,
    CategoryRecord,
    CategoryTotal,
    DateRange,
    FilterSet,
    MonthRecord,
    OperationDTO,
    OperationPatch,
    OperationRecord,
)
from monkeep.persistence import PersistenceBackend
from monkeep.repository import Repository

__all__ = [
    "__version__",
    "MonkeepClient",
    "NotFoundError",
    "ReferentialGapError",
    "AccountRecord",
    "AmountRange",
    "CategoryRecord",
    "CategoryTotal",
    "DateRange",
    "FilterSet",
    "MonthRecord",
    "OperationDTO",
    "OperationPatch",
    "OperationRecord",
    "PersistenceBackend",
    "Repository",
]
