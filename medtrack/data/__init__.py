"""Data layer for medtrack.

This module provides data models, collection storage and the repository.
"""

from .errors import (
    DuplicateKeyError,
    MalformedImportError,
    NotInitializedError,
    PartialCascadeError,
    StorageError,
    UnknownCollectionError,
)
from .models import (
    Daily,
    DoseLog,
    EveryNWeeks,
    Medication,
    MonthlyByDate,
    MonthlyByWeekday,
    Person,
    Recurrence,
    Weekly,
)
from .repository import Repository
from .storage import SQLiteStorage

__all__ = [
    "Daily",
    "DoseLog",
    "DuplicateKeyError",
    "EveryNWeeks",
    "MalformedImportError",
    "Medication",
    "MonthlyByDate",
    "MonthlyByWeekday",
    "NotInitializedError",
    "PartialCascadeError",
    "Person",
    "Recurrence",
    "Repository",
    "SQLiteStorage",
    "StorageError",
    "UnknownCollectionError",
    "Weekly",
]
