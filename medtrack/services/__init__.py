"""Scheduling, dose tracking and backup services."""

from . import recurrence
from .backup import BackupCoordinator, is_backup_reminder_due
from .dose_tracker import DoseCompletion, DoseTracker, HistoryDay

__all__ = [
    "BackupCoordinator",
    "DoseCompletion",
    "DoseTracker",
    "HistoryDay",
    "is_backup_reminder_due",
    "recurrence",
]
