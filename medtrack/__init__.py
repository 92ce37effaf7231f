"""Medication tracking core: recurrence rules, dose logs and local storage."""

__version__ = "0.1.0"
