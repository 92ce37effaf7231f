"""Utility functions for medtrack."""

from .clock import (
    format_time,
    local_date,
    local_datetime,
    now_ms,
    today,
)
from .logger import log_operation, logger, setup_logger

__all__ = [
    # Clock utilities
    "format_time",
    "local_date",
    "local_datetime",
    "now_ms",
    "today",
    # Logger utilities
    "log_operation",
    "logger",
    "setup_logger",
]
