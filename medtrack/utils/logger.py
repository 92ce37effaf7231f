"""Logging configuration and utilities for medtrack."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logger(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    logs_dir: Optional[Path] = None,
) -> None:
    """Configure loguru logger with console and file outputs.

    Sets up:
    - Console output with colors to stderr
    - File output with daily rotation, 30-day retention and compression

    Args:
        console_level: Log level for console output (default: INFO)
        file_level: Log level for file output (default: DEBUG)
        logs_dir: Directory for log files (default: project_root/logs)
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        level=console_level,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )

    if logs_dir is None:
        logs_dir = Path(__file__).parent.parent.parent / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        logs_dir / "medtrack_{time:YYYY-MM-DD}.log",
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{name}:{function}:{line} | "
            "{message}"
        ),
        level=file_level,
        rotation="00:00",  # Rotate at midnight
        retention="30 days",
        compression="zip",
        backtrace=True,
        diagnose=True,
        enqueue=True,
    )

    logger.debug(f"Logger configured: console={console_level}, file={file_level}, dir={logs_dir}")


def log_operation(operation_name: str, **context) -> None:
    """Log an operation with structured context.

    Args:
        operation_name: Name of the operation being performed
        **context: Additional context (ids, counts) bound to the record
    """
    details = ", ".join(f"{key}={value}" for key, value in context.items())
    logger.bind(operation=operation_name, **context).info(
        f"Operation: {operation_name}" + (f" ({details})" if details else "")
    )


__all__ = ["setup_logger", "log_operation", "logger"]
