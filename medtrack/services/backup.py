"""Backup export/import and the periodic backup reminder."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import aiofiles

from medtrack.data.errors import MalformedImportError
from medtrack.data.models import (
    SETTING_BACKUP_REMINDER,
    SETTING_LAST_BACKUP,
    SETTING_LAST_BACKUP_REMINDER,
)
from medtrack.data.repository import Repository
from medtrack.utils import local_datetime, log_operation, logger, now_ms


BACKUP_REMINDER_DAYS = 30
DAY_MS = 24 * 60 * 60 * 1000


def is_backup_reminder_due(
    enabled: Any,
    last_reminder: Optional[int],
    now: int,
    interval_days: int = BACKUP_REMINDER_DAYS,
) -> bool:
    """Check whether the backup reminder should be shown.

    Args:
        enabled: Value of the backupReminder setting
        last_reminder: Value of the lastBackupReminder setting (epoch ms)
        now: Current time, epoch ms
        interval_days: Days between reminders

    Returns:
        True if reminders are enabled and none was shown within the interval
    """
    if not enabled:
        return False
    if not last_reminder:
        return True
    return now - last_reminder > interval_days * DAY_MS


def backup_filename(now: int) -> str:
    """Build the backup file name for a point in time.

    Example: medtrack-backup-2024-01-31-20-15-00.json
    """
    return f"medtrack-backup-{local_datetime(now).strftime('%Y-%m-%d-%H-%M-%S')}.json"


class BackupCoordinator:
    """Whole-dataset backup and restore plus the reminder policy.

    After a due reminder the caller either backs up (record_backup, done
    by export_to_file) or snoozes (snooze_reminder).
    """

    def __init__(self, repository: Repository, reminder_interval_days: int = BACKUP_REMINDER_DAYS):
        """Initialize backup coordinator.

        Args:
            repository: Repository to snapshot and restore
            reminder_interval_days: Days between backup reminders
        """
        self.repository = repository
        self.reminder_interval_days = reminder_interval_days

    async def build_export_document(self) -> dict:
        return await self.repository.export_snapshot()

    async def restore_from_document(self, document: Any) -> None:
        """Replace all people, medications and dose logs with a document.

        Raises:
            MalformedImportError: If the document is missing required lists
        """
        await self.repository.import_snapshot(document)

    async def check_reminder(self, now: Optional[int] = None) -> bool:
        """Check the stored settings against the reminder policy."""
        if now is None:
            now = now_ms()
        enabled = await self.repository.get_setting(SETTING_BACKUP_REMINDER, False)
        last_reminder = await self.repository.get_setting(SETTING_LAST_BACKUP_REMINDER)
        return is_backup_reminder_due(enabled, last_reminder, now, self.reminder_interval_days)

    async def record_backup(self, now: Optional[int] = None) -> None:
        if now is None:
            now = now_ms()
        await self.repository.put_setting(SETTING_LAST_BACKUP, now)
        await self.repository.put_setting(SETTING_LAST_BACKUP_REMINDER, now)

    async def snooze_reminder(self, now: Optional[int] = None) -> None:
        if now is None:
            now = now_ms()
        await self.repository.put_setting(SETTING_LAST_BACKUP_REMINDER, now)
        logger.debug("Backup reminder snoozed")

    async def set_reminder_enabled(self, enabled: bool, now: Optional[int] = None) -> None:
        """Turn the backup reminder on or off.

        Turning it on starts a fresh interval instead of reminding at once.
        """
        await self.repository.put_setting(SETTING_BACKUP_REMINDER, enabled)
        if enabled:
            await self.snooze_reminder(now)

    async def export_to_file(self, directory: Path, now: Optional[int] = None) -> Path:
        """Write a backup file and record the backup.

        Uses atomic write pattern: write to temp file, then rename.

        Args:
            directory: Directory for the backup file
            now: Backup time, epoch ms (defaults to now)

        Returns:
            Path to the written backup file
        """
        if now is None:
            now = now_ms()

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        file_path = directory / backup_filename(now)
        temp_path = file_path.with_name(file_path.name + ".tmp")

        document = await self.build_export_document()
        json_content = json.dumps(document, ensure_ascii=False, indent=2)

        try:
            async with aiofiles.open(temp_path, mode="w", encoding="utf-8") as f:
                await f.write(json_content)
            temp_path.replace(file_path)
        except Exception as e:
            logger.opt(exception=True).error(
                f"Error writing backup {file_path}: {type(e).__name__}: {e}"
            )
            if temp_path.exists():
                temp_path.unlink()
            raise

        await self.record_backup(now)
        log_operation(
            "backup_exported",
            path=str(file_path),
            people=len(document["people"]),
            medications=len(document["medications"]),
            dose_logs=len(document["doseLogs"]),
        )
        return file_path

    async def import_from_file(self, path: Path) -> None:
        """Restore all data from a backup file.

        Raises:
            MalformedImportError: If the file is not valid JSON or is
                missing required lists
        """
        async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
            content = await f.read()

        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedImportError(f"Backup file is not valid JSON: {e}") from e

        await self.restore_from_document(document)
        log_operation("backup_imported", path=str(path))
