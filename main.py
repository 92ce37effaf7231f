"""Main entry point for medtrack.

Usage:
    python main.py                 # show today's schedule
    python main.py export          # write a backup to BACKUP_DIR
    python main.py import <path>   # restore from a backup file
"""

import asyncio
import sys
from pathlib import Path

from loguru import logger

from medtrack.config import settings
from medtrack.data import Repository, SQLiteStorage
from medtrack.services import BackupCoordinator, DoseTracker, recurrence
from medtrack.utils import format_time, setup_logger, today


async def show_today(repository: Repository, tracker: DoseTracker) -> None:
    """Log each person's medications due today with their progress."""
    day = today()
    for person in await repository.list_people():
        due = await tracker.due_medications(person.id, day)
        due_ids = {med.id for med in due}
        logger.info(f"{person.name}: {len(due)} medication(s) due on {day.isoformat()}")

        for med in due:
            progress = await tracker.completion(med, day)
            times = ", ".join(format_time(t) for t in med.times)
            logger.info(
                f"  {med.name} {med.dosage} · {recurrence.describe(med)} at {times} "
                f"[{progress}]"
            )

        for med in await repository.list_medications(person.id):
            if med.is_as_needed:
                history = await tracker.history(med.id, settings.history_days)
                doses = sum(entry.dose_count for entry in history)
                logger.info(
                    f"  {med.name} {med.dosage} · As needed · "
                    f"{doses} dose(s) in the last {settings.history_days} days"
                )
                continue
            if med.id in due_ids:
                continue
            next_day = recurrence.next_due_date(med, day, settings.next_due_horizon_days)
            label = next_day.isoformat() if next_day else "no upcoming date"
            logger.info(f"  {med.name}: not scheduled today · next: {label}")


async def main(argv: list[str]) -> int:
    """Main application entry point."""
    setup_logger(console_level=settings.log_level, logs_dir=settings.logs_dir)
    logger.debug(f"Starting with {settings!r}")

    repository = Repository(SQLiteStorage(settings.database_path))
    try:
        await repository.init()
    except Exception as e:
        logger.error(f"Failed to initialize storage: {e}")
        raise

    tracker = DoseTracker(repository)
    backup = BackupCoordinator(repository, settings.backup_reminder_days)

    command = argv[0] if argv else "today"

    if command == "export":
        path = await backup.export_to_file(settings.backup_dir)
        logger.info(f"Backup written to {path}")
    elif command == "import":
        if len(argv) < 2:
            logger.error("Usage: main.py import <path>")
            return 2
        await backup.import_from_file(Path(argv[1]))
        await repository.ensure_default_person()
        logger.info(f"Data restored from {argv[1]}")
    elif command == "today":
        if not await repository.has_seen_welcome():
            logger.info(
                "Welcome to medtrack. Medications are stored locally in "
                f"{settings.database_path}; run 'python main.py export' to back them up."
            )
            await repository.mark_welcome_seen()
        await show_today(repository, tracker)
        if await backup.check_reminder():
            logger.warning(
                f"It's been {settings.backup_reminder_days} days since your last backup. "
                "Run 'python main.py export' to back up your data."
            )
    else:
        logger.error(f"Unknown command: {command}")
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
