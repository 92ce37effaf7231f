"""Dose logging and "taken today" queries."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from loguru import logger

from medtrack.data.models import DoseLog, Medication, generate_id
from medtrack.data.repository import Repository
from medtrack.utils import local_date, now_ms, today

from . import recurrence


@dataclass
class DoseCompletion:
    """Number of scheduled dose slots taken on a day."""

    taken: int
    total: int

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.taken >= self.total

    def __str__(self) -> str:
        return f"{self.taken}/{self.total}"


@dataclass
class HistoryDay:
    """Dose logs of one calendar day."""

    day: date
    logs: list[DoseLog] = field(default_factory=list)

    @property
    def dose_count(self) -> int:
        return len(self.logs)


class DoseTracker:
    """Logs doses and answers "taken today" / history questions.

    There is no daily reset job: every query filters logs by the local
    calendar date of their timestamp, so a new day starts empty.

    Duplicate logs for the same (medication, date, slot) are not rejected
    by storage. set_slot_taken() avoids creating them and removes all of
    them when a slot is unchecked; is_slot_taken() is true if any exist.
    """

    def __init__(self, repository: Repository):
        """Initialize dose tracker.

        Args:
            repository: Repository used for persistence
        """
        self.repository = repository

    async def logs_for_medication_on_date(self, medication_id: str, day: date) -> list[DoseLog]:
        """Get a medication's dose logs whose timestamp falls on a date.

        Args:
            medication_id: Medication id
            day: Local date

        Returns:
            Dose logs in the order they were logged
        """
        logs = await self.repository.list_dose_logs(medication_id)
        return [log for log in logs if local_date(log.timestamp) == day]

    async def log_dose(self, medication_id: str, scheduled_time: Optional[str] = None) -> DoseLog:
        """Record a dose taken now.

        The slot is not checked against the medication's configured times.

        Args:
            medication_id: Medication id
            scheduled_time: HH:MM slot for scheduled doses, None for as-needed

        Returns:
            Created DoseLog
        """
        log = DoseLog(
            id=generate_id(),
            medication_id=medication_id,
            scheduled_time=scheduled_time,
            timestamp=now_ms(),
        )
        await self.repository.add_dose_log(log)
        logger.info(
            f"Dose logged for medication {medication_id} "
            f"(slot: {scheduled_time or 'as needed'})"
        )
        return log

    async def unlog_dose(self, log_id: str) -> bool:
        """Remove a dose log. Removing an absent log is a no-op.

        Returns:
            True if a log was removed
        """
        removed = await self.repository.delete_dose_log(log_id)
        if removed:
            logger.info(f"Dose log removed: {log_id}")
        return removed

    async def is_slot_taken(self, medication_id: str, scheduled_time: str, day: date) -> bool:
        logs = await self.logs_for_medication_on_date(medication_id, day)
        return any(log.scheduled_time == scheduled_time for log in logs)

    async def set_slot_taken(
        self,
        medication_id: str,
        scheduled_time: str,
        taken: bool,
    ) -> Optional[DoseLog]:
        """Check or uncheck a scheduled slot for today.

        Args:
            medication_id: Medication id
            scheduled_time: HH:MM slot
            taken: True to mark the slot taken, False to clear it

        Returns:
            The slot's log when taken (new or existing), None when cleared
        """
        logs = [
            log for log in await self.logs_for_medication_on_date(medication_id, today())
            if log.scheduled_time == scheduled_time
        ]

        if taken:
            if logs:
                logger.debug(f"Slot {scheduled_time} already taken for medication {medication_id}")
                return logs[0]
            return await self.log_dose(medication_id, scheduled_time)

        for log in logs:
            await self.unlog_dose(log.id)
        return None

    async def completion(self, medication: Medication, day: date) -> DoseCompletion:
        """Get how many of a medication's slots were taken on a date.

        Args:
            medication: Scheduled medication
            day: Local date

        Returns:
            DoseCompletion with distinct taken slots and configured slot count
        """
        logs = await self.logs_for_medication_on_date(medication.id, day)
        taken_slots = {log.scheduled_time for log in logs}
        taken = sum(1 for slot in set(medication.times) if slot in taken_slots)
        return DoseCompletion(taken=taken, total=len(medication.times))

    async def logs_in_window(self, medication_id: str, since: date) -> list[DoseLog]:
        """Get a medication's dose logs on or after a date, newest first.

        Args:
            medication_id: Medication id
            since: First local date of the window

        Returns:
            Dose logs sorted by timestamp, descending
        """
        logs = await self.repository.list_dose_logs(medication_id)
        recent = [log for log in logs if local_date(log.timestamp) >= since]
        return sorted(recent, key=lambda log: log.timestamp, reverse=True)

    async def history(self, medication_id: str, days: int = 7) -> list[HistoryDay]:
        """Get a medication's dose logs of recent days grouped by date.

        Args:
            medication_id: Medication id
            days: Number of days to cover, including today

        Returns:
            HistoryDay entries for days with logs, newest day first
        """
        since = today() - timedelta(days=days - 1)
        grouped: dict[date, HistoryDay] = {}
        for log in await self.logs_in_window(medication_id, since):
            day = local_date(log.timestamp)
            grouped.setdefault(day, HistoryDay(day=day)).logs.append(log)
        return sorted(grouped.values(), key=lambda entry: entry.day, reverse=True)

    async def due_medications(self, person_id: str, day: date) -> list[Medication]:
        """Get a person's scheduled medications that are due on a date.

        Args:
            person_id: Person id
            day: Local date

        Returns:
            Due medications ordered by sort order
        """
        medications = await self.repository.list_medications(person_id)
        return [
            med for med in medications
            if not med.is_as_needed and recurrence.is_due(med, day)
        ]
