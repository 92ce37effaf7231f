"""Data models for medication tracking."""

from dataclasses import dataclass, field
from typing import Any, Optional, Union
from uuid import uuid4

from loguru import logger


FREQUENCY_SCHEDULED = "scheduled"
FREQUENCY_AS_NEEDED = "asneeded"

# Setting keys
SETTING_HAS_SEEN_WELCOME = "hasSeenWelcome"
SETTING_BACKUP_REMINDER = "backupReminder"
SETTING_LAST_BACKUP = "lastBackup"
SETTING_LAST_BACKUP_REMINDER = "lastBackupReminder"

DEFAULT_PERSON_NAME = "Me"


def generate_id() -> str:
    """Generate a new unique record id."""
    return uuid4().hex


# Recurrence rules. Day of week numbering: Sunday = 0 ... Saturday = 6.

@dataclass(frozen=True)
class Daily:
    """Due every day."""

    def to_dict(self) -> dict:
        return {"type": "daily"}


@dataclass(frozen=True)
class Weekly:
    """Due on the given days of the week (empty or full set: every day)."""

    days: frozenset = frozenset()

    def to_dict(self) -> dict:
        return {"type": "weekly", "days": sorted(self.days)}


@dataclass(frozen=True)
class EveryNWeeks:
    """Due on the given days of every n-th week.

    Attributes:
        n: Cycle length in weeks (>= 1)
        days: Days of the week within a due week
        anchor: Epoch ms inside the first due week; the cycle starts on the
            Monday of that week. None falls back to the medication's createdAt.
    """

    n: int
    days: frozenset = frozenset()
    anchor: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "type": "everyNWeeks",
            "n": self.n,
            "days": sorted(self.days),
            "anchor": self.anchor,
        }


@dataclass(frozen=True)
class MonthlyByDate:
    """Due around a day of the month, clamped to the month's last day."""

    day_of_month: int

    def to_dict(self) -> dict:
        return {"type": "monthly", "mode": "date", "dayOfMonth": self.day_of_month}


@dataclass(frozen=True)
class MonthlyByWeekday:
    """Due on the n-th (1..4) or last (-1) given weekday of the month."""

    week: int
    dow: int

    def to_dict(self) -> dict:
        return {"type": "monthly", "mode": "weekday", "week": self.week, "dow": self.dow}


Recurrence = Union[Daily, Weekly, EveryNWeeks, MonthlyByDate, MonthlyByWeekday]


def _day_set(values: Any) -> frozenset:
    if not values:
        return frozenset()
    return frozenset(int(v) for v in values)


def recurrence_from_dict(data: Optional[dict]) -> Optional[Recurrence]:
    """Parse a stored recurrence dictionary.

    Unknown or corrupted shapes degrade to Daily instead of raising, so a
    bad record still shows up as due.

    Args:
        data: Recurrence dictionary or None

    Returns:
        Recurrence instance, or None when data is None
    """
    if data is None:
        return None

    try:
        rec_type = data.get("type")
        if rec_type == "daily":
            return Daily()
        if rec_type == "weekly":
            return Weekly(days=_day_set(data.get("days")))
        if rec_type == "everyNWeeks":
            n = int(data.get("n") or 1)
            anchor = data.get("anchor")
            return EveryNWeeks(
                n=max(n, 1),
                days=_day_set(data.get("days")),
                anchor=int(anchor) if anchor is not None else None,
            )
        if rec_type == "monthly":
            mode = data.get("mode", "date")
            if mode == "date":
                return MonthlyByDate(day_of_month=int(data.get("dayOfMonth") or 1))
            if mode == "weekday":
                week = data.get("week")
                dow = data.get("dow")
                return MonthlyByWeekday(
                    week=int(week if week is not None else 1),
                    dow=int(dow if dow is not None else 1),
                )
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Corrupted recurrence {data!r}: {type(e).__name__}: {e}")
        return Daily()

    logger.warning(f"Unknown recurrence shape {data!r}, treating as daily")
    return Daily()


def migrate_legacy_days(days: Optional[list]) -> Recurrence:
    """Convert a legacy bare days-of-week list to a recurrence rule.

    Args:
        days: Legacy list of weekday numbers, or None

    Returns:
        Daily when the list is absent or empty, Weekly otherwise
    """
    if not days:
        return Daily()
    try:
        return Weekly(days=_day_set(days))
    except (TypeError, ValueError) as e:
        logger.warning(f"Corrupted legacy days {days!r}, treating as daily: {type(e).__name__}")
        return Daily()


@dataclass
class Person:
    """Person whose medications are tracked."""

    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "Person":
        return cls(id=data["id"], name=data["name"])


@dataclass
class Medication:
    """Medication data model.

    Attributes:
        id: Unique identifier
        person_id: Id of the owning person (not enforced by storage)
        name: Name of the medication
        dosage: Free-form dosage text (e.g., "200 mg")
        frequency: "scheduled" or "asneeded"
        times: Dose slots in HH:MM (24h); empty for as-needed medications
        recurrence: Recurrence rule or None
        notes: Optional notes
        created_at: Creation time, epoch ms
        sort_order: Position within the person's list
        days: Legacy weekday list kept as stored; only read when recurrence is None
    """

    id: str
    person_id: str
    name: str
    dosage: str = ""
    frequency: str = FREQUENCY_SCHEDULED
    times: list[str] = field(default_factory=list)
    recurrence: Optional[Recurrence] = None
    notes: Optional[str] = None
    created_at: int = 0
    sort_order: int = 0
    days: Optional[list[int]] = None

    @property
    def is_as_needed(self) -> bool:
        return self.frequency == FREQUENCY_AS_NEEDED

    def effective_recurrence(self) -> Recurrence:
        """Return the recurrence rule, migrating the legacy days list if needed.

        The migration happens on read only; the stored record keeps its
        original shape.
        """
        if self.recurrence is not None:
            return self.recurrence
        return migrate_legacy_days(self.days)

    def to_dict(self) -> dict:
        """Convert medication to dictionary for JSON serialization.

        Returns:
            Dictionary in the storage/export shape
        """
        data = {
            "id": self.id,
            "personId": self.person_id,
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "times": list(self.times),
            "recurrence": self.recurrence.to_dict() if self.recurrence is not None else None,
            "createdAt": self.created_at,
            "sortOrder": self.sort_order,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        if self.days is not None:
            data["days"] = list(self.days)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Medication":
        """Create medication from dictionary.

        Args:
            data: Dictionary in the storage/export shape

        Returns:
            Medication instance
        """
        days = data.get("days")
        if days is not None and not isinstance(days, list):
            logger.warning(f"Ignoring legacy days {days!r} of medication {data.get('id')}: not a list")
            days = None
        times = data.get("times") or []
        if not isinstance(times, list):
            logger.warning(f"Ignoring times {times!r} of medication {data.get('id')}: not a list")
            times = []
        return cls(
            id=data["id"],
            person_id=data["personId"],
            name=data["name"],
            dosage=data.get("dosage", ""),
            frequency=data.get("frequency", FREQUENCY_SCHEDULED),
            times=list(times),
            recurrence=recurrence_from_dict(data.get("recurrence")),
            notes=data.get("notes"),
            created_at=data.get("createdAt", 0),
            sort_order=data.get("sortOrder") or 0,
            days=list(days) if days is not None else None,
        )


@dataclass
class DoseLog:
    """Record of a dose being taken.

    Attributes:
        id: Unique identifier
        medication_id: Id of the medication the dose belongs to
        scheduled_time: HH:MM slot this dose satisfies, None for as-needed
        timestamp: When the dose was logged, epoch ms
    """

    id: str
    medication_id: str
    scheduled_time: Optional[str]
    timestamp: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "medicationId": self.medication_id,
            "scheduledTime": self.scheduled_time,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DoseLog":
        return cls(
            id=data["id"],
            medication_id=data["medicationId"],
            scheduled_time=data.get("scheduledTime"),
            timestamp=data["timestamp"],
        )
