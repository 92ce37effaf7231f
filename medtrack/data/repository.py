"""Domain repository over collection storage."""

from typing import Any, Optional

from medtrack.utils import log_operation, logger

from .errors import MalformedImportError, PartialCascadeError
from .models import (
    DEFAULT_PERSON_NAME,
    SETTING_HAS_SEEN_WELCOME,
    DoseLog,
    Medication,
    Person,
    generate_id,
)
from .storage import DOSE_LOGS, MEDICATIONS, PEOPLE, SETTINGS, SQLiteStorage


class Repository:
    """Typed access to people, medications, dose logs and settings.

    Handles:
    - Default person creation ("Me") when no people exist
    - Cascade deletes (person -> medications -> dose logs)
    - Snapshot export and destructive import
    - Consistency sweep for records orphaned by interrupted cascades

    Cascades are two separate storage operations. If the second one fails
    the parent stays deleted, PartialCascadeError is raised, and reconcile()
    removes the orphans later.
    """

    def __init__(self, storage: SQLiteStorage):
        """Initialize repository.

        Args:
            storage: Storage engine used for persistence
        """
        self.storage = storage

    async def init(self) -> None:
        """Initialize storage and make sure at least one person exists."""
        await self.storage.init()
        await self.ensure_default_person()

    async def ensure_default_person(self) -> Optional[Person]:
        """Create the default person if the people collection is empty.

        Returns:
            Created Person, or None if people already existed
        """
        if await self.storage.list(PEOPLE):
            return None

        person = Person(id=generate_id(), name=DEFAULT_PERSON_NAME)
        await self.storage.insert(PEOPLE, person.to_dict())
        logger.info(f"Created default person: {person.id}")
        return person

    # People

    async def list_people(self) -> list[Person]:
        return [Person.from_dict(data) for data in await self.storage.list(PEOPLE)]

    async def get_person(self, person_id: str) -> Optional[Person]:
        data = await self.storage.get(PEOPLE, person_id)
        return Person.from_dict(data) if data else None

    async def add_person(self, name: str, person_id: Optional[str] = None) -> Person:
        """Create and store a new person.

        Args:
            name: Display name
            person_id: Explicit id (generated when omitted)

        Returns:
            Created Person

        Raises:
            DuplicateKeyError: If person_id is already taken
        """
        person = Person(id=person_id or generate_id(), name=name)
        await self.storage.insert(PEOPLE, person.to_dict())
        log_operation("person_added", person_id=person.id)
        return person

    async def delete_person(self, person_id: str) -> int:
        """Delete a person and all of their medications.

        Each medication goes through delete_medication(), so its dose logs
        are removed as well.

        Args:
            person_id: Person id

        Returns:
            Number of medications deleted with the person

        Raises:
            PartialCascadeError: If the person was deleted but removing the
                medications failed
        """
        await self.storage.remove(PEOPLE, person_id)

        deleted = 0
        try:
            for medication in await self.list_medications(person_id):
                await self.delete_medication(medication.id)
                deleted += 1
        except Exception as e:
            logger.opt(exception=True).error(
                f"Cascade delete for person {person_id} interrupted after "
                f"{deleted} medication(s): {type(e).__name__}: {e}"
            )
            raise PartialCascadeError(PEOPLE, person_id) from e

        log_operation("person_deleted", person_id=person_id, medications_deleted=deleted)
        return deleted

    # Medications

    async def list_medications(self, person_id: Optional[str] = None) -> list[Medication]:
        """Get medications ordered by sort order.

        Args:
            person_id: Only return this person's medications when given

        Returns:
            List of Medication instances
        """
        medications = [
            Medication.from_dict(data) for data in await self.storage.list(MEDICATIONS)
        ]
        if person_id is not None:
            medications = [med for med in medications if med.person_id == person_id]
        return sorted(medications, key=lambda med: med.sort_order)

    async def get_medication(self, medication_id: str) -> Optional[Medication]:
        data = await self.storage.get(MEDICATIONS, medication_id)
        return Medication.from_dict(data) if data else None

    async def next_sort_order(self, person_id: str) -> int:
        """Get the sort order one past the person's current last medication."""
        medications = await self.list_medications(person_id)
        return max((med.sort_order for med in medications), default=0) + 1

    async def add_medication(self, medication: Medication) -> Medication:
        """Store a new medication.

        A sort order of 0 is replaced with one past the person's last
        medication, so new medications go to the end of the list.

        Args:
            medication: Medication to store

        Returns:
            Stored Medication

        Raises:
            DuplicateKeyError: If the medication id is already taken
        """
        if not medication.sort_order:
            medication.sort_order = await self.next_sort_order(medication.person_id)

        await self.storage.insert(MEDICATIONS, medication.to_dict())
        log_operation(
            "medication_added",
            medication_id=medication.id,
            person_id=medication.person_id,
        )
        return medication

    async def update_medication(self, medication: Medication) -> None:
        await self.storage.put(MEDICATIONS, medication.to_dict())
        logger.debug(f"Updated medication: {medication.id}")

    async def reorder_medications(self, medication_ids: list[str]) -> None:
        """Set sort order of medications to their position in the list.

        Args:
            medication_ids: Medication ids in the desired order
        """
        for position, medication_id in enumerate(medication_ids):
            medication = await self.get_medication(medication_id)
            if medication is None:
                logger.warning(f"Skipping unknown medication in reorder: {medication_id}")
                continue
            medication.sort_order = position
            await self.storage.put(MEDICATIONS, medication.to_dict())

    async def delete_medication(self, medication_id: str) -> int:
        """Delete a medication and its dose logs.

        Args:
            medication_id: Medication id

        Returns:
            Number of dose logs deleted with the medication

        Raises:
            PartialCascadeError: If the medication was deleted but removing
                its dose logs failed
        """
        await self.storage.remove(MEDICATIONS, medication_id)

        deleted = 0
        try:
            for log in await self.list_dose_logs(medication_id):
                await self.storage.remove(DOSE_LOGS, log.id)
                deleted += 1
        except Exception as e:
            logger.opt(exception=True).error(
                f"Cascade delete for medication {medication_id} interrupted after "
                f"{deleted} dose log(s): {type(e).__name__}: {e}"
            )
            raise PartialCascadeError(MEDICATIONS, medication_id) from e

        log_operation("medication_deleted", medication_id=medication_id, logs_deleted=deleted)
        return deleted

    # Dose logs

    async def list_dose_logs(self, medication_id: Optional[str] = None) -> list[DoseLog]:
        logs = [DoseLog.from_dict(data) for data in await self.storage.list(DOSE_LOGS)]
        if medication_id is not None:
            logs = [log for log in logs if log.medication_id == medication_id]
        return logs

    async def add_dose_log(self, log: DoseLog) -> DoseLog:
        await self.storage.insert(DOSE_LOGS, log.to_dict())
        logger.debug(f"Added dose log {log.id} for medication {log.medication_id}")
        return log

    async def delete_dose_log(self, log_id: str) -> bool:
        return await self.storage.remove(DOSE_LOGS, log_id)

    # Settings

    async def get_setting(self, key: str, default: Any = None) -> Any:
        data = await self.storage.get(SETTINGS, key)
        if data is None:
            return default
        return data.get("value", default)

    async def put_setting(self, key: str, value: Any) -> None:
        await self.storage.put(SETTINGS, {"id": key, "value": value})

    async def has_seen_welcome(self) -> bool:
        return bool(await self.get_setting(SETTING_HAS_SEEN_WELCOME, False))

    async def mark_welcome_seen(self) -> None:
        await self.put_setting(SETTING_HAS_SEEN_WELCOME, True)

    # Snapshots

    async def export_snapshot(self) -> dict:
        """Export people, medications and dose logs.

        Returns:
            Dictionary with "people", "medications" and "doseLogs" lists
        """
        return {
            "people": [person.to_dict() for person in await self.list_people()],
            "medications": [med.to_dict() for med in await self.list_medications()],
            "doseLogs": [log.to_dict() for log in await self.list_dose_logs()],
        }

    @staticmethod
    def _check_record(collection: str, index: int, data: Any) -> None:
        """Reject record shapes that would fail on insert or on later reads.

        Raises:
            MalformedImportError: If the record is not an object, has no
                usable id, or has mistyped fields
        """
        where = f"'{collection}' record {index}"
        if not isinstance(data, dict):
            raise MalformedImportError(f"{where} must be an object")

        record_id = data.get("id")
        if isinstance(record_id, bool) or not isinstance(record_id, (str, int)) or record_id == "":
            raise MalformedImportError(f"{where} has no usable 'id': {record_id!r}")

        if collection == MEDICATIONS:
            times = data.get("times")
            if times is not None and not (
                isinstance(times, list) and all(isinstance(t, str) for t in times)
            ):
                raise MalformedImportError(f"{where} 'times' must be a list of HH:MM strings")

        if collection == DOSE_LOGS:
            timestamp = data.get("timestamp")
            if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
                raise MalformedImportError(f"{where} 'timestamp' must be epoch milliseconds")
            scheduled_time = data.get("scheduledTime")
            if scheduled_time is not None and not isinstance(scheduled_time, str):
                raise MalformedImportError(f"{where} 'scheduledTime' must be a string or null")

    @staticmethod
    def validate_snapshot(snapshot: Any) -> tuple[list[Person], list[Medication], list[DoseLog]]:
        """Parse an import document without touching storage.

        Args:
            snapshot: Decoded import document

        Returns:
            Tuple of (people, medications, dose_logs)

        Raises:
            MalformedImportError: If required lists are missing or a record
                cannot be parsed
        """
        if not isinstance(snapshot, dict):
            raise MalformedImportError("Import document must be an object")

        for key in ("people", "medications"):
            if not isinstance(snapshot.get(key), list):
                raise MalformedImportError(f"Import document is missing '{key}' list")

        dose_logs = snapshot.get("doseLogs")
        if dose_logs is None:
            dose_logs = []
        elif not isinstance(dose_logs, list):
            raise MalformedImportError("'doseLogs' must be a list")

        for key, records in (
            (PEOPLE, snapshot["people"]),
            (MEDICATIONS, snapshot["medications"]),
            (DOSE_LOGS, dose_logs),
        ):
            for index, data in enumerate(records):
                Repository._check_record(key, index, data)

        try:
            people = [Person.from_dict(data) for data in snapshot["people"]]
            medications = [Medication.from_dict(data) for data in snapshot["medications"]]
            logs = [DoseLog.from_dict(data) for data in dose_logs]
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedImportError(
                f"Invalid record in import document: {type(e).__name__}: {e}"
            ) from e

        for key, records in (("people", people), ("medications", medications), ("doseLogs", logs)):
            ids = [str(record.id) for record in records]
            if len(ids) != len(set(ids)):
                raise MalformedImportError(f"Duplicate ids in '{key}'")

        return people, medications, logs

    async def import_snapshot(self, snapshot: Any) -> None:
        """Replace people, medications and dose logs with a snapshot.

        The document is validated first; nothing is cleared when it is
        malformed. Settings are not touched.

        Args:
            snapshot: Decoded import document

        Raises:
            MalformedImportError: If the document is malformed
        """
        people, medications, logs = self.validate_snapshot(snapshot)

        for collection in (PEOPLE, MEDICATIONS, DOSE_LOGS):
            await self.storage.clear(collection)

        await self.storage.insert_many(PEOPLE, [person.to_dict() for person in people])
        await self.storage.insert_many(MEDICATIONS, [med.to_dict() for med in medications])
        await self.storage.insert_many(DOSE_LOGS, [log.to_dict() for log in logs])

        log_operation(
            "snapshot_imported",
            people=len(people),
            medications=len(medications),
            dose_logs=len(logs),
        )

    async def reset(self) -> Person:
        """Delete all people, medications and dose logs and start over.

        Returns:
            The new default person
        """
        for collection in (PEOPLE, MEDICATIONS, DOSE_LOGS):
            await self.storage.clear(collection)
        log_operation("data_reset")
        return await self.ensure_default_person()

    async def reconcile(self) -> dict:
        """Remove medications and dose logs whose parent no longer exists.

        Returns:
            Dictionary with "medications" and "doseLogs" removal counts
        """
        person_ids = {person.id for person in await self.list_people()}
        removed_medications = 0
        for medication in await self.list_medications():
            if medication.person_id not in person_ids:
                await self.storage.remove(MEDICATIONS, medication.id)
                removed_medications += 1

        medication_ids = {med.id for med in await self.list_medications()}
        removed_logs = 0
        for log in await self.list_dose_logs():
            if log.medication_id not in medication_ids:
                await self.storage.remove(DOSE_LOGS, log.id)
                removed_logs += 1

        if removed_medications or removed_logs:
            logger.warning(
                f"Removed orphaned records: {removed_medications} medication(s), "
                f"{removed_logs} dose log(s)"
            )
        return {"medications": removed_medications, "doseLogs": removed_logs}
