"""Shared fixtures for tests."""

import tempfile
from datetime import date, datetime, time
from pathlib import Path

import pytest
import pytest_asyncio

from medtrack.data.models import Medication, generate_id
from medtrack.data.repository import Repository
from medtrack.data.storage import SQLiteStorage
from medtrack.services.backup import BackupCoordinator
from medtrack.services.dose_tracker import DoseTracker


def ms_at(day: date, hour: int = 9, minute: int = 0) -> int:
    """Get epoch ms of a local wall-clock time on a date."""
    return int(datetime.combine(day, time(hour, minute)).timestamp() * 1000)


def make_medication(person_id: str, **overrides) -> Medication:
    """Build a scheduled daily medication with optional field overrides."""
    fields = {
        "id": generate_id(),
        "person_id": person_id,
        "name": "Aspirin",
        "dosage": "200 mg",
        "times": ["08:00"],
        "created_at": ms_at(date(2024, 1, 1)),
    }
    fields.update(overrides)
    return Medication(**fields)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data.

    Yields:
        Path: Path to temporary directory
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage(temp_data_dir):
    """Create storage in the temp directory (not initialized).

    Returns:
        SQLiteStorage: Storage instance for testing
    """
    return SQLiteStorage(temp_data_dir / "medtrack.db")


@pytest_asyncio.fixture
async def repository(storage):
    """Create an initialized Repository.

    Returns:
        Repository: Repository with the default person created
    """
    repo = Repository(storage)
    await repo.init()
    return repo


@pytest_asyncio.fixture
async def person(repository):
    """Get the default person created on init."""
    people = await repository.list_people()
    return people[0]


@pytest.fixture
def dose_tracker(repository):
    return DoseTracker(repository)


@pytest.fixture
def backup_coordinator(repository):
    return BackupCoordinator(repository)


@pytest.fixture(name="ms_at")
def ms_at_fixture():
    """Provide ms_at(day, hour, minute) to tests."""
    return ms_at


@pytest.fixture(name="make_medication")
def make_medication_fixture():
    """Provide make_medication(person_id, **overrides) to tests."""
    return make_medication


@pytest.fixture
def legacy_snapshot():
    """Export document written before recurrence rules existed.

    Returns:
        dict: Snapshot with a bare "days" list and no "recurrence" field
    """
    return {
        "people": [
            {"id": "p1", "name": "Me"},
            {"id": "p2", "name": "Grandma"},
        ],
        "medications": [
            {
                "id": "m1",
                "personId": "p1",
                "name": "Vitamin D",
                "dosage": "1000 IU",
                "frequency": "scheduled",
                "times": ["08:00"],
                "days": [1, 2, 3, 4, 5],
                "createdAt": 1704096000000,
                "sortOrder": 1,
            },
            {
                "id": "m2",
                "personId": "p2",
                "name": "Ibuprofen",
                "dosage": "400 mg",
                "frequency": "asneeded",
                "times": [],
                "recurrence": None,
                "notes": "With food",
                "createdAt": 1704096000000,
                "sortOrder": 1,
            },
        ],
        "doseLogs": [
            {"id": "l1", "medicationId": "m1", "scheduledTime": "08:00", "timestamp": 1704099600000},
            {"id": "l2", "medicationId": "m2", "scheduledTime": None, "timestamp": 1704103200000},
        ],
    }
