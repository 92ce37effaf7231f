"""Unit tests for collection storage."""

import sqlite3

import aiosqlite
import pytest

from medtrack.data.errors import (
    DuplicateKeyError,
    NotInitializedError,
    UnknownCollectionError,
)
from medtrack.data.storage import COLLECTIONS, SCHEMA_VERSION, SQLiteStorage


def table_names(db_path) -> set:
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    finally:
        conn.close()
    return {row[0] for row in rows}


# TC-STORAGE-001: Operations before init
@pytest.mark.asyncio
@pytest.mark.parametrize("operation,args", [
    ("list", ("people",)),
    ("get", ("people", "p1")),
    ("insert", ("people", {"id": "p1", "name": "Me"})),
    ("put", ("people", {"id": "p1", "name": "Me"})),
    ("remove", ("people", "p1")),
    ("clear", ("people",)),
])
async def test_operations_fail_before_init(storage, operation, args):
    """Test that every operation raises NotInitializedError before init()."""
    with pytest.raises(NotInitializedError):
        await getattr(storage, operation)(*args)


# TC-STORAGE-002: Init creates all collections
@pytest.mark.asyncio
async def test_init_creates_collections(storage):
    """Test that a fresh database gets every collection."""
    await storage.init()

    assert storage.initialized
    assert set(COLLECTIONS) <= table_names(storage.db_path)
    for collection in COLLECTIONS:
        assert await storage.list(collection) == []


# TC-STORAGE-003: Upgrade from schema version 1 keeps data
@pytest.mark.asyncio
async def test_upgrade_from_v1_keeps_existing_data(temp_data_dir):
    """Test that upgrading adds settings/doseLogs without touching people."""
    # Given: A version 1 database with only people and medications
    db_path = temp_data_dir / "old.db"
    with sqlite3.connect(db_path) as conn:
        conn.execute('CREATE TABLE "people" (id TEXT PRIMARY KEY, data TEXT NOT NULL)')
        conn.execute('CREATE TABLE "medications" (id TEXT PRIMARY KEY, data TEXT NOT NULL)')
        conn.execute(
            'INSERT INTO "people" (id, data) VALUES (?, ?)',
            ("p1", '{"id": "p1", "name": "Me"}')
        )
        conn.execute("PRAGMA user_version = 1")
    conn.close()

    # When: Opening with the current schema
    storage = SQLiteStorage(db_path)
    await storage.init()

    # Then: New collections exist and old data survives
    assert {"settings", "doseLogs"} <= table_names(db_path)
    assert await storage.list("people") == [{"id": "p1", "name": "Me"}]

    with sqlite3.connect(db_path) as conn:
        assert conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION
    conn.close()


# TC-STORAGE-004: Init is repeatable
@pytest.mark.asyncio
async def test_init_twice_keeps_data(storage):
    """Test that re-opening storage does not clear records."""
    await storage.init()
    await storage.insert("people", {"id": "p1", "name": "Me"})

    await SQLiteStorage(storage.db_path).init()

    assert await storage.list("people") == [{"id": "p1", "name": "Me"}]


# TC-STORAGE-005: Insert and list in insertion order
@pytest.mark.asyncio
async def test_insert_and_list(storage):
    """Test that records come back in insertion order."""
    await storage.init()
    for key in ["c", "a", "b"]:
        await storage.insert("people", {"id": key, "name": key.upper()})

    records = await storage.list("people")

    assert [record["id"] for record in records] == ["c", "a", "b"]


# TC-STORAGE-006: Duplicate key
@pytest.mark.asyncio
async def test_insert_duplicate_key(storage):
    """Test that insert never overwrites an existing record."""
    await storage.init()
    await storage.insert("people", {"id": "p1", "name": "Me"})

    with pytest.raises(DuplicateKeyError) as exc_info:
        await storage.insert("people", {"id": "p1", "name": "Someone else"})

    assert exc_info.value.collection == "people"
    assert exc_info.value.key == "p1"
    assert await storage.get("people", "p1") == {"id": "p1", "name": "Me"}


# TC-STORAGE-007: Put upserts
@pytest.mark.asyncio
async def test_put_inserts_and_replaces(storage):
    """Test that put creates missing records and replaces existing ones."""
    await storage.init()

    await storage.put("settings", {"id": "backupReminder", "value": False})
    await storage.put("settings", {"id": "backupReminder", "value": True})

    assert await storage.list("settings") == [{"id": "backupReminder", "value": True}]


# TC-STORAGE-008: Remove is idempotent
@pytest.mark.asyncio
async def test_remove_is_idempotent(storage):
    """Test that removing an absent key is not an error."""
    await storage.init()
    await storage.insert("doseLogs", {"id": "l1", "medicationId": "m1"})

    assert await storage.remove("doseLogs", "l1") is True
    assert await storage.remove("doseLogs", "l1") is False
    assert await storage.get("doseLogs", "l1") is None


# TC-STORAGE-009: Clear
@pytest.mark.asyncio
async def test_clear_only_affects_one_collection(storage):
    """Test that clear empties just the given collection."""
    await storage.init()
    await storage.insert("people", {"id": "p1", "name": "Me"})
    await storage.insert("medications", {"id": "m1", "personId": "p1"})

    assert await storage.clear("people") == 1

    assert await storage.list("people") == []
    assert len(await storage.list("medications")) == 1


# TC-STORAGE-010: Batch insert is all-or-nothing
@pytest.mark.asyncio
async def test_insert_many_rolls_back_on_duplicate(storage):
    """Test that a colliding batch leaves the collection unchanged."""
    await storage.init()
    await storage.insert("people", {"id": "p2", "name": "Existing"})

    with pytest.raises(DuplicateKeyError):
        await storage.insert_many("people", [
            {"id": "p1", "name": "New"},
            {"id": "p2", "name": "Clash"},
        ])

    assert await storage.list("people") == [{"id": "p2", "name": "Existing"}]


# TC-STORAGE-011: Durability across instances
@pytest.mark.asyncio
async def test_records_survive_reopen(storage):
    """Test that committed records are visible to a new storage instance."""
    await storage.init()
    await storage.insert("medications", {"id": "m1", "name": "Aspirin", "times": ["08:00"]})

    reopened = SQLiteStorage(storage.db_path)
    await reopened.init()

    assert await reopened.get("medications", "m1") == {
        "id": "m1", "name": "Aspirin", "times": ["08:00"]
    }


# TC-STORAGE-012: Unknown collection and missing id
@pytest.mark.asyncio
async def test_rejects_unknown_collection_and_missing_id(storage):
    """Test validation of collection names and record keys."""
    await storage.init()

    with pytest.raises(UnknownCollectionError):
        await storage.list("users; DROP TABLE people")

    with pytest.raises(ValueError):
        await storage.insert("people", {"name": "No id"})


# TC-STORAGE-013: Write failures are logged and re-raised
@pytest.mark.asyncio
async def test_write_failure_with_braces_is_reraised(storage, monkeypatch):
    """Test that a key or error text containing braces does not mask the failure."""
    await storage.init()

    def mock_connect_fail(*args, **kwargs):
        raise aiosqlite.OperationalError("database is locked {db}")

    monkeypatch.setattr(aiosqlite, "connect", mock_connect_fail)

    with pytest.raises(aiosqlite.OperationalError, match="locked"):
        await storage.put("settings", {"id": "{key}", "value": 1})
    with pytest.raises(aiosqlite.OperationalError, match="locked"):
        await storage.remove("people", "{0}")
