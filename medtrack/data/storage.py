"""SQLite-backed collection storage for medication tracking."""

import json
from pathlib import Path
from typing import Any, Iterable, Optional

import aiosqlite

from medtrack.utils import logger

from .errors import DuplicateKeyError, NotInitializedError, UnknownCollectionError


PEOPLE = "people"
MEDICATIONS = "medications"
SETTINGS = "settings"
DOSE_LOGS = "doseLogs"

# Collections introduced by each schema version
SCHEMA_VERSIONS = {
    1: (PEOPLE, MEDICATIONS),
    2: (SETTINGS, DOSE_LOGS),
}
SCHEMA_VERSION = max(SCHEMA_VERSIONS)
COLLECTIONS = tuple(
    name for version in sorted(SCHEMA_VERSIONS) for name in SCHEMA_VERSIONS[version]
)


class SQLiteStorage:
    """Key-value collections stored as JSON records in SQLite.

    Every collection is a table keyed by the record's "id" field. Each
    operation opens its own connection and commits before returning, so
    operations are durable and individually atomic. There are no
    transactions spanning several collections.
    """

    def __init__(self, db_path: Path):
        """Initialize storage.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def init(self) -> None:
        """Open the database and create any missing collections.

        Collections added by schema versions newer than the stored
        user_version are created; existing tables and rows are left alone.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("PRAGMA journal_mode=WAL")

            cursor = await db.execute("PRAGMA user_version")
            current_version = (await cursor.fetchone())[0]

            if current_version < SCHEMA_VERSION:
                logger.info(
                    f"Upgrading storage schema from version {current_version} "
                    f"to {SCHEMA_VERSION}: {self.db_path}"
                )

            for version in sorted(SCHEMA_VERSIONS):
                for collection in SCHEMA_VERSIONS[version]:
                    if version > current_version:
                        logger.debug(f"Creating collection: {collection}")
                    await db.execute(
                        f'CREATE TABLE IF NOT EXISTS "{collection}" ('
                        "id TEXT PRIMARY KEY, "
                        "data TEXT NOT NULL"
                        ")"
                    )

            if current_version < SCHEMA_VERSION:
                await db.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

            await db.commit()

        self._initialized = True
        logger.debug(f"Storage initialized: {self.db_path}")

    def _check(self, operation: str, collection: str) -> None:
        if not self._initialized:
            raise NotInitializedError(operation)
        if collection not in COLLECTIONS:
            raise UnknownCollectionError(collection)

    @staticmethod
    def _key_of(record: dict) -> str:
        if not isinstance(record, dict) or record.get("id") is None:
            raise ValueError(f"Record has no 'id' field: {record!r}")
        return str(record["id"])

    @staticmethod
    def _encode(record: dict) -> str:
        return json.dumps(record, ensure_ascii=False)

    async def list(self, collection: str) -> list[dict]:
        """Get all records of a collection in insertion order.

        Args:
            collection: Collection name

        Returns:
            List of record dictionaries
        """
        self._check("list", collection)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(f'SELECT data FROM "{collection}" ORDER BY rowid')
            rows = await cursor.fetchall()
            return [json.loads(row[0]) for row in rows]

    async def get(self, collection: str, key: Any) -> Optional[dict]:
        """Get a single record by key.

        Args:
            collection: Collection name
            key: Record id

        Returns:
            Record dictionary or None if not found
        """
        self._check("get", collection)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                f'SELECT data FROM "{collection}" WHERE id = ?',
                (str(key),)
            )
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None

    async def insert(self, collection: str, record: dict) -> None:
        """Insert a new record.

        Args:
            collection: Collection name
            record: Record dictionary with an "id" field

        Raises:
            DuplicateKeyError: If a record with the same id exists
        """
        self._check("insert", collection)
        key = self._key_of(record)
        async with aiosqlite.connect(self.db_path) as db:
            try:
                await db.execute(
                    f'INSERT INTO "{collection}" (id, data) VALUES (?, ?)',
                    (key, self._encode(record))
                )
                await db.commit()
            except aiosqlite.IntegrityError as e:
                raise DuplicateKeyError(collection, key) from e

    async def insert_many(self, collection: str, records: Iterable[dict]) -> int:
        """Insert several records into one collection in a single transaction.

        Either all records are inserted or none are.

        Args:
            collection: Collection name
            records: Record dictionaries

        Returns:
            Number of records inserted

        Raises:
            DuplicateKeyError: If any id collides (nothing is inserted)
        """
        self._check("insert_many", collection)
        rows = [(self._key_of(record), self._encode(record)) for record in records]
        if not rows:
            return 0

        async with aiosqlite.connect(self.db_path) as db:
            try:
                await db.executemany(
                    f'INSERT INTO "{collection}" (id, data) VALUES (?, ?)',
                    rows
                )
                await db.commit()
            except aiosqlite.IntegrityError as e:
                await db.rollback()
                raise DuplicateKeyError(collection, "<batch>") from e
        return len(rows)

    async def put(self, collection: str, record: dict) -> None:
        """Insert or replace a record.

        Args:
            collection: Collection name
            record: Record dictionary with an "id" field
        """
        self._check("put", collection)
        key = self._key_of(record)
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    f'INSERT INTO "{collection}" (id, data) VALUES (?, ?) '
                    "ON CONFLICT(id) DO UPDATE SET data = excluded.data",
                    (key, self._encode(record))
                )
                await db.commit()
        except aiosqlite.Error as e:
            logger.bind(collection=collection, key=key).opt(exception=True).error(
                f"Error saving '{key}' to {collection}: {type(e).__name__}: {e}"
            )
            raise

    async def remove(self, collection: str, key: Any) -> bool:
        """Remove a record by key. Missing keys are not an error.

        Args:
            collection: Collection name
            key: Record id

        Returns:
            True if a record was removed, False if it was absent
        """
        self._check("remove", collection)
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    f'DELETE FROM "{collection}" WHERE id = ?',
                    (str(key),)
                )
                await db.commit()
                return cursor.rowcount > 0
        except aiosqlite.Error as e:
            logger.bind(collection=collection, key=key).opt(exception=True).error(
                f"Error removing '{key}' from {collection}: {type(e).__name__}: {e}"
            )
            raise

    async def clear(self, collection: str) -> int:
        """Remove all records of a collection.

        Args:
            collection: Collection name

        Returns:
            Number of records removed
        """
        self._check("clear", collection)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(f'DELETE FROM "{collection}"')
            await db.commit()
            logger.debug(f"Cleared collection {collection}: {cursor.rowcount} record(s)")
            return cursor.rowcount
