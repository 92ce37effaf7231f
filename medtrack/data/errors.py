"""Exceptions raised by the storage and repository layers."""

from typing import Any


class StorageError(Exception):
    """Base exception for storage errors."""
    pass


class NotInitializedError(StorageError):
    """Raised when a storage operation runs before init() has completed."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Storage is not initialized (operation: {operation})")


class DuplicateKeyError(StorageError):
    """Raised when inserting a record whose key already exists."""

    def __init__(self, collection: str, key: Any):
        self.collection = collection
        self.key = key
        super().__init__(f"Record '{key}' already exists in '{collection}'")


class UnknownCollectionError(StorageError):
    """Raised for a collection name that is not part of the schema."""

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Unknown collection: '{collection}'")


class PartialCascadeError(StorageError):
    """Raised when a cascade delete removed the parent but not all children.

    The parent record is already gone; orphaned children may remain until
    Repository.reconcile() runs.
    """

    def __init__(self, collection: str, parent_id: str):
        self.collection = collection
        self.parent_id = parent_id
        super().__init__(
            f"Cascade delete of '{parent_id}' from '{collection}' did not complete; "
            "orphaned records may remain"
        )


class MalformedImportError(ValueError):
    """Raised when an import document is missing required data."""
    pass
