"""
Abstract Storage Interface

DESIGN DECISION: The engine owns the data; persistence is a collaborator.
This interface is the whole contract between them. It allows us to:
1. Use in-memory storage for testing
2. Keep a JSON file on disk for a single-user install
3. Swap in a real database later without touching the engine

The interface is intentionally simple - a keyed document store of
JSON-ready dicts, one namespace per collection. Entities are written in
their backup form (camelCase keys), so a stored collection and an
exported one look the same.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from finquest.models.audit import AuditEvent


# Budgets are keyed by their category; everything else by its own id.
KEY_FIELDS = {
    "budgets": "categoryId",
}
DEFAULT_KEY_FIELD = "id"


def key_of(collection: str, item: dict[str, Any], key: Optional[str] = None) -> str:
    """
    Storage key of an item.

    Raises:
        StorageError: If no key is given and the item carries none
    """
    if key is not None:
        return key
    field = KEY_FIELDS.get(collection, DEFAULT_KEY_FIELD)
    value = item.get(field)
    if value is None:
        raise StorageError(f"Item for '{collection}' has no '{field}' and no explicit key")
    return str(value)


class PersistenceInterface(ABC):
    """
    Abstract interface for the engine's persistence collaborator.

    Any storage implementation (memory, JSON file, a database, etc.)
    must implement these methods. Every method may raise StorageError.
    """

    @abstractmethod
    async def get_all(self, collection: str) -> list[dict[str, Any]]:
        """
        All items of a collection in insertion order.

        Args:
            collection: Collection name

        Returns:
            List of stored items (empty for an unknown collection)
        """
        pass

    @abstractmethod
    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        """
        One item by key.

        Returns:
            The item if found, None otherwise
        """
        pass

    @abstractmethod
    async def put(self, collection: str, item: dict[str, Any], key: Optional[str] = None) -> bool:
        """
        Insert or replace an item.

        Args:
            collection: Collection name
            item: JSON-ready item
            key: Explicit key; required for the ``system`` collection

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, key: str) -> bool:
        """
        Remove an item by key.

        Returns:
            True if something was removed
        """
        pass

    @abstractmethod
    async def clear(self, collection: str) -> bool:
        """
        Remove every item of a collection.

        Returns:
            True if cleared successfully
        """
        pass

    @abstractmethod
    async def replace_all(self, collection: str, items: list[dict[str, Any]]) -> bool:
        """
        Replace a whole collection in one write.

        Returns:
            True if written successfully
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one engine call).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass
