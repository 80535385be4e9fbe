"""
In-Memory Storage Implementation

The default backend. Nothing survives the process, which is exactly what
tests and throwaway sessions want. Items are deep-copied on the way in
and out so callers can never alias stored state.
"""

import copy
from typing import Any, Optional
from uuid import UUID

from finquest.models.audit import AuditEvent
from finquest.services.storage.interface import (
    AuditStorageInterface,
    PersistenceInterface,
    key_of,
)


class InMemoryStorage(PersistenceInterface):
    """Dict-of-dicts implementation of the persistence contract."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    def _bucket(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(collection, {})

    async def get_all(self, collection: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(item) for item in self._data.get(collection, {}).values()]

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        item = self._data.get(collection, {}).get(key)
        return copy.deepcopy(item) if item is not None else None

    async def put(self, collection: str, item: dict[str, Any], key: Optional[str] = None) -> bool:
        self._bucket(collection)[key_of(collection, item, key)] = copy.deepcopy(item)
        return True

    async def delete(self, collection: str, key: str) -> bool:
        return self._data.get(collection, {}).pop(key, None) is not None

    async def clear(self, collection: str) -> bool:
        self._data.pop(collection, None)
        return True

    async def replace_all(self, collection: str, items: list[dict[str, Any]]) -> bool:
        self._data[collection] = {
            key_of(collection, item): copy.deepcopy(item) for item in items
        }
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """
    In-memory audit log.

    Audit events are append-only.
    """

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
