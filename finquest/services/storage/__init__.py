"""
Storage Services Package

Provides the abstract persistence contract and its implementations.
Currently ships an in-memory backend and a JSON file backend, but is
designed to be swappable.
"""

from finquest.services.storage.interface import (
    AuditStorageInterface,
    PersistenceInterface,
    StorageError,
    key_of,
)
from finquest.services.storage.json_file import JsonFileStorage
from finquest.services.storage.memory import InMemoryAuditStorage, InMemoryStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "PersistenceInterface",
    "key_of",
    # Exceptions
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "JsonFileStorage",
]
