"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON document on disk is the persistent backend
for a single-user install because:
1. The user can open and read their data directly
2. No database setup required
3. The file doubles as a backup

TRADEOFFS:
- The whole document is rewritten on every change (fine for personal use)
- One writer at a time (the engine already serializes its mutations)

Every write goes to a temporary file that is then moved over the real
one, so a crash mid-write never leaves a truncated document. Transient
OS errors are retried with exponential backoff before a StorageError is
raised.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from finquest.services.storage.interface import (
    PersistenceInterface,
    StorageError,
    key_of,
)


Document = dict[str, dict[str, dict[str, Any]]]


class JsonFileStorage(PersistenceInterface):
    """
    JSON file implementation of the persistence contract.

    The document maps collection name -> key -> item. It is read once,
    lazily, and kept in memory; the in-memory copy is replaced only after
    the file write succeeded.
    """

    def __init__(self, path: str | Path, retry_attempts: int = 3, wait_max: float = 10):
        self._path = Path(path).expanduser()
        self._document: Optional[Document] = None
        self._retrying = Retrying(
            stop=stop_after_attempt(retry_attempts),
            wait=wait_exponential(multiplier=1, min=0, max=wait_max),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Document:
        if self._document is None:
            if not self._path.exists():
                self._document = {}
            else:
                try:
                    raw = self._path.read_text(encoding="utf-8")
                    self._document = json.loads(raw) if raw.strip() else {}
                except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                    raise StorageError(f"Failed to read {self._path}: {e}")
                if not isinstance(self._document, dict):
                    self._document = None
                    raise StorageError(f"Malformed data file: {self._path}")
        return self._document

    def _write_file(self, document: Document) -> None:
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    def _commit(self, document: Document, action: str) -> bool:
        try:
            self._retrying(self._write_file, document)
        except OSError as e:
            raise StorageError(f"Failed to {action}: {e}")
        self._document = document
        return True

    def _edited(self) -> Document:
        return copy.deepcopy(self._read())

    async def get_all(self, collection: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(item) for item in self._read().get(collection, {}).values()]

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        item = self._read().get(collection, {}).get(key)
        return copy.deepcopy(item) if item is not None else None

    async def put(self, collection: str, item: dict[str, Any], key: Optional[str] = None) -> bool:
        document = self._edited()
        document.setdefault(collection, {})[key_of(collection, item, key)] = item
        return self._commit(document, f"save to '{collection}'")

    async def delete(self, collection: str, key: str) -> bool:
        document = self._edited()
        if document.get(collection, {}).pop(key, None) is None:
            return False
        return self._commit(document, f"delete from '{collection}'")

    async def clear(self, collection: str) -> bool:
        document = self._edited()
        document.pop(collection, None)
        return self._commit(document, f"clear '{collection}'")

    async def replace_all(self, collection: str, items: list[dict[str, Any]]) -> bool:
        document = self._edited()
        document[collection] = {key_of(collection, item): item for item in items}
        return self._commit(document, f"replace '{collection}'")
