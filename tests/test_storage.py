"""Tests for the storage backends and the audit trail."""

import json
from uuid import uuid4

import pytest

from finquest.audit import AuditLogger, create_correlation_id
from finquest.models.audit import AuditEvent, AuditEventType
from finquest.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
    key_of,
)


ACCOUNT = {"id": "1", "name": "Main Account", "type": "checking", "balance": "1000"}
BUDGET = {"categoryId": "3", "limit": "300"}


class TestKeyOf:
    """Tests for storage key resolution."""

    def test_default_key_is_id(self):
        """Test that most collections key by id."""
        assert key_of("accounts", ACCOUNT) == "1"

    def test_budgets_key_by_category(self):
        """Test that budgets key by their category."""
        assert key_of("budgets", BUDGET) == "3"

    def test_explicit_key_wins(self):
        """Test that an explicit key is used as given."""
        assert key_of("system", {"name": "User"}, "user") == "user"

    def test_missing_key_raises(self):
        """Test that an item without a key cannot be stored."""
        with pytest.raises(StorageError, match="no 'id'"):
            key_of("system", {"name": "User"})


class TestInMemoryStorage:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_put_get_delete(self):
        """Test the basic keyed operations."""
        storage = InMemoryStorage()
        assert await storage.put("accounts", ACCOUNT) is True
        assert await storage.get("accounts", "1") == ACCOUNT
        assert await storage.delete("accounts", "1") is True
        assert await storage.delete("accounts", "1") is False
        assert await storage.get("accounts", "1") is None

    @pytest.mark.asyncio
    async def test_items_are_copied(self):
        """Test that callers cannot alias stored state."""
        storage = InMemoryStorage()
        item = dict(ACCOUNT)
        await storage.put("accounts", item)
        item["balance"] = "0"
        fetched = await storage.get("accounts", "1")
        fetched["name"] = "Changed"
        assert await storage.get("accounts", "1") == ACCOUNT

    @pytest.mark.asyncio
    async def test_replace_all_and_clear(self):
        """Test whole-collection writes."""
        storage = InMemoryStorage()
        await storage.put("accounts", {"id": "old", "name": "Old"})
        await storage.replace_all("accounts", [ACCOUNT, {"id": "2", "name": "Wallet"}])
        assert [a["id"] for a in await storage.get_all("accounts")] == ["1", "2"]
        await storage.clear("accounts")
        assert await storage.get_all("accounts") == []

    @pytest.mark.asyncio
    async def test_unknown_collection_is_empty(self):
        """Test that reading a collection never written gives nothing."""
        assert await InMemoryStorage().get_all("goals") == []


class TestJsonFileStorage:
    """Tests for the JSON file backend."""

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path):
        """Test that a second instance reads what the first wrote."""
        path = tmp_path / "finquest.json"
        first = JsonFileStorage(path)
        await first.put("accounts", ACCOUNT)
        await first.put("budgets", BUDGET)
        await first.put("system", {"name": "Ana"}, key="user")

        second = JsonFileStorage(path)
        assert await second.get("accounts", "1") == ACCOUNT
        assert await second.get("budgets", "3") == BUDGET
        assert await second.get("system", "user") == {"name": "Ana"}

    @pytest.mark.asyncio
    async def test_file_is_plain_json(self, tmp_path):
        """Test the document layout on disk."""
        path = tmp_path / "finquest.json"
        await JsonFileStorage(path).replace_all("accounts", [ACCOUNT])
        document = json.loads(path.read_text(encoding="utf-8"))
        assert document == {"accounts": {"1": ACCOUNT}}
        assert not (tmp_path / "finquest.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        """Test that a fresh install starts empty without creating a file."""
        storage = JsonFileStorage(tmp_path / "none.json")
        assert await storage.get_all("transactions") == []
        assert not (tmp_path / "none.json").exists()

    @pytest.mark.asyncio
    async def test_delete_missing_does_not_write(self, tmp_path):
        """Test that deleting nothing leaves the disk alone."""
        storage = JsonFileStorage(tmp_path / "data.json")
        assert await storage.delete("accounts", "nope") is False
        assert not (tmp_path / "data.json").exists()

    @pytest.mark.asyncio
    async def test_malformed_file(self, tmp_path):
        """Test that a corrupt document raises StorageError."""
        path = tmp_path / "bad.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(StorageError, match="Failed to read"):
            await JsonFileStorage(path).get_all("accounts")

    @pytest.mark.asyncio
    async def test_file_that_is_not_utf8(self, tmp_path):
        """Test that undecodable bytes on disk raise StorageError."""
        path = tmp_path / "binary.json"
        path.write_bytes(b"\xff\xfe{}")
        with pytest.raises(StorageError, match="Failed to read"):
            await JsonFileStorage(path).get_all("accounts")

    @pytest.mark.asyncio
    async def test_non_object_document(self, tmp_path):
        """Test that a JSON list is not a valid document."""
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(StorageError, match="Malformed"):
            await JsonFileStorage(path).get_all("accounts")

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, tmp_path, monkeypatch):
        """Test that one failed write is retried and then succeeds."""
        storage = JsonFileStorage(tmp_path / "data.json", retry_attempts=3, wait_max=0)
        real_write = storage._write_file
        calls = []

        def flaky(document):
            calls.append(1)
            if len(calls) == 1:
                raise OSError("disk busy")
            real_write(document)

        monkeypatch.setattr(storage, "_write_file", flaky)
        assert await storage.put("accounts", ACCOUNT) is True
        assert len(calls) == 2
        assert await storage.get("accounts", "1") == ACCOUNT

    @pytest.mark.asyncio
    async def test_persistent_error_raises_and_keeps_state(self, tmp_path, monkeypatch):
        """Test that exhausting retries raises StorageError and changes nothing."""
        storage = JsonFileStorage(tmp_path / "data.json", retry_attempts=2, wait_max=0)
        await storage.put("accounts", ACCOUNT)

        def broken(document):
            raise OSError("read-only file system")

        monkeypatch.setattr(storage, "_write_file", broken)
        with pytest.raises(StorageError, match="read-only"):
            await storage.put("accounts", {"id": "2", "name": "Wallet"})
        assert [a["id"] for a in await storage.get_all("accounts")] == ["1"]


class TestAuditTrail:
    """Tests for audit storage and the audit logger."""

    @pytest.mark.asyncio
    async def test_events_by_correlation_id(self):
        """Test that one call's events can be pulled together."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        cid = create_correlation_id()
        await logger.log_change(AuditEventType.BUDGET_SET, "budget", "3", "Budget set", cid)
        await logger.log_change(AuditEventType.GOAL_ADDED, "goal", "g", "Goal added", uuid4())
        events = await storage.get_events_by_correlation_id(cid)
        assert [e.event_type for e in events] == [AuditEventType.BUDGET_SET]

    @pytest.mark.asyncio
    async def test_recent_events_newest_first(self):
        """Test the order of the recent events listing."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        await logger.log_change(AuditEventType.ACCOUNT_ADDED, "account", "1", "first")
        await logger.log_change(AuditEventType.ACCOUNT_ADDED, "account", "2", "second")
        recent = await storage.get_recent_events(limit=1)
        assert len(recent) == 1
        assert len(storage.events) == 2

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        """Test that a broken audit backend only returns False."""

        class BrokenAuditStorage(AuditStorageInterface):
            async def append_event(self, event):
                raise RuntimeError("audit db down")

            async def get_events_by_correlation_id(self, correlation_id):
                return []

            async def get_recent_events(self, limit=100):
                return []

        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEvent(event_type=AuditEventType.DATA_LOADED, description="Loaded")
        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_logger_without_storage(self):
        """Test that local-only logging succeeds."""
        event = AuditEvent(event_type=AuditEventType.DATA_LOADED, description="Loaded")
        assert await AuditLogger().log(event) is True
