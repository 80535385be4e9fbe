"""
Shared fixtures.

Everything runs against a fixed clock (15 June 2024, noon) and the
in-memory storage backend. No files, no network.
"""

from decimal import Decimal

import pytest

from factories import NOW
from finquest.audit import AuditLogger
from finquest.catalog import default_categories, main_account
from finquest.config import EngineSettings
from finquest.engine.store import EntityStore
from finquest.models.snapshot import FinanceSnapshot
from finquest.orchestrator import FinanceEngine
from finquest.services.storage import InMemoryAuditStorage, InMemoryStorage


@pytest.fixture
def store() -> EntityStore:
    """A store as it looks right after onboarding with 1000 in the bank."""
    s = EntityStore()
    s.load(FinanceSnapshot(
        transactions=[],
        accounts=[main_account(Decimal("1000"))],
        categories=default_categories(),
    ))
    return s


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def engine(storage, audit_storage) -> FinanceEngine:
    return FinanceEngine(
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
        settings=EngineSettings(),
        now=lambda: NOW,
    )
