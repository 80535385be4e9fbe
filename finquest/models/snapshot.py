"""
Backup snapshot format.

A snapshot is the portable copy of every financial collection. It is
what ``export_data`` produces and what ``import_data`` accepts. Keys use
the camelCase spelling of the backup files, so older backups load as-is.
"""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from finquest.models.finance import Account, Budget, Category, Goal, Transaction, TransactionType


REQUIRED_SNAPSHOT_KEYS = ("transactions", "accounts", "categories")


class FinanceSnapshot(BaseModel):
    """Structured copy of the financial collections at one point in time."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    transactions: list[Transaction]
    accounts: list[Account]
    categories: list[Category]
    goals: list[Goal] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)
    exported_at: datetime = Field(default_factory=datetime.now)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.model_dump(mode="json", by_alias=True), indent=indent, ensure_ascii=False)


class SnapshotFormatError(ValueError):
    """The payload is not a usable backup."""
    pass


def check_category_types(snapshot: FinanceSnapshot) -> FinanceSnapshot:
    """
    Require at least one income and one expense category.

    Raises SnapshotFormatError naming the missing type(s).
    """
    present = {category.type for category in snapshot.categories}
    missing = [kind.value for kind in TransactionType if kind not in present]
    if missing:
        raise SnapshotFormatError(f"Backup needs at least one {' and one '.join(missing)} category")
    return snapshot


def parse_snapshot(payload: str | bytes | dict[str, Any]) -> FinanceSnapshot:
    """
    Parse a backup payload.

    Raises SnapshotFormatError when the payload is not JSON, lacks one of
    the required arrays, holds entities that fail validation, or lacks an
    income or an expense category.
    """
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SnapshotFormatError(f"Backup is not valid JSON: {e}") from e
    else:
        data = payload

    if not isinstance(data, dict):
        raise SnapshotFormatError("Backup must be a JSON object")

    missing = [key for key in REQUIRED_SNAPSHOT_KEYS if not isinstance(data.get(key), list)]
    if missing:
        raise SnapshotFormatError(f"Backup is missing required arrays: {', '.join(missing)}")

    # Older backups write null for the optional arrays.
    cleaned = {key: value for key, value in data.items() if value is not None}
    try:
        snapshot = FinanceSnapshot.model_validate(cleaned)
    except ValidationError as e:
        raise SnapshotFormatError(f"Backup contains invalid entries: {e.error_count()} problem(s)") from e
    return check_category_types(snapshot)
