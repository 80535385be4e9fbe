"""
Entity Store

DESIGN DECISION: The store is the only owner of the financial
collections. Engines never touch it directly; they read it and return a
Mutation describing what should change. The orchestrator persists the
Mutation and only then hands it to ``apply``, so a half-applied change
is never observable in memory.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Optional

from pydantic import BaseModel

from finquest.catalog import achievement_catalog
from finquest.engine.errors import (
    AccountNotFoundError,
    CategoryNotFoundError,
    GoalNotFoundError,
    TransactionNotFoundError,
)
from finquest.models.finance import (
    Account,
    Achievement,
    Budget,
    Category,
    Goal,
    Transaction,
    UserProfile,
    new_id,
)
from finquest.models.snapshot import FinanceSnapshot


TRANSACTIONS = "transactions"
ACCOUNTS = "accounts"
CATEGORIES = "categories"
GOALS = "goals"
BUDGETS = "budgets"
SYSTEM = "system"

FINANCIAL_COLLECTIONS = (TRANSACTIONS, ACCOUNTS, CATEGORIES, GOALS, BUDGETS)

PROFILE_KEY = "user"
ACHIEVEMENT_KEY_PREFIX = "achievement_"


def achievement_key(achievement_id: str) -> str:
    return f"{ACHIEVEMENT_KEY_PREFIX}{achievement_id}"


@dataclass(frozen=True)
class Change:
    """One upsert (item set) or removal (item None) in one collection."""

    collection: str
    key: str
    item: Optional[BaseModel] = None

    @property
    def is_delete(self) -> bool:
        return self.item is None


@dataclass
class Mutation:
    """
    An ordered change set produced by an engine.

    Applying it is all-or-nothing from the point of view of readers:
    the store swaps every touched entity inside one call.
    """

    changes: list[Change] = field(default_factory=list)

    def put(self, collection: str, key: str, item: BaseModel) -> "Mutation":
        self.changes.append(Change(collection, key, item))
        return self

    def delete(self, collection: str, key: str) -> "Mutation":
        self.changes.append(Change(collection, key, None))
        return self

    def extend(self, other: "Mutation") -> "Mutation":
        self.changes.extend(other.changes)
        return self

    def __iter__(self) -> Iterator[Change]:
        return iter(self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)

    def __len__(self) -> int:
        return len(self.changes)


class EntityStore:
    """
    In-memory canonical collections.

    Collections are dicts keyed by entity id (budgets by category id) so
    identity is unique by construction. Insertion order is kept, which is
    the order the collections were created or loaded in.
    """

    def __init__(self):
        self._transactions: dict[str, Transaction] = {}
        self._accounts: dict[str, Account] = {}
        self._categories: dict[str, Category] = {}
        self._goals: dict[str, Goal] = {}
        self._budgets: dict[str, Budget] = {}
        self._achievements: dict[str, Achievement] = {
            a.id: a for a in achievement_catalog()
        }
        self._profile = UserProfile()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions.values())

    @property
    def accounts(self) -> list[Account]:
        return list(self._accounts.values())

    @property
    def categories(self) -> list[Category]:
        return list(self._categories.values())

    @property
    def goals(self) -> list[Goal]:
        return list(self._goals.values())

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets.values())

    @property
    def achievements(self) -> list[Achievement]:
        return list(self._achievements.values())

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def total_balance(self) -> Decimal:
        return sum((a.balance for a in self._accounts.values()), Decimal("0"))

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def get_category(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        return self._goals.get(goal_id)

    def get_budget(self, category_id: str) -> Optional[Budget]:
        return self._budgets.get(category_id)

    def require_transaction(self, transaction_id: str) -> Transaction:
        transaction = self._transactions.get(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    def require_account(self, account_id: str) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def require_category(self, category_id: str) -> Category:
        category = self._categories.get(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    def require_goal(self, goal_id: str) -> Goal:
        goal = self._goals.get(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)
        return goal

    def fresh_id(self, collection: str) -> str:
        """An id not yet used in the given collection."""
        existing = self._collection(collection)
        while True:
            candidate = new_id()
            if candidate not in existing:
                return candidate

    def snapshot(self) -> FinanceSnapshot:
        return FinanceSnapshot(
            transactions=[t.model_copy(deep=True) for t in self._transactions.values()],
            accounts=[a.model_copy() for a in self._accounts.values()],
            categories=[c.model_copy() for c in self._categories.values()],
            goals=[g.model_copy() for g in self._goals.values()],
            budgets=[b.model_copy() for b in self._budgets.values()],
        )

    # ------------------------------------------------------------------
    # Write access (orchestrator only)
    # ------------------------------------------------------------------

    def apply(self, mutation: Mutation) -> None:
        """Apply every change of an already-persisted mutation."""
        for change in mutation:
            if change.collection == SYSTEM:
                self._apply_system(change)
                continue
            target = self._collection(change.collection)
            if change.is_delete:
                target.pop(change.key, None)
            else:
                target[change.key] = change.item

    def load(
        self,
        snapshot: FinanceSnapshot,
        profile: Optional[UserProfile] = None,
        unlocked: Optional[list[Achievement]] = None,
    ) -> None:
        """Replace every collection at once (startup load, import)."""
        self._transactions = {t.id: t for t in snapshot.transactions}
        self._accounts = {a.id: a for a in snapshot.accounts}
        self._categories = {c.id: c for c in snapshot.categories}
        self._goals = {g.id: g for g in snapshot.goals}
        self._budgets = {b.category_id: b for b in snapshot.budgets}
        if profile is not None:
            self._profile = profile
        if unlocked is not None:
            self._achievements = {a.id: a for a in achievement_catalog()}
            for record in unlocked:
                base = self._achievements.get(record.id)
                if base is not None and record.unlocked_at is not None:
                    self._achievements[record.id] = base.model_copy(
                        update={"unlocked_at": record.unlocked_at}
                    )

    def _collection(self, name: str) -> dict:
        collections = {
            TRANSACTIONS: self._transactions,
            ACCOUNTS: self._accounts,
            CATEGORIES: self._categories,
            GOALS: self._goals,
            BUDGETS: self._budgets,
        }
        try:
            return collections[name]
        except KeyError:
            raise ValueError(f"Unknown collection: {name}")

    def _apply_system(self, change: Change) -> None:
        if change.key == PROFILE_KEY:
            self._profile = change.item if change.item is not None else UserProfile()
        elif change.key.startswith(ACHIEVEMENT_KEY_PREFIX):
            if change.item is None:
                raise ValueError("Achievements cannot be removed")
            current = self._achievements.get(change.item.id)
            # Unlocks are one-way.
            if current is not None and current.is_unlocked and not change.item.is_unlocked:
                return
            self._achievements[change.item.id] = change.item
        else:
            raise ValueError(f"Unknown system key: {change.key}")
