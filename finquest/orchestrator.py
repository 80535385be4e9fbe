"""
Main Orchestrator for finquest

This module ties together the store, the engines, persistence and the
audit trail behind one facade, ``FinanceEngine``. Every collaborator
(UI, command interface, import/export) goes through it.

DESIGN DECISION: The orchestrator enforces the boundaries:
- One writer at a time (an asyncio.Lock around every mutation)
- Plan first, persist second, apply to memory last
- No mutation while the app is locked behind a PIN
- Every step is audited

Mutation pipeline:
1. Validate → Parse the draft, refuse malformed input
2. Plan → A pure engine function returns (result, Mutation)
3. Persist → Write every change to the persistence collaborator
4. Apply → Swap the changes into the in-memory store
5. Re-evaluate → Unlock achievements whose condition now holds
6. Notify → Queue notifications for the UI

A failure in steps 1-3 leaves the in-memory store exactly as it was.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from finquest.audit import AuditLogger, configure_logging, create_correlation_id
from finquest.catalog import achievement_catalog, default_categories, main_account
from finquest.config import EngineSettings, Settings, get_settings
from finquest.engine import accounts, analytics, ledger, planning
from finquest.engine.achievements import plan_unlock_achievements
from finquest.engine.errors import (
    FinanceError,
    ImportFormatError,
    LockedError,
)
from finquest.engine.store import (
    ACCOUNTS,
    BUDGETS,
    CATEGORIES,
    FINANCIAL_COLLECTIONS,
    GOALS,
    PROFILE_KEY,
    SYSTEM,
    TRANSACTIONS,
    Change,
    EntityStore,
    Mutation,
    achievement_key,
)
from finquest.engine.suggestions import suggest_category_and_account
from finquest.models.analytics import (
    BudgetStatus,
    CategoryExpense,
    CreditUsage,
    DailyFlow,
    FinancialHealth,
    Forecast,
    GoalFundResult,
    MonthlyTotals,
    Suggestion,
)
from finquest.models.audit import AuditEventType
from finquest.models.finance import (
    Account,
    Achievement,
    Budget,
    Category,
    Goal,
    GoalDraft,
    Notification,
    NotificationType,
    Transaction,
    TransactionDraft,
    UserProfile,
)
from finquest.models.snapshot import (
    FinanceSnapshot,
    SnapshotFormatError,
    check_category_types,
    parse_snapshot,
)
from finquest.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    PersistenceInterface,
    StorageError,
)
from finquest.validation import DraftValidator


logger = structlog.get_logger("finquest.engine")


def _dump(item: BaseModel) -> dict[str, Any]:
    """Backup form of an entity: JSON-ready, camelCase keys."""
    return item.model_dump(mode="json", by_alias=True)


class FinanceEngine:
    """
    The single authoritative finance state and its operations.

    Reads (analytics, suggestions, balances) are synchronous and pure
    over the current store. Mutations are async, serialized, persisted
    before they are applied, and audited.
    """

    def __init__(
        self,
        storage: Optional[PersistenceInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
        validator: Optional[DraftValidator] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._storage = storage or InMemoryStorage()
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().engine
        self._validator = validator or DraftValidator()
        self._now = now or datetime.now
        self._store = EntityStore()
        self._store.load(self._empty_snapshot())
        self._lock = asyncio.Lock()
        self._locked = False
        self._notifications: list[Notification] = []

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def profile(self) -> UserProfile:
        return self._store.profile

    @property
    def transactions(self) -> list[Transaction]:
        return self._store.transactions

    @property
    def accounts(self) -> list[Account]:
        return self._store.accounts

    @property
    def categories(self) -> list[Category]:
        return self._store.categories

    @property
    def goals(self) -> list[Goal]:
        return self._store.goals

    @property
    def budgets(self) -> list[Budget]:
        return self._store.budgets

    @property
    def achievements(self) -> list[Achievement]:
        return self._store.achievements

    @property
    def is_locked(self) -> bool:
        return self._locked

    def now(self) -> datetime:
        """The engine's notion of the current time."""
        return self._now()

    def drain_notifications(self) -> list[Notification]:
        """Return every queued notification and clear the queue."""
        drained, self._notifications = self._notifications, []
        return drained

    # ------------------------------------------------------------------
    # Pipeline internals
    # ------------------------------------------------------------------

    def _empty_snapshot(self) -> FinanceSnapshot:
        return FinanceSnapshot(transactions=[], accounts=[], categories=default_categories())

    def _notify(self, message: str, kind: NotificationType = NotificationType.SUCCESS) -> None:
        self._notifications.append(Notification(message=message, type=kind))

    def _ensure_unlocked(self) -> None:
        if self._locked:
            raise LockedError()

    @asynccontextmanager
    async def _operation(self, name: str, guarded: bool = True) -> AsyncIterator[UUID]:
        """
        Serialize one mutation and audit its refusal.

        Yields the correlation id shared by every event of the call.
        """
        correlation_id = create_correlation_id()
        async with self._lock:
            try:
                if guarded:
                    self._ensure_unlocked()
                yield correlation_id
            except FinanceError as e:
                await self._audit.log_rejected(name, e.code, e.message, correlation_id)
                self._notify(e.message, NotificationType.ERROR)
                raise

    async def _persist(self, mutation: Mutation) -> None:
        """
        Write every change to storage.

        If a write fails, the changes already written are put back the
        way they were before the error is re-raised.
        """
        written: list[tuple[Change, Optional[dict[str, Any]]]] = []
        try:
            for change in mutation:
                previous = await self._storage.get(change.collection, change.key)
                if change.is_delete:
                    await self._storage.delete(change.collection, change.key)
                else:
                    await self._storage.put(change.collection, _dump(change.item), key=change.key)
                written.append((change, previous))
        except StorageError:
            await self._restore(written)
            raise

    async def _restore(self, written: list[tuple[Change, Optional[dict[str, Any]]]]) -> None:
        for change, previous in reversed(written):
            try:
                if previous is None:
                    await self._storage.delete(change.collection, change.key)
                else:
                    await self._storage.put(change.collection, previous, key=change.key)
            except StorageError as e:
                logger.error(
                    "storage_restore_failed",
                    collection=change.collection,
                    key=change.key,
                    error=str(e),
                )

    async def _commit(self, mutation: Mutation, operation: str, correlation_id: UUID) -> None:
        if not mutation:
            return
        try:
            await self._persist(mutation)
        except StorageError as e:
            await self._audit.log_save_failed(operation, str(e), correlation_id)
            self._notify(f"Could not save: {e}", NotificationType.ERROR)
            raise
        self._store.apply(mutation)

    async def _write_state(
        self,
        collections: dict[str, list[dict[str, Any]]],
        system: dict[str, Optional[dict[str, Any]]],
    ) -> None:
        for name, items in collections.items():
            await self._storage.replace_all(name, items)
        for key, item in system.items():
            if item is None:
                await self._storage.delete(SYSTEM, key)
            else:
                await self._storage.put(SYSTEM, item, key=key)

    async def _restore_state(
        self,
        collections: dict[str, list[dict[str, Any]]],
        system: dict[str, Optional[dict[str, Any]]],
    ) -> None:
        for name, items in collections.items():
            try:
                await self._storage.replace_all(name, items)
            except StorageError as e:
                logger.error("storage_restore_failed", collection=name, error=str(e))
        for key, item in system.items():
            try:
                if item is None:
                    await self._storage.delete(SYSTEM, key)
                else:
                    await self._storage.put(SYSTEM, item, key=key)
            except StorageError as e:
                logger.error("storage_restore_failed", collection=SYSTEM, key=key, error=str(e))

    async def _rewrite(
        self,
        collections: dict[str, list[dict[str, Any]]],
        system: dict[str, Optional[dict[str, Any]]],
        operation: str,
        correlation_id: UUID,
    ) -> None:
        """
        Overwrite whole collections and system records as one unit.

        A None system record is deleted. If any write fails, everything
        read beforehand is written back before the error is re-raised.
        """
        previous_collections: dict[str, list[dict[str, Any]]] = {}
        previous_system: dict[str, Optional[dict[str, Any]]] = {}
        try:
            for name in collections:
                previous_collections[name] = await self._storage.get_all(name)
            for key in system:
                previous_system[key] = await self._storage.get(SYSTEM, key)
            await self._write_state(collections, system)
        except StorageError as e:
            await self._restore_state(previous_collections, previous_system)
            await self._audit.log_save_failed(operation, str(e), correlation_id)
            self._notify(f"Could not save: {e}", NotificationType.ERROR)
            raise

    async def _replace(
        self,
        snapshot: FinanceSnapshot,
        operation: str,
        correlation_id: UUID,
        profile: Optional[UserProfile] = None,
        unlocked: Optional[list[Achievement]] = None,
    ) -> None:
        """Write whole collections, then load them into memory in one step."""
        collections = {
            TRANSACTIONS: [_dump(t) for t in snapshot.transactions],
            ACCOUNTS: [_dump(a) for a in snapshot.accounts],
            CATEGORIES: [_dump(c) for c in snapshot.categories],
            GOALS: [_dump(g) for g in snapshot.goals],
            BUDGETS: [_dump(b) for b in snapshot.budgets],
        }
        system = {PROFILE_KEY: _dump(profile)} if profile is not None else {}
        await self._rewrite(collections, system, operation, correlation_id)
        self._store.load(snapshot, profile=profile, unlocked=unlocked)

    async def _reevaluate_achievements(self, correlation_id: UUID) -> list[Achievement]:
        """
        Unlock achievements whose condition now holds.

        Runs after the main change is saved and applied, so a failed
        unlock write is not raised to the caller. The unlock is retried
        by the next mutation.
        """
        unlocked, mutation = plan_unlock_achievements(self._store, self._now())
        try:
            await self._commit(mutation, "unlock_achievements", correlation_id)
        except StorageError as e:
            logger.warning("achievement_unlock_deferred", error=str(e))
            return []
        for achievement in unlocked:
            self._notify(f"Achievement unlocked: {achievement.title}!", NotificationType.ACHIEVEMENT)
            await self._audit.log_achievement_unlocked(
                achievement.id, achievement.title, achievement.xp_reward, correlation_id
            )
        return unlocked

    # ------------------------------------------------------------------
    # Startup, onboarding, profile and lock
    # ------------------------------------------------------------------

    async def load(self) -> UserProfile:
        """
        Restore state from persistence.

        Without a completed onboarding only the default categories are
        installed, in memory. A stored PIN starts the app locked.
        """
        correlation_id = create_correlation_id()
        async with self._lock:
            try:
                raw_profile = await self._storage.get(SYSTEM, PROFILE_KEY)
                profile = UserProfile.model_validate(raw_profile) if raw_profile else UserProfile()

                if profile.onboarding_completed:
                    payload = {name: await self._storage.get_all(name) for name in FINANCIAL_COLLECTIONS}
                    snapshot = FinanceSnapshot.model_validate(payload)
                    unlocked = []
                    for achievement in achievement_catalog():
                        record = await self._storage.get(SYSTEM, achievement_key(achievement.id))
                        if record:
                            unlocked.append(Achievement.model_validate(record))
                else:
                    snapshot = self._empty_snapshot()
                    unlocked = []
            except ValidationError as e:
                await self._audit.log_error("corrupt_storage", str(e), correlation_id=correlation_id)
                raise StorageError(f"Stored data is invalid: {e.error_count()} problem(s)") from e

            self._store.load(snapshot, profile=profile, unlocked=unlocked)
            self._locked = profile.security_pin is not None

            await self._audit.log_change(
                AuditEventType.DATA_LOADED, "store", None,
                f"Loaded {len(snapshot.transactions)} transaction(s), {len(snapshot.accounts)} account(s)",
                correlation_id,
            )

            due = ledger.check_recurring_due(self._store.transactions, self._now())
            if due:
                self._notify(
                    f"You have {due} recurring transaction(s) to confirm this month",
                    NotificationType.INFO,
                )
            return profile

    async def complete_onboarding(
        self,
        name: str,
        avatar: str = "👤",
        initial_balance: Any = 0,
    ) -> UserProfile:
        """
        Start fresh: profile, one checking account holding the opening
        balance, the default categories, and nothing else.
        """
        async with self._operation("complete_onboarding") as correlation_id:
            balance = self._validator.parse_amount(initial_balance, "initial_balance")
            profile = self._validator.require(UserProfile, {
                "name": name,
                "avatar": avatar,
                "onboarding_completed": True,
                "security_pin": self._store.profile.security_pin,
            })
            snapshot = FinanceSnapshot(
                transactions=[],
                accounts=[main_account(balance)],
                categories=default_categories(),
            )
            await self._replace(
                snapshot, "complete_onboarding", correlation_id,
                profile=profile, unlocked=self._store.achievements,
            )
            await self._audit.log_change(
                AuditEventType.ONBOARDING_COMPLETED, "profile", PROFILE_KEY,
                f"Onboarding completed for {profile.name}", correlation_id,
                details={"initial_balance": str(balance)},
            )
            self._notify(f"Welcome, {profile.name}!")
            await self._reevaluate_achievements(correlation_id)
            return profile

    async def update_profile(self, updates: dict[str, Any]) -> UserProfile:
        """Change name and/or avatar. The PIN has its own operation."""
        async with self._operation("update_profile") as correlation_id:
            merged = accounts.merge_update(self._store.profile, updates)
            merged["security_pin"] = self._store.profile.security_pin
            merged["onboarding_completed"] = self._store.profile.onboarding_completed
            profile = self._validator.require(UserProfile, merged)
            await self._commit(Mutation().put(SYSTEM, PROFILE_KEY, profile), "update_profile", correlation_id)
            await self._audit.log_change(
                AuditEventType.PROFILE_UPDATED, "profile", PROFILE_KEY,
                "Profile updated", correlation_id,
            )
            self._notify("Profile updated")
            return profile

    async def set_pin(self, pin: Optional[str]) -> None:
        """Set the security PIN, or remove it with None."""
        async with self._operation("set_pin") as correlation_id:
            if pin is not None:
                pin = self._validator.validate_pin(pin, self._settings.pin_length)
            profile = self._store.profile.model_copy(update={"security_pin": pin})
            await self._commit(Mutation().put(SYSTEM, PROFILE_KEY, profile), "set_pin", correlation_id)
            await self._audit.log_change(
                AuditEventType.PIN_SET, "profile", PROFILE_KEY,
                "PIN removed" if pin is None else "PIN set", correlation_id,
            )
            self._notify("PIN removed" if pin is None else "PIN saved")

    async def unlock(self, pin: str) -> bool:
        """Clear the lock if ``pin`` matches. Wrong PINs are audited."""
        if not self._locked:
            return True
        if pin == self._store.profile.security_pin:
            self._locked = False
            return True
        await self._audit.log_unlock_failed(create_correlation_id())
        return False

    def lock(self) -> bool:
        """Lock the app again. Only possible while a PIN is set."""
        self._locked = self._store.profile.security_pin is not None
        return self._locked

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def _transaction_draft(self, data: Any) -> TransactionDraft:
        draft = self._validator.require(TransactionDraft, data)
        category = self._store.get_category(draft.category_id)
        category_type = category.type.value if category is not None else None
        draft, result = self._validator.validate_transaction(draft, category_type, self._now())
        self._validator.raise_if_invalid(result)
        for warning in result.warnings:
            logger.warning("transaction_warning", message=warning)
        return draft

    async def add_transaction(self, data: Union[TransactionDraft, dict[str, Any]]) -> Transaction:
        async with self._operation("add_transaction") as correlation_id:
            draft = self._transaction_draft(data)
            transaction, mutation = ledger.plan_add_transaction(self._store, draft)
            await self._commit(mutation, "add_transaction", correlation_id)
            await self._audit.log_change(
                AuditEventType.TRANSACTION_ADDED, "transaction", transaction.id,
                f"{transaction.type.value.capitalize()} '{transaction.description}' of {transaction.amount}",
                correlation_id,
                details={"account_id": transaction.account_id, "amount": str(transaction.amount)},
            )
            self._notify("Transaction saved")
            await self._reevaluate_achievements(correlation_id)
            return transaction

    async def edit_transaction(
        self,
        transaction_id: str,
        data: Union[TransactionDraft, dict[str, Any]],
    ) -> Transaction:
        async with self._operation("edit_transaction") as correlation_id:
            draft = self._transaction_draft(data)
            transaction, mutation = ledger.plan_edit_transaction(self._store, transaction_id, draft)
            await self._commit(mutation, "edit_transaction", correlation_id)
            await self._audit.log_change(
                AuditEventType.TRANSACTION_UPDATED, "transaction", transaction.id,
                f"Transaction '{transaction.description}' updated", correlation_id,
                details={"account_id": transaction.account_id, "amount": str(transaction.amount)},
            )
            self._notify("Transaction updated")
            await self._reevaluate_achievements(correlation_id)
            return transaction

    async def delete_transaction(self, transaction_id: str) -> Transaction:
        async with self._operation("delete_transaction") as correlation_id:
            transaction, mutation = ledger.plan_delete_transaction(self._store, transaction_id)
            await self._commit(mutation, "delete_transaction", correlation_id)
            await self._audit.log_change(
                AuditEventType.TRANSACTION_DELETED, "transaction", transaction.id,
                f"Transaction '{transaction.description}' deleted", correlation_id,
            )
            self._notify("Transaction deleted", NotificationType.INFO)
            await self._reevaluate_achievements(correlation_id)
            return transaction

    def find_recurring_due(self) -> list[Transaction]:
        return ledger.find_recurring_due(self._store.transactions, self._now())

    def check_recurring_due(self) -> int:
        return ledger.check_recurring_due(self._store.transactions, self._now())

    # ------------------------------------------------------------------
    # Budgets and goals
    # ------------------------------------------------------------------

    async def set_budget(self, category_id: str, limit: Any) -> Optional[Budget]:
        """Insert or replace a budget; a limit of zero or less removes it."""
        async with self._operation("set_budget") as correlation_id:
            amount = self._validator.parse_amount(limit, "limit")
            budget, mutation = planning.plan_set_budget(self._store, category_id, amount)
            await self._commit(mutation, "set_budget", correlation_id)
            if budget is not None:
                await self._audit.log_change(
                    AuditEventType.BUDGET_SET, "budget", category_id,
                    f"Budget set to {budget.limit}", correlation_id,
                )
                self._notify("Budget saved")
            elif mutation:
                await self._audit.log_change(
                    AuditEventType.BUDGET_REMOVED, "budget", category_id,
                    "Budget removed", correlation_id,
                )
                self._notify("Budget removed", NotificationType.INFO)
            await self._reevaluate_achievements(correlation_id)
            return budget

    def get_budget_status(self, category_id: str) -> BudgetStatus:
        return planning.get_budget_status(
            category_id, self._store.transactions, self._store.budgets, self._now()
        )

    async def add_goal(self, data: Union[GoalDraft, dict[str, Any]]) -> Goal:
        async with self._operation("add_goal") as correlation_id:
            draft, result = self._validator.validate_goal(data)
            self._validator.raise_if_invalid(result)
            goal, mutation = planning.plan_add_goal(self._store, draft)
            await self._commit(mutation, "add_goal", correlation_id)
            await self._audit.log_change(
                AuditEventType.GOAL_ADDED, "goal", goal.id,
                f"Goal '{goal.name}' created", correlation_id,
                details={"target_amount": str(goal.target_amount)},
            )
            self._notify("Goal created")
            await self._reevaluate_achievements(correlation_id)
            return goal

    async def fund_goal(self, goal_id: str, amount: Any) -> GoalFundResult:
        """
        Move money into (or, negative, out of) a goal.

        The call that reaches the target queues the one "goal reached"
        celebration; later funding never repeats it.
        """
        async with self._operation("fund_goal") as correlation_id:
            delta = self._validator.parse_amount(amount, "amount")
            result, mutation = planning.plan_fund_goal(self._store, goal_id, delta)
            await self._commit(mutation, "fund_goal", correlation_id)
            await self._audit.log_change(
                AuditEventType.GOAL_FUNDED, "goal", goal_id,
                f"Goal '{result.goal.name}' funded with {delta}", correlation_id,
                details={"current_amount": str(result.goal.current_amount)},
            )
            if result.just_completed:
                await self._audit.log_change(
                    AuditEventType.GOAL_COMPLETED, "goal", goal_id,
                    f"Goal '{result.goal.name}' reached", correlation_id,
                )
                self._notify(f"Goal reached: {result.goal.name}!")
            else:
                self._notify("Goal updated")
            await self._reevaluate_achievements(correlation_id)
            return result

    # ------------------------------------------------------------------
    # Accounts and categories
    # ------------------------------------------------------------------

    async def add_account(self, data: Union[Account, dict[str, Any]]) -> Account:
        async with self._operation("add_account") as correlation_id:
            account, mutation = accounts.plan_add_account(
                self._store, self._validator.require(Account, data)
            )
            await self._commit(mutation, "add_account", correlation_id)
            await self._audit.log_change(
                AuditEventType.ACCOUNT_ADDED, "account", account.id,
                f"Account '{account.name}' added", correlation_id,
                details={"type": account.type.value, "balance": str(account.balance)},
            )
            self._notify("Account created")
            await self._reevaluate_achievements(correlation_id)
            return account

    async def update_account(self, account_id: str, updates: dict[str, Any]) -> Account:
        """Partial update. This is the only way to set a balance by hand."""
        async with self._operation("update_account") as correlation_id:
            current = self._store.require_account(account_id)
            account = self._validator.require(Account, accounts.merge_update(current, updates))
            account, mutation = accounts.plan_update_account(self._store, account)
            await self._commit(mutation, "update_account", correlation_id)
            await self._audit.log_change(
                AuditEventType.ACCOUNT_UPDATED, "account", account.id,
                f"Account '{account.name}' updated", correlation_id,
                details={"balance": str(account.balance)},
            )
            self._notify("Account updated")
            await self._reevaluate_achievements(correlation_id)
            return account

    async def remove_account(self, account_id: str) -> Account:
        async with self._operation("remove_account") as correlation_id:
            account, mutation = accounts.plan_remove_account(self._store, account_id)
            await self._commit(mutation, "remove_account", correlation_id)
            await self._audit.log_change(
                AuditEventType.ACCOUNT_REMOVED, "account", account.id,
                f"Account '{account.name}' removed", correlation_id,
            )
            self._notify("Account removed", NotificationType.INFO)
            await self._reevaluate_achievements(correlation_id)
            return account

    async def add_category(self, data: Union[Category, dict[str, Any]]) -> Category:
        async with self._operation("add_category") as correlation_id:
            category, mutation = accounts.plan_add_category(
                self._store, self._validator.require(Category, data)
            )
            await self._commit(mutation, "add_category", correlation_id)
            await self._audit.log_change(
                AuditEventType.CATEGORY_ADDED, "category", category.id,
                f"Category '{category.name}' added", correlation_id,
            )
            self._notify("Category created")
            return category

    async def update_category(self, category_id: str, updates: dict[str, Any]) -> Category:
        async with self._operation("update_category") as correlation_id:
            current = self._store.require_category(category_id)
            category = self._validator.require(Category, accounts.merge_update(current, updates))
            category, mutation = accounts.plan_update_category(self._store, category)
            await self._commit(mutation, "update_category", correlation_id)
            await self._audit.log_change(
                AuditEventType.CATEGORY_UPDATED, "category", category.id,
                f"Category '{category.name}' updated", correlation_id,
            )
            self._notify("Category updated")
            return category

    async def remove_category(self, category_id: str) -> Category:
        async with self._operation("remove_category") as correlation_id:
            category, mutation = accounts.plan_remove_category(self._store, category_id)
            await self._commit(mutation, "remove_category", correlation_id)
            await self._audit.log_change(
                AuditEventType.CATEGORY_REMOVED, "category", category.id,
                f"Category '{category.name}' removed", correlation_id,
            )
            self._notify("Category removed", NotificationType.INFO)
            await self._reevaluate_achievements(correlation_id)
            return category

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def total_balance(self) -> Decimal:
        return self._store.total_balance

    def account_balance(self, account_id: str) -> Decimal:
        """Balance of one account, 0 for an unknown id."""
        account = self._store.get_account(account_id)
        return account.balance if account is not None else Decimal("0")

    def monthly_totals(self, month: Optional[int] = None, year: Optional[int] = None) -> MonthlyTotals:
        now = self._now()
        return analytics.monthly_totals(self._store.transactions, month or now.month, year or now.year)

    def financial_health(self) -> FinancialHealth:
        return analytics.compute_financial_health(
            self._store.transactions,
            self._store.budgets,
            self._store.achievements,
            self._now(),
            savings_target=self._settings.savings_rate_target,
        )

    def forecast(self) -> Forecast:
        return analytics.compute_forecast(
            self._store.transactions,
            self._now(),
            warning_ratio=self._settings.forecast_warning_ratio,
        )

    def category_breakdown(self, month: Optional[int] = None, year: Optional[int] = None) -> list[CategoryExpense]:
        now = self._now()
        return analytics.category_breakdown(
            self._store.transactions, self._store.categories, month or now.month, year or now.year
        )

    def recent_daily_flow(self, days: Optional[int] = None) -> list[DailyFlow]:
        return analytics.recent_daily_flow(
            self._store.transactions, self._now(), days or self._settings.daily_flow_days
        )

    def suggest(self, description: str) -> Suggestion:
        return suggest_category_and_account(
            description,
            self._store.transactions,
            min_length=self._settings.suggestion_min_length,
        )

    def credit_usage(self, account_id: str) -> CreditUsage:
        return analytics.credit_usage(self._store.require_account(account_id))

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    async def export_data(self, as_json: bool = False) -> Union[FinanceSnapshot, str]:
        """Structured copy of every financial collection, stamped with the export time."""
        snapshot = self._store.snapshot().model_copy(update={"exported_at": self._now()})
        await self._audit.log_change(
            AuditEventType.DATA_EXPORTED, "store", None,
            f"Exported {len(snapshot.transactions)} transaction(s)",
            create_correlation_id(),
        )
        return snapshot.to_json() if as_json else snapshot

    async def import_data(self, payload: Union[str, bytes, dict[str, Any], FinanceSnapshot]) -> FinanceSnapshot:
        """
        Replace every financial collection with a backup.

        A payload without the transactions, accounts and categories arrays,
        with invalid entries, or without both an income and an expense
        category raises ImportFormatError and changes nothing.
        """
        async with self._operation("import_data") as correlation_id:
            try:
                if isinstance(payload, FinanceSnapshot):
                    snapshot = check_category_types(payload)
                else:
                    snapshot = parse_snapshot(payload)
            except SnapshotFormatError as e:
                raise ImportFormatError(str(e)) from e

            await self._replace(snapshot, "import_data", correlation_id)
            await self._audit.log_change(
                AuditEventType.DATA_IMPORTED, "store", None,
                f"Imported {len(snapshot.transactions)} transaction(s), {len(snapshot.accounts)} account(s)",
                correlation_id,
            )
            self._notify("Backup restored")
            await self._reevaluate_achievements(correlation_id)
            return snapshot

    async def reset_data(self) -> None:
        """
        Wipe everything: collections, achievements and profile.

        The store goes back to the not-onboarded state with the default
        categories in memory.
        """
        async with self._operation("reset_data") as correlation_id:
            system_keys = [PROFILE_KEY] + [achievement_key(a.id) for a in achievement_catalog()]
            await self._rewrite(
                {name: [] for name in FINANCIAL_COLLECTIONS},
                {key: None for key in system_keys},
                "reset_data",
                correlation_id,
            )
            self._store.load(self._empty_snapshot(), profile=UserProfile(), unlocked=[])
            self._locked = False
            await self._audit.log_change(
                AuditEventType.DATA_RESET, "store", None, "All data erased", correlation_id,
            )
            self._notify("All data erased", NotificationType.INFO)


def create_engine(
    settings: Optional[Settings] = None,
    audit_logger: Optional[AuditLogger] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> FinanceEngine:
    """
    Factory function to create a configured engine.

    The storage backend is chosen by ``FINQUEST_STORAGE_BACKEND``.
    Call ``await engine.load()`` before use.
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    storage_settings = settings.storage
    if storage_settings.backend == "json":
        storage: PersistenceInterface = JsonFileStorage(
            storage_settings.json_path,
            retry_attempts=storage_settings.retry_attempts,
        )
    else:
        storage = InMemoryStorage()

    logger.info("engine_created", backend=storage_settings.backend)
    return FinanceEngine(
        storage=storage,
        audit_logger=audit_logger or AuditLogger(),
        settings=settings.engine,
        now=now,
    )
