"""
Achievement Engine

Each catalog entry is a two-state machine: locked -> unlocked. Conditions
are evaluated against the whole current state after every financial
change; an achievement that is already unlocked is skipped, so a
condition turning false later never locks it again.
"""

from datetime import datetime
from decimal import Decimal

from finquest.catalog import (
    BALANCE_10K,
    BALANCE_1K,
    GOAL_COMPLETED,
    HAS_BUDGET,
    HAS_INVESTMENT,
    HAS_TRANSACTION,
)
from finquest.engine.store import SYSTEM, EntityStore, Mutation, achievement_key
from finquest.models.finance import AccountKind, Achievement


def evaluate_conditions(store: EntityStore) -> dict[str, bool]:
    """Truth value of every condition code against the current state."""
    total = store.total_balance
    return {
        HAS_TRANSACTION: len(store.transactions) > 0,
        BALANCE_1K: total >= Decimal("1000"),
        BALANCE_10K: total >= Decimal("10000"),
        GOAL_COMPLETED: any(g.current_amount >= g.target_amount for g in store.goals),
        HAS_BUDGET: len(store.budgets) > 0,
        HAS_INVESTMENT: any(a.type == AccountKind.INVESTMENT for a in store.accounts),
    }


def plan_unlock_achievements(store: EntityStore, now: datetime) -> tuple[list[Achievement], Mutation]:
    """
    Achievements whose condition now holds and that were still locked.

    Each unlock is stamped with ``now``. Unknown condition codes never
    unlock.
    """
    conditions = evaluate_conditions(store)
    unlocked = []
    mutation = Mutation()
    for achievement in store.achievements:
        if achievement.is_unlocked:
            continue
        if not conditions.get(achievement.condition, False):
            continue
        stamped = achievement.model_copy(update={"unlocked_at": now})
        unlocked.append(stamped)
        mutation.put(SYSTEM, achievement_key(stamped.id), stamped)
    return unlocked, mutation
