"""Tests for achievement evaluation and one-way unlocks."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from factories import FOOD, MAIN_ACCOUNT, NOW, expense
from finquest.catalog import (
    BALANCE_10K,
    BALANCE_1K,
    GOAL_COMPLETED,
    HAS_BUDGET,
    HAS_INVESTMENT,
    HAS_TRANSACTION,
)
from finquest.engine.achievements import evaluate_conditions, plan_unlock_achievements
from finquest.engine.ledger import plan_add_transaction
from finquest.engine.store import ACCOUNTS, BUDGETS, GOALS, SYSTEM, Mutation, achievement_key
from finquest.models.finance import Account, AccountKind, Budget, Goal


def unlock_all_due(store, now=NOW):
    unlocked, mutation = plan_unlock_achievements(store, now)
    store.apply(mutation)
    return {a.id for a in unlocked}


def unlocked_ids(store):
    return {a.id for a in store.achievements if a.is_unlocked}


class TestConditions:
    """Tests for the condition codes."""

    def test_fresh_store(self, store):
        """Test the conditions right after onboarding with 1000."""
        conditions = evaluate_conditions(store)
        assert conditions[BALANCE_1K] is True
        assert conditions[BALANCE_10K] is False
        assert conditions[HAS_TRANSACTION] is False
        assert conditions[GOAL_COMPLETED] is False
        assert conditions[HAS_BUDGET] is False
        assert conditions[HAS_INVESTMENT] is False

    def test_balance_is_summed_across_accounts(self, store):
        """Test that 10k counts the total, not a single account."""
        store.apply(Mutation().put(ACCOUNTS, "inv", Account(
            id="inv", name="Broker", type=AccountKind.INVESTMENT, balance=Decimal("9000"),
        )))
        conditions = evaluate_conditions(store)
        assert conditions[BALANCE_10K] is True
        assert conditions[HAS_INVESTMENT] is True

    def test_goal_and_budget(self, store):
        """Test the goal and budget conditions."""
        store.apply(
            Mutation()
            .put(BUDGETS, FOOD, Budget(category_id=FOOD, limit=Decimal("100")))
            .put(GOALS, "g", Goal(
                id="g", name="Bike", target_amount=Decimal("100"),
                current_amount=Decimal("100"), deadline=date(2025, 1, 1),
            ))
        )
        conditions = evaluate_conditions(store)
        assert conditions[HAS_BUDGET] is True
        assert conditions[GOAL_COMPLETED] is True


class TestUnlocks:
    """Tests for the locked -> unlocked transition."""

    def test_unlock_stamps_time(self, store):
        """Test that a satisfied condition unlocks with the given time."""
        assert unlock_all_due(store) == {"saver_bronze"}
        piggy = next(a for a in store.achievements if a.id == "saver_bronze")
        assert piggy.unlocked_at == NOW

    def test_evaluation_is_idempotent(self, store):
        """Test that a second pass unlocks nothing new."""
        unlock_all_due(store)
        unlocked, mutation = plan_unlock_achievements(store, NOW)
        assert unlocked == []
        assert not mutation

    def test_unlock_survives_condition_turning_false(self, store):
        """Test that spending below 1000 never locks the piggy bank again."""
        unlock_all_due(store)
        _, mutation = plan_add_transaction(store, expense(900))
        store.apply(mutation)
        assert store.total_balance == Decimal("100")

        later = datetime(2024, 6, 20)
        assert unlock_all_due(store, later) == {"first_step"}
        assert unlocked_ids(store) == {"saver_bronze", "first_step"}
        piggy = next(a for a in store.achievements if a.id == "saver_bronze")
        assert piggy.unlocked_at == NOW

    def test_store_refuses_relock(self, store):
        """Test that writing a locked copy over an unlocked one is ignored."""
        unlock_all_due(store)
        locked = next(a for a in store.achievements if a.id == "saver_bronze")
        store.apply(Mutation().put(
            SYSTEM, achievement_key("saver_bronze"),
            locked.model_copy(update={"unlocked_at": None}),
        ))
        assert "saver_bronze" in unlocked_ids(store)

    def test_store_refuses_removal(self, store):
        """Test that achievements cannot be deleted."""
        with pytest.raises(ValueError, match="cannot be removed"):
            store.apply(Mutation().delete(SYSTEM, achievement_key("saver_bronze")))

    def test_never_unlocked_below_threshold(self, store):
        """Test that a poorer store never gets the piggy bank."""
        _, mutation = plan_add_transaction(store, expense(1, account_id=MAIN_ACCOUNT))
        store.apply(mutation)
        assert "saver_bronze" not in unlock_all_due(store)
