"""Tests for the ledger engine (pure planning, applied to an EntityStore)."""

import pytest
from datetime import datetime
from decimal import Decimal

from factories import FOOD, MAIN_ACCOUNT, NOW, expense, income, make_draft
from finquest.engine.errors import (
    AccountNotFoundError,
    CategoryNotFoundError,
    TransactionNotFoundError,
)
from finquest.engine.ledger import (
    check_recurring_due,
    find_recurring_due,
    plan_add_transaction,
    plan_delete_transaction,
    plan_edit_transaction,
    signed_effect,
)
from finquest.engine.store import ACCOUNTS, TRANSACTIONS, Mutation
from finquest.models.finance import Account, AccountKind, Transaction, TransactionType


def add(store, draft):
    transaction, mutation = plan_add_transaction(store, draft)
    store.apply(mutation)
    return transaction


def add_wallet(store, balance="0"):
    wallet = Account(id="w", name="Wallet", type=AccountKind.WALLET, balance=Decimal(balance))
    store.apply(Mutation().put(ACCOUNTS, wallet.id, wallet))
    return wallet


def balance(store, account_id=MAIN_ACCOUNT):
    return store.require_account(account_id).balance


class TestSignedEffect:
    """Tests for the direction of money."""

    def test_income_is_positive(self):
        """Test that income adds to the balance."""
        assert signed_effect(TransactionType.INCOME, Decimal("5")) == Decimal("5")

    def test_expense_is_negative(self):
        """Test that expense subtracts from the balance."""
        assert signed_effect(TransactionType.EXPENSE, Decimal("5")) == Decimal("-5")


class TestAddTransaction:
    """Tests for inserting transactions."""

    def test_add_applies_effect(self, store):
        """Test that adding an income raises the account balance."""
        transaction = add(store, income(500))
        assert balance(store) == Decimal("1500")
        assert store.get_transaction(transaction.id) == transaction

    def test_add_assigns_fresh_ids(self, store):
        """Test that every insert gets its own id."""
        first = add(store, expense(10))
        second = add(store, expense(10))
        assert first.id != second.id
        assert len(store.transactions) == 2

    def test_add_unknown_account_rejected(self, store):
        """Test that an invalid account is refused before planning."""
        with pytest.raises(AccountNotFoundError):
            plan_add_transaction(store, expense(10, account_id="nope"))
        assert store.transactions == []
        assert balance(store) == Decimal("1000")

    def test_add_unknown_category_rejected(self, store):
        """Test that an invalid category is refused."""
        with pytest.raises(CategoryNotFoundError):
            plan_add_transaction(store, expense(10, category_id="nope"))

    def test_planning_does_not_touch_store(self, store):
        """Test that nothing changes until the mutation is applied."""
        _, mutation = plan_add_transaction(store, income(500))
        assert len(mutation) == 2
        assert store.transactions == []
        assert balance(store) == Decimal("1000")


class TestEditTransaction:
    """Tests for replacing transactions."""

    def test_concrete_scenario(self, store):
        """Test the add/add/edit/delete walk-through from 1000 to 700."""
        salary = add(store, income(500))
        assert balance(store) == Decimal("1500")

        food = add(store, expense(200, category_id=FOOD))
        assert balance(store) == Decimal("1300")

        _, mutation = plan_edit_transaction(store, food.id, expense(300, category_id=FOOD))
        store.apply(mutation)
        assert balance(store) == Decimal("1200")

        _, mutation = plan_delete_transaction(store, salary.id)
        store.apply(mutation)
        assert balance(store) == Decimal("700")
        assert len(store.transactions) == 1

    def test_edit_keeps_id(self, store):
        """Test that an edit replaces the fields under the same id."""
        original = add(store, expense(50, description="Lunch"))
        edited, mutation = plan_edit_transaction(store, original.id, expense(80, description="Dinner"))
        store.apply(mutation)
        assert edited.id == original.id
        assert store.require_transaction(original.id).description == "Dinner"
        assert len(store.transactions) == 1

    def test_edit_moves_between_accounts(self, store):
        """Test that the old account is reverted and the new one charged."""
        add_wallet(store, "100")
        original = add(store, expense(40))
        assert balance(store) == Decimal("960")

        _, mutation = plan_edit_transaction(store, original.id, expense(40, account_id="w"))
        store.apply(mutation)
        assert balance(store) == Decimal("1000")
        assert balance(store, "w") == Decimal("60")

    def test_edit_changes_direction(self, store):
        """Test that turning an expense into an income swings twice the amount."""
        original = add(store, expense(100))
        _, mutation = plan_edit_transaction(store, original.id, income(100))
        store.apply(mutation)
        assert balance(store) == Decimal("1100")

    def test_edit_unknown_id(self, store):
        """Test that editing a missing transaction raises."""
        with pytest.raises(TransactionNotFoundError):
            plan_edit_transaction(store, "missing", expense(10))

    def test_edit_to_unknown_account_changes_nothing(self, store):
        """Test that an edit never half-applies."""
        original = add(store, expense(100))
        with pytest.raises(AccountNotFoundError):
            plan_edit_transaction(store, original.id, expense(100, account_id="ghost"))
        assert balance(store) == Decimal("900")
        assert store.require_transaction(original.id).account_id == MAIN_ACCOUNT


class TestDeleteTransaction:
    """Tests for removing transactions."""

    def test_delete_reverts_effect(self, store):
        """Test that deleting an expense gives the money back."""
        transaction = add(store, expense(250))
        _, mutation = plan_delete_transaction(store, transaction.id)
        store.apply(mutation)
        assert balance(store) == Decimal("1000")
        assert store.transactions == []

    def test_delete_unknown_id(self, store):
        """Test that deleting a missing transaction raises."""
        with pytest.raises(TransactionNotFoundError):
            plan_delete_transaction(store, "missing")

    def test_delete_orphan_leaves_balances(self, store):
        """Test that a transaction whose account is gone is simply removed."""
        orphan = make_draft(30, account_id="gone")
        stored = Transaction.from_draft(orphan, "orphan")
        store.apply(Mutation().put(TRANSACTIONS, stored.id, stored))

        _, mutation = plan_delete_transaction(store, "orphan")
        assert len(mutation) == 1
        store.apply(mutation)
        assert store.transactions == []
        assert balance(store) == Decimal("1000")


class TestBalanceInvariant:
    """The balance always equals the opening balance plus every signed effect."""

    def test_invariant_after_mixed_operations(self, store):
        """Test the invariant after adds, edits and deletes across two accounts."""
        add_wallet(store)
        opening = {MAIN_ACCOUNT: Decimal("1000"), "w": Decimal("0")}

        a = add(store, income(700))
        b = add(store, expense(120, account_id="w"))
        c = add(store, expense(55))
        store.apply(plan_edit_transaction(store, b.id, expense(90))[1])
        store.apply(plan_edit_transaction(store, a.id, income(650, account_id="w"))[1])
        store.apply(plan_delete_transaction(store, c.id)[1])

        for account_id, start in opening.items():
            effects = sum(
                (signed_effect(t.type, t.amount) for t in store.transactions if t.account_id == account_id),
                Decimal("0"),
            )
            assert balance(store, account_id) == start + effects


class TestRecurringDue:
    """Tests for recurring-transaction detection."""

    def test_recurring_without_copy_is_due(self, store):
        """Test that last month's recurring bill is reported."""
        add(store, expense(30, description="Netflix", date=datetime(2024, 5, 10), is_recurring=True))
        assert check_recurring_due(store.transactions, NOW) == 1

    def test_copy_this_month_clears_it(self, store):
        """Test that a same description and amount this month counts as the copy."""
        add(store, expense(30, description="Netflix", date=datetime(2024, 5, 10), is_recurring=True))
        add(store, expense(30, description="Netflix", date=datetime(2024, 6, 10)))
        assert check_recurring_due(store.transactions, NOW) == 0

    def test_different_amount_is_not_a_copy(self, store):
        """Test that the amount must match too."""
        add(store, expense(30, description="Netflix", date=datetime(2024, 5, 10), is_recurring=True))
        add(store, expense(35, description="Netflix", date=datetime(2024, 6, 10)))
        due = find_recurring_due(store.transactions, NOW)
        assert [t.description for t in due] == ["Netflix"]

    def test_recurring_from_this_month_and_plain_items_ignored(self, store):
        """Test that only recurring items from other months are considered."""
        add(store, expense(30, description="Gym", date=datetime(2024, 6, 2), is_recurring=True))
        add(store, expense(30, description="Books", date=datetime(2024, 4, 2)))
        assert check_recurring_due(store.transactions, NOW) == 0

    def test_same_month_other_year_is_due(self, store):
        """Test that June of last year is not this month."""
        add(store, expense(99, description="Insurance", date=datetime(2023, 6, 1), is_recurring=True))
        assert check_recurring_due(store.transactions, NOW) == 1
