"""
Ledger Engine

Transactions are the unit of truth; account balances follow them.
Every function here reads the store and returns the Mutation that keeps
the invariant

    balance == opening balance + sum(signed effect of stored transactions)

true for every account. Nothing is written here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from finquest.engine.store import ACCOUNTS, TRANSACTIONS, EntityStore, Mutation
from finquest.models.finance import Account, Transaction, TransactionDraft, TransactionType


def signed_effect(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """+amount for income, -amount for expense."""
    if transaction_type == TransactionType.INCOME:
        return amount
    return -amount


def _with_delta(account: Account, delta: Decimal) -> Account:
    return account.model_copy(update={"balance": account.balance + delta})


def plan_add_transaction(store: EntityStore, draft: TransactionDraft) -> tuple[Transaction, Mutation]:
    """
    Insert a transaction under a fresh id and apply its effect.

    Raises AccountNotFoundError / CategoryNotFoundError before planning
    anything if a reference is invalid.
    """
    account = store.require_account(draft.account_id)
    store.require_category(draft.category_id)

    transaction = Transaction.from_draft(draft, store.fresh_id(TRANSACTIONS))
    updated = _with_delta(account, signed_effect(transaction.type, transaction.amount))

    mutation = Mutation()
    mutation.put(TRANSACTIONS, transaction.id, transaction)
    mutation.put(ACCOUNTS, updated.id, updated)
    return transaction, mutation


def plan_edit_transaction(
    store: EntityStore,
    transaction_id: str,
    draft: TransactionDraft,
) -> tuple[Transaction, Mutation]:
    """
    Replace a transaction, keeping its id.

    The old effect is reverted on the old account first, then the new
    effect is applied on the (possibly different) new account. Both
    accounts must still exist; an edit never half-applies.
    """
    old = store.require_transaction(transaction_id)
    balances: dict[str, Account] = {}

    old_account = store.require_account(old.account_id)
    new_account = store.require_account(draft.account_id)
    store.require_category(draft.category_id)

    balances[old_account.id] = _with_delta(old_account, -signed_effect(old.type, old.amount))
    target = balances.get(new_account.id, new_account)
    balances[new_account.id] = _with_delta(target, signed_effect(draft.type, draft.amount))

    replacement = Transaction.from_draft(draft, transaction_id)

    mutation = Mutation()
    mutation.put(TRANSACTIONS, replacement.id, replacement)
    for account in balances.values():
        mutation.put(ACCOUNTS, account.id, account)
    return replacement, mutation


def plan_delete_transaction(store: EntityStore, transaction_id: str) -> tuple[Transaction, Mutation]:
    """
    Remove a transaction and revert its effect.

    A transaction whose account is already gone (e.g. from an imported
    backup) is removed without touching any balance.
    """
    transaction = store.require_transaction(transaction_id)

    mutation = Mutation()
    mutation.delete(TRANSACTIONS, transaction.id)

    account = store.get_account(transaction.account_id)
    if account is not None:
        reverted = _with_delta(account, -signed_effect(transaction.type, transaction.amount))
        mutation.put(ACCOUNTS, reverted.id, reverted)
    return transaction, mutation


def _same_month(moment: datetime, today: datetime) -> bool:
    return moment.year == today.year and moment.month == today.month


def find_recurring_due(transactions: Iterable[Transaction], today: datetime) -> list[Transaction]:
    """
    Recurring transactions from an earlier month with no copy this month.

    A copy is any transaction with the same description and amount dated
    in today's month. Advisory only; nothing is generated.
    """
    transactions = list(transactions)
    current = {
        (t.description, t.amount)
        for t in transactions
        if _same_month(t.date, today)
    }

    due = []
    for rec in transactions:
        if not rec.is_recurring or _same_month(rec.date, today):
            continue
        if (rec.description, rec.amount) not in current:
            due.append(rec)
    return due


def check_recurring_due(transactions: Iterable[Transaction], today: datetime) -> int:
    """Number of recurring items still lacking a copy this month."""
    return len(find_recurring_due(transactions, today))
