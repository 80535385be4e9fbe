"""
Budget & Goal Engine

Budgets hold only a limit; how much has been spent is summed from the
ledger each time it is asked for. Goals track saved money and report the
single call that completes them.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from finquest.engine.errors import InvalidInputError
from finquest.engine.store import BUDGETS, GOALS, EntityStore, Mutation
from finquest.models.analytics import BudgetStatus, GoalFundResult
from finquest.models.finance import Budget, Goal, GoalDraft, Transaction, TransactionType
from finquest.models.validation import ValidationIssue


def spent_in_month(
    transactions: Iterable[Transaction],
    category_id: str,
    year: int,
    month: int,
) -> Decimal:
    """Sum of expense amounts of one category in one calendar month."""
    return sum(
        (
            t.amount
            for t in transactions
            if t.category_id == category_id
            and t.type == TransactionType.EXPENSE
            and t.date.year == year
            and t.date.month == month
        ),
        Decimal("0"),
    )


def get_budget_status(
    category_id: str,
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    now: datetime,
) -> BudgetStatus:
    """
    Spend of this calendar month against the category's limit.

    No budget gives an all-zero status. ``percent`` saturates at 100.
    """
    budget = next((b for b in budgets if b.category_id == category_id), None)
    if budget is None:
        return BudgetStatus(category_id=category_id)

    spent = spent_in_month(transactions, category_id, now.year, now.month)
    percent = min(float(spent / budget.limit * 100), 100.0)
    return BudgetStatus(category_id=category_id, spent=spent, limit=budget.limit, percent=percent)


def plan_set_budget(
    store: EntityStore,
    category_id: str,
    limit: Decimal,
) -> tuple[Optional[Budget], Mutation]:
    """
    Insert or replace a category's budget.

    A limit of zero or less removes the budget ("no limit"), which is
    not an error. The returned mutation is empty if there was nothing to
    remove.
    """
    store.require_category(category_id)
    mutation = Mutation()

    if limit <= 0:
        if store.get_budget(category_id) is not None:
            mutation.delete(BUDGETS, category_id)
        return None, mutation

    budget = Budget(category_id=category_id, limit=limit)
    return budget, mutation.put(BUDGETS, category_id, budget)


def plan_add_goal(store: EntityStore, draft: GoalDraft) -> tuple[Goal, Mutation]:
    goal = Goal(
        id=store.fresh_id(GOALS),
        completed=draft.current_amount >= draft.target_amount,
        **draft.model_dump(),
    )
    return goal, Mutation().put(GOALS, goal.id, goal)


def plan_fund_goal(store: EntityStore, goal_id: str, delta: Decimal) -> tuple[GoalFundResult, Mutation]:
    """
    Add ``delta`` (negative to withdraw) to a goal's saved amount.

    ``just_completed`` is set only when this call moves the goal from
    not completed to completed; funding a goal that is already complete
    never sets it again.
    """
    goal = store.require_goal(goal_id)
    new_amount = goal.current_amount + delta
    if new_amount < 0:
        issue = ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message=f"Cannot withdraw {-delta} from '{goal.name}': only {goal.current_amount} saved",
            severity="error",
        )
        raise InvalidInputError(issue.message, [issue])

    completed = new_amount >= goal.target_amount
    updated = goal.model_copy(update={"current_amount": new_amount, "completed": completed})
    result = GoalFundResult(goal=updated, just_completed=completed and not goal.completed)
    return result, Mutation().put(GOALS, updated.id, updated)
