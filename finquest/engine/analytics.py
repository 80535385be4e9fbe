"""
Analytics Engine

Pure functions over the current collections. Every function that cares
about "today" takes it as an argument; nothing reads the clock here, so
the same inputs always give the same answer.
"""

import calendar
import math
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from finquest.catalog import LEVEL_TITLES
from finquest.models.analytics import (
    CategoryExpense,
    CreditUsage,
    DailyFlow,
    FinancialHealth,
    Forecast,
    ForecastStatus,
    MonthlyTotals,
)
from finquest.models.finance import (
    Account,
    AccountKind,
    Achievement,
    Budget,
    Category,
    Transaction,
    TransactionType,
)
from finquest.engine.planning import spent_in_month


CASH_FLOW_WEIGHT = 40.0
SAVINGS_WEIGHT = 30.0
BUDGET_WEIGHT = 30.0
NO_BUDGET_POINTS = 15.0

CENT = Decimal("0.01")


def monthly_totals(transactions: Iterable[Transaction], month: int, year: int) -> MonthlyTotals:
    """Income and expense sums of one calendar month."""
    income = Decimal("0")
    expense = Decimal("0")
    for t in transactions:
        if t.date.year != year or t.date.month != month:
            continue
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return MonthlyTotals(year=year, month=month, income=income, expense=expense)


def level_for_xp(xp: float) -> tuple[int, str]:
    """Level number and title band for an XP total."""
    number = math.floor(math.sqrt(max(xp, 0.0) / 100)) + 1
    title = next(name for lowest, name in LEVEL_TITLES if number >= lowest)
    return number, title


def compute_financial_health(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    achievements: Iterable[Achievement],
    now: datetime,
    savings_target: float = 0.20,
) -> FinancialHealth:
    """
    Monthly 0-100 health score and the XP / level built on it.

    Cash flow (40): full marks when income beats expense, otherwise
    reduced by the overspend as a share of income.
    Savings rate (30): full marks at ``savings_target``, linear below.
    Budget discipline (30): share of budgets kept, or a flat 15 with none.
    """
    transactions = list(transactions)
    budgets = list(budgets)
    totals = monthly_totals(transactions, now.month, now.year)
    income = float(totals.income)
    expense = float(totals.expense)

    if income > expense:
        cash_flow = CASH_FLOW_WEIGHT
    elif income > 0:
        cash_flow = max(0.0, CASH_FLOW_WEIGHT - ((expense - income) / income) * 100)
    else:
        cash_flow = 0.0

    savings_rate = (income - expense) / income if income > 0 else 0.0
    savings = min(SAVINGS_WEIGHT, (savings_rate / savings_target) * SAVINGS_WEIGHT)
    savings = max(0.0, savings)

    if budgets:
        kept = sum(
            1 for b in budgets
            if spent_in_month(transactions, b.category_id, now.year, now.month) <= b.limit
        )
        discipline = BUDGET_WEIGHT * kept / len(budgets)
    else:
        discipline = NO_BUDGET_POINTS

    score = min(100.0, max(0.0, cash_flow + savings + discipline))
    reward = sum(a.xp_reward for a in achievements if a.is_unlocked)
    xp = score + reward
    number, title = level_for_xp(xp)

    return FinancialHealth(
        score=score,
        cash_flow_points=cash_flow,
        savings_points=savings,
        budget_points=discipline,
        xp=xp,
        level_number=number,
        level_title=title,
        next_level_xp=number ** 2 * 100,
    )


def compute_forecast(
    transactions: Iterable[Transaction],
    now: datetime,
    warning_ratio: float = 0.9,
) -> Forecast:
    """
    Project this month's expenses to month end from the pace so far.

    ``danger`` when the projection beats a positive income, ``warning``
    above ``warning_ratio`` of income, ``safe`` otherwise. The first day
    of the month, or a month with no expense yet, is always safe.
    """
    totals = monthly_totals(transactions, now.month, now.year)
    if now.day == 1 or totals.expense == 0:
        return Forecast()

    days_in_month = calendar.monthrange(now.year, now.month)[1]
    projected = (totals.expense / now.day * days_in_month).quantize(CENT)

    if projected > totals.income and totals.income > 0:
        status = ForecastStatus.DANGER
    elif projected > totals.income * Decimal(str(warning_ratio)):
        status = ForecastStatus.WARNING
    else:
        status = ForecastStatus.SAFE

    return Forecast(projected_expense=projected, status=status, diff=projected - totals.expense)


def category_breakdown(
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
    month: int,
    year: int,
) -> list[CategoryExpense]:
    """Expense total per expense category for the month; empty categories are left out."""
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for t in transactions:
        if t.type == TransactionType.EXPENSE and t.date.year == year and t.date.month == month:
            totals[t.category_id] += t.amount

    breakdown = []
    for category in categories:
        if category.type != TransactionType.EXPENSE:
            continue
        total = totals.get(category.id, Decimal("0"))
        if total > 0:
            breakdown.append(CategoryExpense(
                category_id=category.id,
                name=category.name,
                color=category.color,
                total=total,
            ))
    return breakdown


def recent_daily_flow(
    transactions: Iterable[Transaction],
    now: datetime,
    days: int = 7,
) -> list[DailyFlow]:
    """Per-day income and expense for the trailing ``days`` days, oldest first."""
    today = now.date()
    window: dict[date, DailyFlow] = {}
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        window[day] = DailyFlow(day=day)

    for t in transactions:
        flow = window.get(t.date.date())
        if flow is None:
            continue
        if t.type == TransactionType.INCOME:
            flow.income += t.amount
        else:
            flow.expense += t.amount
    return list(window.values())


def credit_usage(account: Account) -> CreditUsage:
    """
    Used and available credit of a card.

    A card in debt carries a negative balance; its magnitude is the
    amount used.
    """
    if account.type != AccountKind.CREDIT_CARD:
        raise ValueError(f"Account '{account.name}' is not a credit card")
    limit = account.credit_limit or Decimal("0")
    used = abs(account.balance)
    percent = float(used / limit * 100) if limit > 0 else 0.0
    return CreditUsage(
        account_id=account.id,
        limit=limit,
        used=used,
        available=limit - used,
        percent=percent,
    )
