"""
Derived-view models.

Nothing here is stored. Every one of these is recomputed from the
current collections whenever a collaborator asks for it.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from finquest.models.finance import Goal


class ForecastStatus(str, Enum):
    """Where month-end spending is heading relative to income."""
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


class MonthlyTotals(BaseModel):
    """Income and expense sums of one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class BudgetStatus(BaseModel):
    """Spend against a category's monthly limit."""

    category_id: str
    spent: Decimal = Decimal("0")
    limit: Decimal = Decimal("0")
    percent: float = Field(default=0.0, ge=0.0, le=100.0)

    @property
    def has_budget(self) -> bool:
        return self.limit > 0

    @property
    def exceeded(self) -> bool:
        return self.has_budget and self.spent > self.limit


class FinancialHealth(BaseModel):
    """
    Monthly health score plus the XP / level it feeds.

    ``score`` is the 0-100 composite; ``xp`` adds the rewards of every
    unlocked achievement on top of it.
    """

    score: float = Field(..., ge=0.0, le=100.0)
    cash_flow_points: float = 0.0
    savings_points: float = 0.0
    budget_points: float = 0.0
    xp: float = Field(..., ge=0.0)
    level_number: int = Field(..., ge=1)
    level_title: str
    next_level_xp: int

    @property
    def level(self) -> str:
        return f"{self.level_title} (Lv {self.level_number})"


class Forecast(BaseModel):
    """Linear projection of this month's expenses to month end."""

    projected_expense: Decimal = Decimal("0")
    status: ForecastStatus = ForecastStatus.SAFE
    diff: Decimal = Decimal("0")


class CategoryExpense(BaseModel):
    """Expense total of one category in a month."""

    category_id: str
    name: str
    color: str = ""
    total: Decimal


class DailyFlow(BaseModel):
    """Income and expense of a single calendar day."""

    day: date
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class Suggestion(BaseModel):
    """Category/account guessed from a description. Empty when nothing matched."""

    category_id: Optional[str] = None
    account_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.category_id is None and self.account_id is None


class CreditUsage(BaseModel):
    """How much of a credit card's limit is in use."""

    account_id: str
    limit: Decimal = Decimal("0")
    used: Decimal = Decimal("0")
    available: Decimal = Decimal("0")
    percent: float = 0.0


class GoalFundResult(BaseModel):
    """
    Outcome of funding a goal.

    ``just_completed`` is True only on the call that moved the goal
    from not completed to completed.
    """

    goal: Goal
    just_completed: bool = False
