"""
Static data shipped with the engine: the achievement catalog, the
default categories installed on onboarding, and the level bands.
"""

from decimal import Decimal

from finquest.models.finance import (
    Account,
    AccountKind,
    Achievement,
    Category,
    TransactionType,
)


# Condition codes evaluated by the achievement engine.
HAS_TRANSACTION = "has_transaction"
BALANCE_1K = "balance_1k"
BALANCE_10K = "balance_10k"
GOAL_COMPLETED = "goal_completed"
HAS_BUDGET = "has_budget"
HAS_INVESTMENT = "has_investment"

ACHIEVEMENT_CATALOG: tuple[Achievement, ...] = (
    Achievement(
        id="first_step",
        title="First Steps",
        description="Record your first transaction.",
        icon="👶",
        condition=HAS_TRANSACTION,
        xp_reward=100,
    ),
    Achievement(
        id="saver_bronze",
        title="Piggy Bank",
        description="Reach a total balance of 1,000.",
        icon="🐷",
        condition=BALANCE_1K,
        xp_reward=250,
    ),
    Achievement(
        id="saver_gold",
        title="Mogul",
        description="Reach a total balance of 10,000.",
        icon="🤵",
        condition=BALANCE_10K,
        xp_reward=1000,
    ),
    Achievement(
        id="goal_hunter",
        title="Goal Hunter",
        description="Complete a savings goal.",
        icon="🎯",
        condition=GOAL_COMPLETED,
        xp_reward=500,
    ),
    Achievement(
        id="responsible",
        title="Responsible Adult",
        description="Set a budget for a category.",
        icon="👔",
        condition=HAS_BUDGET,
        xp_reward=150,
    ),
    Achievement(
        id="investor",
        title="Shark Mind",
        description="Open an investment account.",
        icon="🦈",
        condition=HAS_INVESTMENT,
        xp_reward=300,
    ),
)

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="1", name="Salary", icon="💎", color="text-emerald-400", type=TransactionType.INCOME),
    Category(id="2", name="Freelance", icon="⚡", color="text-yellow-400", type=TransactionType.INCOME),
    Category(id="3", name="Food", icon="🍔", color="text-rose-400", type=TransactionType.EXPENSE),
    Category(id="4", name="Transport", icon="🚀", color="text-orange-400", type=TransactionType.EXPENSE),
    Category(id="5", name="Games", icon="🎮", color="text-purple-400", type=TransactionType.EXPENSE),
    Category(id="6", name="Setup", icon="🖥️", color="text-cyan-400", type=TransactionType.EXPENSE),
)

# Lowest level number of each title band.
LEVEL_TITLES: tuple[tuple[int, str], ...] = (
    (13, "Tycoon"),
    (9, "Investor"),
    (6, "Strategist"),
    (3, "Apprentice"),
    (1, "Novice"),
)

ACCOUNT_ICONS = {
    AccountKind.CHECKING: "🏦",
    AccountKind.WALLET: "👛",
    AccountKind.INVESTMENT: "🪙",
    AccountKind.CREDIT_CARD: "💳",
}


def achievement_catalog() -> list[Achievement]:
    """Fresh, all-locked copies of the catalog."""
    return [achievement.model_copy() for achievement in ACHIEVEMENT_CATALOG]


def default_categories() -> list[Category]:
    return [category.model_copy() for category in DEFAULT_CATEGORIES]


def main_account(initial_balance: Decimal) -> Account:
    """The checking account created by onboarding."""
    return Account(
        id="1",
        name="Main Account",
        type=AccountKind.CHECKING,
        balance=initial_balance,
        color="text-blue-400",
        icon=ACCOUNT_ICONS[AccountKind.CHECKING],
    )
