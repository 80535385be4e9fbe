"""
Core Data Models for finquest

These models define the strict schemas for every entity the engine owns.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Serialize to the backup format (camelCase keys) and load it back
4. Keep money exact (Decimal, never float)

DESIGN DECISION: Amounts are stored non-negative. The direction of a
transaction lives only in its ``type``; the signed effect on an account
is computed by the ledger, never stored.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Fresh entity identifier."""
    return uuid4().hex


def _to_local_naive(value: datetime) -> datetime:
    # Month/day filters compare against a naive local "now".
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


ENTITY_CONFIG = ConfigDict(
    str_strip_whitespace=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money. Also the type of a category."""
    INCOME = "income"
    EXPENSE = "expense"


class AccountKind(str, Enum):
    """Kinds of accounts a user can hold."""
    CHECKING = "checking"
    WALLET = "wallet"
    INVESTMENT = "investment"
    CREDIT_CARD = "credit_card"


class NotificationType(str, Enum):
    """How a collaborator should present a notification."""
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    ACHIEVEMENT = "achievement"


# =============================================================================
# ACCOUNTS AND CATEGORIES
# =============================================================================

class Account(BaseModel):
    """
    A place money lives.

    ``balance`` is signed: a credit card in debt carries a negative
    balance. It moves only through the ledger or an explicit account update.
    """
    model_config = ENTITY_CONFIG

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountKind = AccountKind.CHECKING
    balance: Decimal = Decimal("0")
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    color: str = ""
    icon: str = ""


class Category(BaseModel):
    """A label for transactions. Its type says which direction it is meant for."""
    model_config = ENTITY_CONFIG

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = ""
    color: str = ""
    type: TransactionType


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Installments(BaseModel):
    """Position of a purchase inside an installment plan (e.g. 3 of 12)."""
    model_config = ENTITY_CONFIG

    current: int = Field(..., ge=1)
    total: int = Field(..., ge=1)

    @model_validator(mode='after')
    def validate_position(self) -> 'Installments':
        if self.current > self.total:
            raise ValueError("Current installment cannot exceed the total")
        return self


class TransactionDraft(BaseModel):
    """
    Everything a caller supplies to add or edit a transaction.

    The id is assigned by the engine on add and kept on edit.
    """
    model_config = ENTITY_CONFIG

    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    date: datetime
    category_id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    type: TransactionType
    is_recurring: bool = False
    installments: Optional[Installments] = None

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return _to_local_naive(v)


class Transaction(TransactionDraft):
    """A stored transaction, the ledger's unit of truth."""

    id: str = Field(default_factory=new_id)

    @classmethod
    def from_draft(cls, draft: TransactionDraft, transaction_id: Optional[str] = None) -> 'Transaction':
        return cls(id=transaction_id or new_id(), **draft.model_dump(exclude={"id"}))

    def to_draft(self) -> TransactionDraft:
        return TransactionDraft(**self.model_dump(exclude={"id"}))


# =============================================================================
# BUDGETS AND GOALS
# =============================================================================

class Budget(BaseModel):
    """Monthly spending ceiling for one category. At most one per category."""
    model_config = ENTITY_CONFIG

    category_id: str = Field(..., min_length=1)
    limit: Decimal = Field(..., gt=0)


class GoalDraft(BaseModel):
    """What a caller supplies to create a savings goal."""
    model_config = ENTITY_CONFIG

    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    deadline: date
    icon: str = ""
    color: str = ""


class Goal(GoalDraft):
    """A savings goal. ``completed`` follows current >= target."""

    id: str = Field(default_factory=new_id)
    completed: bool = False

    @property
    def progress(self) -> float:
        """Saved share of the target, 0-100, uncapped."""
        return float(self.current_amount / self.target_amount * 100)


# =============================================================================
# GAMIFICATION
# =============================================================================

class Achievement(BaseModel):
    """
    A one-way milestone.

    Everything but ``unlocked_at`` comes from the fixed catalog.
    Once ``unlocked_at`` is set it is never cleared.
    """
    model_config = ENTITY_CONFIG

    id: str
    title: str
    description: str
    icon: str = ""
    condition: str
    xp_reward: int = Field(..., ge=0)
    unlocked_at: Optional[datetime] = None

    @property
    def is_unlocked(self) -> bool:
        return self.unlocked_at is not None


class UserProfile(BaseModel):
    """The person using the app. A stored PIN locks the app on load."""
    model_config = ENTITY_CONFIG

    name: str = Field(default="User", min_length=1, max_length=100)
    avatar: str = "👤"
    onboarding_completed: bool = False
    security_pin: Optional[str] = Field(default=None, pattern=r"^\d+$")


class Notification(BaseModel):
    """A message the engine hands to the UI after an operation."""

    id: str = Field(default_factory=new_id)
    message: str
    type: NotificationType = NotificationType.INFO
