"""
Data Models Package

This package contains all Pydantic models used by finquest.
All data flowing through the engine must conform to these schemas.
"""

from finquest.models.finance import (
    Account,
    AccountKind,
    Achievement,
    Budget,
    Category,
    Goal,
    GoalDraft,
    Installments,
    Notification,
    NotificationType,
    Transaction,
    TransactionDraft,
    TransactionType,
    UserProfile,
    new_id,
)
from finquest.models.analytics import (
    BudgetStatus,
    CategoryExpense,
    CreditUsage,
    DailyFlow,
    FinancialHealth,
    Forecast,
    ForecastStatus,
    GoalFundResult,
    MonthlyTotals,
    Suggestion,
)
from finquest.models.snapshot import (
    FinanceSnapshot,
    SnapshotFormatError,
    check_category_types,
    parse_snapshot,
)
from finquest.models.validation import ValidationIssue, ValidationResult
from finquest.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "Account",
    "AccountKind",
    "Achievement",
    "Budget",
    "Category",
    "Goal",
    "GoalDraft",
    "Installments",
    "Notification",
    "NotificationType",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "UserProfile",
    "new_id",
    # Derived views
    "BudgetStatus",
    "CategoryExpense",
    "CreditUsage",
    "DailyFlow",
    "FinancialHealth",
    "Forecast",
    "ForecastStatus",
    "GoalFundResult",
    "MonthlyTotals",
    "Suggestion",
    # Snapshot
    "FinanceSnapshot",
    "SnapshotFormatError",
    "check_category_types",
    "parse_snapshot",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
