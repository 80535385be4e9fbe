"""
Engine error taxonomy.

Every refusal the engine can produce is one of these. They are raised
before anything is mutated, so catching one means the store is exactly
as it was before the call.
"""

from typing import Optional

from finquest.models.validation import ValidationIssue


class FinanceError(Exception):
    """Base exception for engine operations."""

    code = "finance_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(FinanceError):
    """An operation referenced an id that is not in the store."""

    code = "not_found"
    entity_type = "entity"

    def __init__(self, entity_id: str, message: Optional[str] = None):
        super().__init__(message or f"{self.entity_type.capitalize()} not found: {entity_id}")
        self.entity_id = entity_id


class AccountNotFoundError(NotFoundError):
    code = "account_not_found"
    entity_type = "account"


class CategoryNotFoundError(NotFoundError):
    code = "category_not_found"
    entity_type = "category"


class TransactionNotFoundError(NotFoundError):
    code = "transaction_not_found"
    entity_type = "transaction"


class GoalNotFoundError(NotFoundError):
    code = "goal_not_found"
    entity_type = "goal"


class InvalidInputError(FinanceError):
    """Malformed input to a mutation. Carries every issue found."""

    code = "invalid_input"

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []


class ConstraintViolationError(FinanceError):
    """The operation would break a structural invariant of the store."""

    code = "constraint_violation"


class ImportFormatError(FinanceError):
    """A backup payload was rejected. Nothing was replaced."""

    code = "import_format"


class LockedError(FinanceError):
    """The app is locked behind a PIN."""

    code = "locked"

    def __init__(self, message: str = "The app is locked. Enter your PIN first."):
        super().__init__(message)
