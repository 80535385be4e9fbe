"""
Engine package.

The Entity Store plus the stateless engines that read it and plan
Mutations for the orchestrator to persist and apply.
"""

from finquest.engine.errors import (
    AccountNotFoundError,
    CategoryNotFoundError,
    ConstraintViolationError,
    FinanceError,
    GoalNotFoundError,
    ImportFormatError,
    InvalidInputError,
    LockedError,
    NotFoundError,
    TransactionNotFoundError,
)
from finquest.engine.store import Change, EntityStore, Mutation

__all__ = [
    # Errors
    "AccountNotFoundError",
    "CategoryNotFoundError",
    "ConstraintViolationError",
    "FinanceError",
    "GoalNotFoundError",
    "ImportFormatError",
    "InvalidInputError",
    "LockedError",
    "NotFoundError",
    "TransactionNotFoundError",
    # Store
    "Change",
    "EntityStore",
    "Mutation",
]
