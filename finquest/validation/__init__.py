"""Draft validation package."""

from finquest.validation.validator import DraftValidator

__all__ = ["DraftValidator"]
