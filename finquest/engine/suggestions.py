"""
Suggestion Engine

Guesses a category and account for a new transaction from the ones used
by earlier transactions with a similar description.
"""

from typing import Iterable

from finquest.models.analytics import Suggestion
from finquest.models.finance import Transaction


def suggest_category_and_account(
    description: str,
    transactions: Iterable[Transaction],
    min_length: int = 3,
) -> Suggestion:
    """
    Case-insensitive substring lookup over past descriptions.

    Among all matches the most recently dated transaction wins. Short
    inputs and misses give an empty Suggestion.
    """
    needle = (description or "").strip().lower()
    if len(needle) < min_length:
        return Suggestion()

    matches = [t for t in transactions if needle in t.description.lower()]
    if not matches:
        return Suggestion()

    best = max(matches, key=lambda t: t.date)
    return Suggestion(category_id=best.category_id, account_id=best.account_id)
