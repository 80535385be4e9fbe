"""Tests for description-based suggestions."""

from datetime import datetime

from factories import FOOD, MAIN_ACCOUNT, TRANSPORT, expense
from finquest.engine.suggestions import suggest_category_and_account
from finquest.models.finance import Transaction


def history(*drafts):
    return [Transaction.from_draft(d, str(i)) for i, d in enumerate(drafts)]


class TestSuggestions:
    """Tests for the substring lookup."""

    def test_most_recent_match_wins(self):
        """Test that the latest 'uber' ride decides the category and account."""
        transactions = history(
            expense(12, description="Uber Eats", category_id=FOOD, date=datetime(2024, 6, 1)),
            expense(20, description="Uber to airport", category_id=TRANSPORT,
                    account_id="card", date=datetime(2024, 6, 10)),
            expense(8, description="Bakery", category_id=FOOD, date=datetime(2024, 6, 12)),
        )
        suggestion = suggest_category_and_account("uber", transactions)
        assert suggestion.category_id == TRANSPORT
        assert suggestion.account_id == "card"

    def test_match_is_case_insensitive_and_trimmed(self):
        """Test that '  BAKE ' finds 'Bakery'."""
        transactions = history(expense(8, description="Bakery", category_id=FOOD))
        suggestion = suggest_category_and_account("  BAKE ", transactions)
        assert suggestion.category_id == FOOD
        assert suggestion.account_id == MAIN_ACCOUNT

    def test_short_input_gives_nothing(self):
        """Test that fewer than three characters never suggest."""
        transactions = history(expense(8, description="Ub"))
        assert suggest_category_and_account("ub", transactions).is_empty

    def test_no_match_gives_nothing(self):
        """Test a description nobody has used before."""
        transactions = history(expense(8, description="Bakery"))
        assert suggest_category_and_account("cinema", transactions).is_empty

    def test_empty_history(self):
        """Test that an empty ledger gives nothing."""
        assert suggest_category_and_account("anything", []).is_empty
