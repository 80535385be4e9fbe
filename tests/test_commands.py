"""Tests for the command parser and executor."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from factories import FOOD, GAMES, NOW, SALARY, TRANSPORT, expense
from finquest.catalog import default_categories
from finquest.commands import (
    AddExpenseCommand,
    AddGoalCommand,
    AddIncomeCommand,
    CommandExecutor,
    CommandParser,
    NavigateCommand,
    QueryBalanceCommand,
    QueryCategorySpendCommand,
    SmallTalkCommand,
    UnknownCommand,
    one_year_from,
)


@pytest.fixture
def parser():
    return CommandParser()


@pytest.fixture
def categories():
    return default_categories()


class TestCommandParser:
    """Tests for text -> Command classification."""

    def test_expense_with_category(self, parser, categories):
        """Test 'spent 50 on food'."""
        command = parser.parse("spent 50 on food", categories)
        assert isinstance(command, AddExpenseCommand)
        assert command.amount == Decimal("50")
        assert command.description == "Food"
        assert command.category_id == FOOD

    def test_comma_decimal(self, parser, categories):
        """Test that '12,50' is read as twelve and a half."""
        command = parser.parse("spent 12,50 at the bakery", categories)
        assert isinstance(command, AddExpenseCommand)
        assert command.amount == Decimal("12.50")
        assert command.description == "Bakery"
        assert command.category_id is None

    @pytest.mark.parametrize("text,amount", [
        ("spent 1,234.56 on food", "1234.56"),
        ("spent 1.234,56 on food", "1234.56"),
        ("spent 2,500 on food", "2500"),
    ])
    def test_thousands_separators(self, parser, categories, text, amount):
        """Test that grouped digits are read as thousands, not decimals."""
        command = parser.parse(text, categories)
        assert isinstance(command, AddExpenseCommand)
        assert command.amount == Decimal(amount)
        assert command.category_id == FOOD

    def test_income_keywords(self, parser, categories):
        """Test that income words pick an income category."""
        command = parser.parse("received 1500 salary", categories)
        assert isinstance(command, AddIncomeCommand)
        assert command.category_id == SALARY
        assert command.description == "New income"

    def test_goal(self, parser, categories):
        """Test goal creation with the name left after filler words."""
        command = parser.parse("new goal of 5000 for a car", categories)
        assert isinstance(command, AddGoalCommand)
        assert command.amount == Decimal("5000")
        assert command.name == "Car"

    def test_navigation(self, parser, categories):
        """Test navigation before anything else that mentions goals."""
        command = parser.parse("go to goals", categories)
        assert isinstance(command, NavigateCommand)
        assert command.destination == "goals"

    def test_navigation_to_unknown_place(self, parser, categories):
        """Test that an unknown destination is left empty."""
        command = parser.parse("open the fridge", categories)
        assert isinstance(command, NavigateCommand)
        assert command.destination is None

    def test_balance_query(self, parser, categories):
        """Test the balance question."""
        assert isinstance(parser.parse("What's my balance?", categories), QueryBalanceCommand)

    def test_category_spend_query(self, parser, categories):
        """Test the per-category spend question."""
        command = parser.parse("How much did I spend on games", categories)
        assert isinstance(command, QueryCategorySpendCommand)
        assert command.category_id == GAMES

    @pytest.mark.parametrize("text,topic", [("hello", "greeting"), ("tell me a joke", "joke")])
    def test_small_talk(self, parser, text, topic):
        """Test greetings and jokes."""
        command = parser.parse(text)
        assert isinstance(command, SmallTalkCommand)
        assert command.topic == topic

    @pytest.mark.parametrize("text", ["buy something", "spent 0 on food", "   "])
    def test_unknown(self, parser, categories, text):
        """Test texts without a usable intent or amount."""
        assert isinstance(parser.parse(text, categories), UnknownCommand)


class TestCommandExecutor:
    """Tests for executing commands against the engine."""

    @pytest.mark.asyncio
    async def test_expense_from_text(self, engine):
        """Test the full text -> transaction path."""
        await engine.complete_onboarding("Ana", initial_balance=1000)
        command = CommandParser().parse("spent 50 on food", engine.categories)

        result = await CommandExecutor(engine).execute(command)

        assert result.success is True
        assert result.message == "Expense of 50.00 recorded: Food."
        transaction = engine.store.require_transaction(result.data["transaction_id"])
        assert transaction.category_id == FOOD
        assert transaction.date == NOW
        assert engine.total_balance() == Decimal("950")

    @pytest.mark.asyncio
    async def test_suggestion_fills_category_and_account(self, engine):
        """Test that a known description reuses its category and account."""
        await engine.complete_onboarding("Ana", initial_balance=1000)
        card = await engine.add_account({"name": "Visa", "type": "credit_card"})
        await engine.add_transaction(expense(
            25, description="Uber home", category_id=TRANSPORT, account_id=card.id,
        ))

        result = await CommandExecutor(engine).execute(
            AddExpenseCommand(amount=Decimal("20"), description="Uber")
        )

        transaction = engine.store.require_transaction(result.data["transaction_id"])
        assert transaction.category_id == TRANSPORT
        assert transaction.account_id == card.id

    @pytest.mark.asyncio
    async def test_income_defaults_to_first_income_category(self, engine):
        """Test the fallback category when nothing was mentioned."""
        await engine.complete_onboarding("Ana", initial_balance=0)
        result = await CommandExecutor(engine).execute(
            AddIncomeCommand(amount=Decimal("1500"), description="Bonus")
        )
        assert result.message == "Income of 1,500.00 recorded: Bonus."
        transaction = engine.store.require_transaction(result.data["transaction_id"])
        assert transaction.category_id == SALARY

    @pytest.mark.asyncio
    async def test_no_account(self, engine):
        """Test that a not-onboarded engine cannot record anything."""
        result = await CommandExecutor(engine).execute(
            AddExpenseCommand(amount=Decimal("5"), description="Coffee")
        )
        assert result.success is False
        assert result.message == "Create an account first."

    @pytest.mark.asyncio
    async def test_goal_gets_one_year_deadline(self, engine):
        """Test goal creation by command."""
        await engine.complete_onboarding("Ana", initial_balance=0)
        result = await CommandExecutor(engine).execute(
            AddGoalCommand(amount=Decimal("5000"), name="Car")
        )
        assert result.message == "Goal 'Car' created."
        goal = engine.store.require_goal(result.data["goal_id"])
        assert goal.deadline == date(2025, 6, 15)
        assert goal.target_amount == Decimal("5000")

    @pytest.mark.asyncio
    async def test_balance_answers(self, engine):
        """Test the balance answer and its warning."""
        executor = CommandExecutor(engine)
        await engine.complete_onboarding("Ana", initial_balance=1000)
        result = await executor.execute({"intent": "query_balance"})
        assert result.message == "Your balance is 1,000.00."

        await engine.update_account("1", {"balance": 0})
        result = await executor.execute(QueryBalanceCommand())
        assert result.message == "Your balance is 0.00. Careful!"

    @pytest.mark.asyncio
    async def test_category_spend(self, engine):
        """Test the all-time expense total of a category."""
        await engine.complete_onboarding("Ana", initial_balance=1000)
        await engine.add_transaction(expense(30, category_id=FOOD, date=datetime(2024, 1, 3)))
        await engine.add_transaction(expense(20, category_id=FOOD))
        executor = CommandExecutor(engine)

        result = await executor.execute(QueryCategorySpendCommand(category_id=FOOD))
        assert result.message == "Total spent on Food: 50.00."

        missing = await executor.execute(QueryCategorySpendCommand())
        assert missing.success is False

    @pytest.mark.asyncio
    async def test_navigation_and_small_talk(self, engine):
        """Test the answers that do not touch money."""
        await engine.complete_onboarding("Ana Silva", initial_balance=0)
        executor = CommandExecutor(engine)

        assert (await executor.execute(NavigateCommand(destination="planning"))).message == "Opening planning."
        assert (await executor.execute(NavigateCommand())).success is False
        assert (await executor.execute(SmallTalkCommand())).message == "Hey Ana! All good?"

        jokes = [(await executor.execute(SmallTalkCommand(topic="joke"))).message for _ in range(3)]
        assert jokes[0] != jokes[1]
        assert jokes[2] == jokes[0]

    @pytest.mark.asyncio
    async def test_unknown_returns_reason(self, engine):
        """Test that an unknown command reports why."""
        result = await CommandExecutor(engine).execute(UnknownCommand(text="hmm", reason="No amount found."))
        assert result.success is False
        assert result.message == "No amount found."

    @pytest.mark.asyncio
    async def test_overlong_text_becomes_failed_result(self, engine):
        """Test that a description or goal name over the limit answers instead of raising."""
        await engine.complete_onboarding("Ana", initial_balance=1000)
        executor = CommandExecutor(engine)

        result = await executor.execute(AddExpenseCommand(amount=Decimal("5"), description="x" * 250))
        assert result.success is False
        assert result.message.startswith("Invalid input")
        assert engine.transactions == []

        result = await executor.execute(AddGoalCommand(amount=Decimal("5000"), name="y" * 150))
        assert result.success is False
        assert engine.goals == []

    @pytest.mark.asyncio
    async def test_engine_refusal_becomes_failed_result(self, engine):
        """Test that a locked engine answers instead of raising."""
        await engine.complete_onboarding("Ana", initial_balance=0)
        await engine.set_pin("1234")
        engine.lock()

        result = await CommandExecutor(engine).execute(
            AddExpenseCommand(amount=Decimal("5"), description="Coffee")
        )
        assert result.success is False
        assert "locked" in result.message
        assert engine.transactions == []


class TestOneYearFrom:
    """Tests for the default goal deadline."""

    def test_regular_day(self):
        """Test a plain date a year ahead."""
        assert one_year_from(NOW) == date(2025, 6, 15)

    def test_leap_day(self):
        """Test that 29 February falls back to 365 days later."""
        assert one_year_from(datetime(2024, 2, 29)) == date(2025, 2, 28)
