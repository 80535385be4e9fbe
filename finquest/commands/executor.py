"""
Command Execution Engine

DESIGN DECISION: Command execution is DETERMINISTIC.
The parser turns text into a Command. This executor fills in what the
text left out and calls the same engine operations the UI calls.

The executor never touches the store directly and never invents data:
answers come from the engine's own derived views.
"""

import itertools
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel

from finquest.commands.parser import (
    AddExpenseCommand,
    AddGoalCommand,
    AddIncomeCommand,
    Command,
    NavigateCommand,
    QueryCategorySpendCommand,
    SmallTalkCommand,
    UnknownCommand,
    command_adapter,
)
from finquest.engine.errors import FinanceError
from finquest.models.finance import TransactionType
from finquest.orchestrator import FinanceEngine
from finquest.services.storage import StorageError


JOKES = (
    "Why did the banker switch careers? He lost interest.",
    "I told my wallet a joke. It didn't crack a smile, it just got thinner.",
)


class CommandResult(BaseModel):
    """Outcome of one command, ready to show or speak."""

    success: bool
    message: str
    data: dict[str, Any] = {}


def one_year_from(now: datetime) -> date:
    """Deadline given to goals created by command."""
    today = now.date()
    try:
        return today.replace(year=today.year + 1)
    except ValueError:
        # 29 February
        return today + timedelta(days=365)


def _money(amount: Decimal) -> str:
    return f"{amount:,.2f}"


class CommandExecutor:
    """
    Executes parsed commands against a FinanceEngine.

    GUARANTEES:
    - Only the engine's public operations are used
    - Engine refusals come back as an unsuccessful CommandResult
    - Anything else propagates
    """

    def __init__(self, engine: FinanceEngine):
        self._engine = engine
        self._jokes = itertools.cycle(JOKES)

    async def execute(self, command: Union[Command, dict[str, Any]]) -> CommandResult:
        if isinstance(command, dict):
            command = command_adapter.validate_python(command)

        try:
            if command.intent == "navigate":
                return self._navigate(command)
            elif command.intent == "query_balance":
                return self._query_balance()
            elif command.intent == "query_category_spend":
                return self._query_category_spend(command)
            elif command.intent in ("add_expense", "add_income"):
                return await self._add_transaction(command)
            elif command.intent == "add_goal":
                return await self._add_goal(command)
            elif command.intent == "small_talk":
                return self._small_talk(command)
            else:
                return self._unknown(command)
        except (FinanceError, StorageError) as e:
            return CommandResult(success=False, message=str(e), data={"intent": command.intent})

    def _navigate(self, command: NavigateCommand) -> CommandResult:
        if command.destination is None:
            return CommandResult(
                success=False,
                message="I don't know that place. Try 'go to dashboard'.",
            )
        return CommandResult(
            success=True,
            message=f"Opening {command.destination}.",
            data={"destination": command.destination},
        )

    def _query_balance(self) -> CommandResult:
        total = self._engine.total_balance()
        if total > 0:
            message = f"Your balance is {_money(total)}."
        else:
            message = f"Your balance is {_money(total)}. Careful!"
        return CommandResult(success=True, message=message, data={"total_balance": str(total)})

    def _query_category_spend(self, command: QueryCategorySpendCommand) -> CommandResult:
        category = (
            self._engine.store.get_category(command.category_id)
            if command.category_id else None
        )
        if category is None:
            return CommandResult(
                success=False,
                message="Which category? Try 'how much did I spend on Games'.",
            )
        total = sum(
            (
                t.amount for t in self._engine.transactions
                if t.category_id == category.id and t.type == TransactionType.EXPENSE
            ),
            Decimal("0"),
        )
        return CommandResult(
            success=True,
            message=f"Total spent on {category.name}: {_money(total)}.",
            data={"category_id": category.id, "total": str(total)},
        )

    def _resolve_category(
        self,
        kind: TransactionType,
        explicit: Optional[str],
        suggested: Optional[str],
    ) -> Optional[str]:
        """Explicit mention, then the suggestion if its type fits, then the first of the type."""
        if explicit is not None:
            return explicit
        if suggested is not None:
            category = self._engine.store.get_category(suggested)
            if category is not None and category.type == kind:
                return category.id
        same_type = [c for c in self._engine.categories if c.type == kind]
        if same_type:
            return same_type[0].id
        categories = self._engine.categories
        return categories[0].id if categories else None

    async def _add_transaction(self, command: Union[AddExpenseCommand, AddIncomeCommand]) -> CommandResult:
        kind = TransactionType.INCOME if command.intent == "add_income" else TransactionType.EXPENSE
        accounts = self._engine.accounts
        if not accounts:
            return CommandResult(success=False, message="Create an account first.")

        suggestion = self._engine.suggest(command.description)
        category_id = self._resolve_category(kind, command.category_id, suggestion.category_id)
        if category_id is None:
            return CommandResult(success=False, message="Create a category first.")

        account_id = accounts[0].id
        if command.category_id is None and category_id == suggestion.category_id and suggestion.account_id:
            if self._engine.store.get_account(suggestion.account_id) is not None:
                account_id = suggestion.account_id

        transaction = await self._engine.add_transaction({
            "description": command.description,
            "amount": command.amount,
            "date": self._engine.now(),
            "category_id": category_id,
            "account_id": account_id,
            "type": kind,
        })
        verb = "Income" if kind == TransactionType.INCOME else "Expense"
        return CommandResult(
            success=True,
            message=f"{verb} of {_money(transaction.amount)} recorded: {transaction.description}.",
            data={"transaction_id": transaction.id},
        )

    async def _add_goal(self, command: AddGoalCommand) -> CommandResult:
        goal = await self._engine.add_goal({
            "name": command.name,
            "target_amount": command.amount,
            "current_amount": Decimal("0"),
            "deadline": one_year_from(self._engine.now()),
            "icon": "🎯",
            "color": "text-yellow-400",
        })
        return CommandResult(
            success=True,
            message=f"Goal '{goal.name}' created.",
            data={"goal_id": goal.id},
        )

    def _small_talk(self, command: SmallTalkCommand) -> CommandResult:
        if command.topic == "joke":
            return CommandResult(success=True, message=next(self._jokes))
        first_name = self._engine.profile.name.split()[0]
        return CommandResult(success=True, message=f"Hey {first_name}! All good?")

    def _unknown(self, command: UnknownCommand) -> CommandResult:
        return CommandResult(success=False, message=command.reason, data={"text": command.text})
