"""Text command interface: parse one line, run it against the engine."""

from finquest.commands.executor import CommandExecutor, CommandResult, one_year_from
from finquest.commands.parser import (
    AddExpenseCommand,
    AddGoalCommand,
    AddIncomeCommand,
    Command,
    CommandParser,
    NavigateCommand,
    QueryBalanceCommand,
    QueryCategorySpendCommand,
    SmallTalkCommand,
    UnknownCommand,
)

__all__ = [
    "AddExpenseCommand",
    "AddGoalCommand",
    "AddIncomeCommand",
    "Command",
    "CommandExecutor",
    "CommandParser",
    "CommandResult",
    "NavigateCommand",
    "QueryBalanceCommand",
    "QueryCategorySpendCommand",
    "SmallTalkCommand",
    "UnknownCommand",
    "one_year_from",
]
