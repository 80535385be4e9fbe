"""
Command Parser

Turns one line of user text (typed or transcribed) into a tagged command.

DESIGN DECISION: Parsing is DETERMINISTIC keyword matching over a closed
set of intents. The parser never touches the engine; it only reads the
category names it is given. Resolving what is missing (category,
account, date) is the executor's job.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Annotated, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from finquest.models.finance import Category, TransactionType


Destination = Literal["dashboard", "transactions", "planning", "goals", "achievements", "settings"]


class NavigateCommand(BaseModel):
    intent: Literal["navigate"] = "navigate"
    destination: Optional[Destination] = None


class QueryBalanceCommand(BaseModel):
    intent: Literal["query_balance"] = "query_balance"


class QueryCategorySpendCommand(BaseModel):
    intent: Literal["query_category_spend"] = "query_category_spend"
    category_id: Optional[str] = None


class AddExpenseCommand(BaseModel):
    intent: Literal["add_expense"] = "add_expense"
    amount: Decimal = Field(..., gt=0)
    description: str
    category_id: Optional[str] = None


class AddIncomeCommand(BaseModel):
    intent: Literal["add_income"] = "add_income"
    amount: Decimal = Field(..., gt=0)
    description: str
    category_id: Optional[str] = None


class AddGoalCommand(BaseModel):
    intent: Literal["add_goal"] = "add_goal"
    amount: Decimal = Field(..., gt=0)
    name: str


class SmallTalkCommand(BaseModel):
    intent: Literal["small_talk"] = "small_talk"
    topic: Literal["greeting", "joke"] = "greeting"


class UnknownCommand(BaseModel):
    intent: Literal["unknown"] = "unknown"
    text: str = ""
    reason: str = "Command not understood"


Command = Annotated[
    Union[
        NavigateCommand,
        QueryBalanceCommand,
        QueryCategorySpendCommand,
        AddExpenseCommand,
        AddIncomeCommand,
        AddGoalCommand,
        SmallTalkCommand,
        UnknownCommand,
    ],
    Field(discriminator="intent"),
]

command_adapter = TypeAdapter(Command)


# First number in the text. Groups of three after a separator are thousands
# ("1,234.56", "1.234,56"); otherwise comma or dot decimals ("12,50").
AMOUNT_PATTERN = re.compile(
    r"(?P<comma_grouped>\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?)(?!\d)"
    r"|(?P<dot_grouped>\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?)(?!\d)"
    r"|(?P<plain>\d+(?:[.,]\d{1,2})?)"
)

GREETINGS = {"hi", "hello", "hey", "hey there", "good morning", "good evening"}

NAVIGATION_TRIGGERS = ("go to", "open", "navigate to", "take me to")

DESTINATION_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("dashboard", "home", "overview"), "dashboard"),
    (("transaction", "statement", "history"), "transactions"),
    (("budget", "planning", "plan"), "planning"),
    (("goal",), "goals"),
    (("achievement", "trophies", "badges"), "achievements"),
    (("setting", "config"), "settings"),
)

BALANCE_TRIGGERS = ("balance", "how much do i have", "how much money do i have")
SPEND_TRIGGERS = ("how much did i spend", "how much have i spent", "how much i spent")
GOAL_TRIGGERS = ("goal", "objective", "saving for")

INCOME_KEYWORDS = ("received", "earned", "got paid", "deposit", "salary", "payday", "income", "sold")
EXPENSE_WORDS = ("spent", "paid", "bought", "spend", "pay", "buy")
FILLER_WORDS = ("dollars", "dollar", "bucks", "on", "at", "in", "for", "of", "the", "a", "an", "to", "with", "i", "my")
GOAL_WORDS = ("new", "create", "add", "goal", "objective", "saving", "of", "worth", "for", "to", "a", "dollars", "bucks")


def _strip_words(text: str, words: Iterable[str]) -> str:
    for word in words:
        text = re.sub(rf"\b{re.escape(word)}\b", "", text)
    return re.sub(r"\s+", " ", text).strip()


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


class CommandParser:
    """
    Classifies user text into one Command.

    Order matters: small talk, navigation and queries are recognised
    before anything that needs an amount, so "open goals" navigates
    rather than creating a goal.
    """

    def parse(self, text: str, categories: Iterable[Category] = ()) -> Command:
        lower = (text or "").strip().lower()
        categories = list(categories)

        if not lower:
            return UnknownCommand(text=text or "", reason="Nothing to do")

        if lower in GREETINGS:
            return SmallTalkCommand(topic="greeting")
        if "joke" in lower:
            return SmallTalkCommand(topic="joke")

        if any(trigger in lower for trigger in NAVIGATION_TRIGGERS):
            return NavigateCommand(destination=self._destination(lower))

        if any(trigger in lower for trigger in BALANCE_TRIGGERS):
            return QueryBalanceCommand()

        if any(trigger in lower for trigger in SPEND_TRIGGERS):
            category = self._mentioned_category(lower, categories)
            return QueryCategorySpendCommand(category_id=category.id if category else None)

        match = AMOUNT_PATTERN.search(lower)
        amount = self._amount(match) if match else None
        if amount is None or amount <= 0:
            return UnknownCommand(text=text, reason="No amount found. Try 'spent 50 on food'.")

        without_amount = lower.replace(match.group(0), " ", 1)

        if any(trigger in lower for trigger in GOAL_TRIGGERS):
            name = _capitalize(_strip_words(without_amount, GOAL_WORDS))
            return AddGoalCommand(amount=amount, name=name or "New goal")

        is_income = any(keyword in lower for keyword in INCOME_KEYWORDS)
        kind = TransactionType.INCOME if is_income else TransactionType.EXPENSE
        description = _capitalize(
            _strip_words(without_amount, INCOME_KEYWORDS + EXPENSE_WORDS + FILLER_WORDS)
        )
        category = self._mentioned_category(lower, [c for c in categories if c.type == kind])
        category_id = category.id if category else None

        if is_income:
            return AddIncomeCommand(
                amount=amount, description=description or "New income", category_id=category_id
            )
        return AddExpenseCommand(
            amount=amount, description=description or "New expense", category_id=category_id
        )

    @staticmethod
    def _destination(lower: str) -> Optional[str]:
        for keywords, destination in DESTINATION_KEYWORDS:
            if any(keyword in lower for keyword in keywords):
                return destination
        return None

    @staticmethod
    def _mentioned_category(lower: str, categories: list[Category]) -> Optional[Category]:
        return next((c for c in categories if c.name.lower() in lower), None)

    @staticmethod
    def _amount(match: re.Match) -> Optional[Decimal]:
        if match.group("comma_grouped"):
            raw = match.group("comma_grouped").replace(",", "")
        elif match.group("dot_grouped"):
            raw = match.group("dot_grouped").replace(".", "").replace(",", ".")
        else:
            raw = match.group("plain").replace(",", ".")
        try:
            return Decimal(raw)
        except InvalidOperation:
            return None
