"""
Account and category maintenance.

Removal is refused while anything still references the entity, and the
store always keeps at least one category of each type.
"""

from typing import Any

from pydantic import BaseModel
from pydantic.alias_generators import to_snake

from finquest.catalog import ACCOUNT_ICONS
from finquest.engine.errors import ConstraintViolationError
from finquest.engine.store import ACCOUNTS, BUDGETS, CATEGORIES, EntityStore, Mutation
from finquest.models.finance import Account, Category


def merge_update(current: BaseModel, updates: dict[str, Any]) -> dict[str, Any]:
    """
    Overlay a partial update (camelCase or snake_case keys) on a model.

    The id is never taken from the update.
    """
    merged = current.model_dump()
    for key, value in updates.items():
        field = to_snake(key)
        if field == "id":
            continue
        merged[field] = value
    return merged


def plan_add_account(store: EntityStore, account: Account) -> tuple[Account, Mutation]:
    created = account.model_copy(update={
        "id": store.fresh_id(ACCOUNTS),
        "icon": account.icon or ACCOUNT_ICONS[account.type],
    })
    return created, Mutation().put(ACCOUNTS, created.id, created)


def plan_update_account(store: EntityStore, account: Account) -> tuple[Account, Mutation]:
    """Replace an account. This is the one path that may set a balance directly."""
    store.require_account(account.id)
    return account, Mutation().put(ACCOUNTS, account.id, account)


def plan_remove_account(store: EntityStore, account_id: str) -> tuple[Account, Mutation]:
    account = store.require_account(account_id)
    in_use = sum(1 for t in store.transactions if t.account_id == account_id)
    if in_use:
        raise ConstraintViolationError(
            f"Account '{account.name}' still has {in_use} linked transaction(s)"
        )
    return account, Mutation().delete(ACCOUNTS, account_id)


def _count_of_type(store: EntityStore, category: Category) -> int:
    return sum(1 for c in store.categories if c.type == category.type)


def plan_add_category(store: EntityStore, category: Category) -> tuple[Category, Mutation]:
    created = category.model_copy(update={"id": store.fresh_id(CATEGORIES)})
    return created, Mutation().put(CATEGORIES, created.id, created)


def plan_update_category(store: EntityStore, category: Category) -> tuple[Category, Mutation]:
    current = store.require_category(category.id)
    if category.type != current.type and _count_of_type(store, current) <= 1:
        raise ConstraintViolationError(
            f"'{current.name}' is the last {current.type.value} category"
        )
    return category, Mutation().put(CATEGORIES, category.id, category)


def plan_remove_category(store: EntityStore, category_id: str) -> tuple[Category, Mutation]:
    """Remove a category together with its budget."""
    category = store.require_category(category_id)
    if any(t.category_id == category_id for t in store.transactions):
        raise ConstraintViolationError(f"Category '{category.name}' is in use")
    if _count_of_type(store, category) <= 1:
        raise ConstraintViolationError(
            f"Keep at least one {category.type.value} category"
        )

    mutation = Mutation().delete(CATEGORIES, category_id)
    if store.get_budget(category_id) is not None:
        mutation.delete(BUDGETS, category_id)
    return category, mutation
