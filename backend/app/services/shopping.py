# backend/app/services/shopping.py
"""
Items on a shopping list, and completing a list.

Items follow their list: readable by whoever may read the list, changed
only by the list's owner. The list's estimated/actual totals move with
every item that carries a price.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import RecordNotFound
from backend.app.models.records import ShoppingList, ShoppingListItem
from backend.app.models.user import User
from backend.app.security.policy import Action
from backend.app.services import access


def _line(price: Optional[Decimal], quantity: int) -> Decimal:
    return price * quantity if price is not None else Decimal("0")


def _adjust(current: Optional[Decimal], delta: Decimal) -> Optional[Decimal]:
    if current is None and not delta:
        return None
    return max((current or Decimal("0")) + delta, Decimal("0"))


def _move_totals(shopping_list: ShoppingList, before: Tuple[Decimal, Decimal], after: Tuple[Decimal, Decimal]) -> None:
    shopping_list.estimated_total = _adjust(shopping_list.estimated_total, after[0] - before[0])
    shopping_list.actual_total = _adjust(shopping_list.actual_total, after[1] - before[1])


def _lines(item: ShoppingListItem) -> Tuple[Decimal, Decimal]:
    return _line(item.estimated_price, item.quantity), _line(item.actual_price, item.quantity)


async def _load_item(
    db: AsyncSession, list_id: int, item_id: int, user: User, action: Action
) -> Tuple[ShoppingListItem, ShoppingList]:
    shopping_list = await access.load_record(db, ShoppingList, list_id, user, action)

    item = await db.get(ShoppingListItem, item_id)
    if item is None or item.shopping_list_id != shopping_list.id:
        raise RecordNotFound("Shopping list item not found")
    return item, shopping_list


async def list_items(db: AsyncSession, list_id: int, user: User) -> List[ShoppingListItem]:
    await access.load_record(db, ShoppingList, list_id, user, Action.READ)
    result = await db.execute(
        select(ShoppingListItem)
        .where(ShoppingListItem.shopping_list_id == list_id)
        .order_by(ShoppingListItem.is_checked, ShoppingListItem.id)
    )
    return list(result.scalars().all())


async def add_item(db: AsyncSession, list_id: int, user: User, data: Dict[str, Any]) -> ShoppingListItem:
    shopping_list = await access.load_record(db, ShoppingList, list_id, user, Action.WRITE)

    data = {key: value for key, value in data.items() if key not in ("id", "shopping_list_id")}
    item = ShoppingListItem(**data, shopping_list_id=shopping_list.id)
    db.add(item)
    _move_totals(shopping_list, (Decimal("0"), Decimal("0")), _lines(item))

    await access.commit(db, item)
    return item


async def update_item(
    db: AsyncSession, list_id: int, item_id: int, user: User, changes: Dict[str, Any]
) -> ShoppingListItem:
    item, shopping_list = await _load_item(db, list_id, item_id, user, Action.WRITE)
    before = _lines(item)

    access.apply_changes(item, changes, protected={"id", "shopping_list_id", "created_at"})
    _move_totals(shopping_list, before, _lines(item))

    await access.commit(db, item)
    return item


async def toggle_item(db: AsyncSession, list_id: int, item_id: int, user: User) -> ShoppingListItem:
    item, _ = await _load_item(db, list_id, item_id, user, Action.WRITE)
    item.is_checked = not item.is_checked
    await access.commit(db, item)
    return item


async def delete_item(db: AsyncSession, list_id: int, item_id: int, user: User) -> None:
    item, shopping_list = await _load_item(db, list_id, item_id, user, Action.WRITE)

    _move_totals(shopping_list, _lines(item), (Decimal("0"), Decimal("0")))
    await db.delete(item)
    await db.commit()


async def complete_list(db: AsyncSession, list_id: int, user: User) -> ShoppingList:
    shopping_list = await access.load_record(db, ShoppingList, list_id, user, Action.WRITE)
    shopping_list.is_completed = True
    shopping_list.completed_date = date.today()
    await access.commit(db, shopping_list)
    return shopping_list
