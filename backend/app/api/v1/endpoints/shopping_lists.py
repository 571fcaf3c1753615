# backend/app/api/v1/endpoints/shopping_lists.py
from typing import List

from fastapi import Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.api.v1.endpoints.records import build_record_router
from backend.app.db.base import get_db
from backend.app.models.records import ShoppingList
from backend.app.models.user import User
from backend.app.schemas.records import (
    ShoppingListCreate,
    ShoppingListItemCreate,
    ShoppingListItemResponse,
    ShoppingListItemUpdate,
    ShoppingListResponse,
    ShoppingListUpdate,
)
from backend.app.schemas.user import MessageResponse
from backend.app.services import shopping

router = build_record_router(
    ShoppingList, ShoppingListCreate, ShoppingListUpdate, ShoppingListResponse
)


@router.post("/{list_id}/complete", response_model=ShoppingListResponse)
async def complete_list(
        list_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    return await shopping.complete_list(db, list_id, current_user)


@router.get("/{list_id}/items", response_model=List[ShoppingListItemResponse])
async def list_items(
        list_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    """Unchecked items first."""
    return await shopping.list_items(db, list_id, current_user)


@router.post(
    "/{list_id}/items",
    response_model=ShoppingListItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_item(
        list_id: int,
        item_in: ShoppingListItemCreate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    return await shopping.add_item(db, list_id, current_user, item_in.model_dump())


@router.put("/{list_id}/items/{item_id}", response_model=ShoppingListItemResponse)
async def update_item(
        list_id: int,
        item_id: int,
        item_in: ShoppingListItemUpdate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    changes = item_in.model_dump(exclude_unset=True)
    return await shopping.update_item(db, list_id, item_id, current_user, changes)


@router.post("/{list_id}/items/{item_id}/toggle", response_model=ShoppingListItemResponse)
async def toggle_item(
        list_id: int,
        item_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    return await shopping.toggle_item(db, list_id, item_id, current_user)


@router.delete("/{list_id}/items/{item_id}", response_model=MessageResponse)
async def delete_item(
        list_id: int,
        item_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    await shopping.delete_item(db, list_id, item_id, current_user)
    return MessageResponse(message="Item removed")
