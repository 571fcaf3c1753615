# backend/app/api/v1/endpoints/records.py
"""
CRUD routes shared by every owned record type.

Each router is built from the same factory, so every type gets the same
partner-read / owner-write behaviour through services.access.
"""
from typing import List, Type

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.models.records import Budget, Loan, RecurringBill, SavingsGoal
from backend.app.models.user import User
from backend.app.schemas.records import (
    BudgetCreate,
    BudgetResponse,
    BudgetUpdate,
    LoanCreate,
    LoanResponse,
    LoanUpdate,
    RecurringBillCreate,
    RecurringBillResponse,
    RecurringBillUpdate,
    SavingsGoalCreate,
    SavingsGoalResponse,
    SavingsGoalUpdate,
)
from backend.app.schemas.user import MessageResponse
from backend.app.security.policy import Action
from backend.app.services import access


def build_record_router(
    model: Type,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
    include_list: bool = True,
) -> APIRouter:
    router = APIRouter()

    if include_list:
        @router.get("/", response_model=List[response_schema])
        async def list_records(
                db: AsyncSession = Depends(get_db),
                current_user: User = Depends(deps.get_current_user),
                skip: int = Query(0, ge=0),
                limit: int = Query(100, ge=1, le=500)
        ):
            return await access.list_records(db, model, current_user, skip=skip, limit=limit)

    @router.post("/", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    async def create_record(
            item_in: create_schema,
            db: AsyncSession = Depends(get_db),
            current_user: User = Depends(deps.get_current_user)
    ):
        return await access.create_record(db, model, current_user, item_in.model_dump())

    @router.get("/{record_id}", response_model=response_schema)
    async def read_record(
            record_id: int,
            db: AsyncSession = Depends(get_db),
            current_user: User = Depends(deps.get_current_user)
    ):
        return await access.load_record(db, model, record_id, current_user, Action.READ)

    @router.put("/{record_id}", response_model=response_schema)
    async def update_record(
            record_id: int,
            item_in: update_schema,
            db: AsyncSession = Depends(get_db),
            current_user: User = Depends(deps.get_current_user)
    ):
        changes = item_in.model_dump(exclude_unset=True)
        return await access.update_record(db, model, record_id, current_user, changes)

    @router.delete("/{record_id}", response_model=MessageResponse)
    async def delete_record(
            record_id: int,
            db: AsyncSession = Depends(get_db),
            current_user: User = Depends(deps.get_current_user)
    ):
        await access.delete_record(db, model, record_id, current_user)
        return MessageResponse(message="Deleted successfully")

    return router


loans_router = build_record_router(Loan, LoanCreate, LoanUpdate, LoanResponse)
budgets_router = build_record_router(Budget, BudgetCreate, BudgetUpdate, BudgetResponse)
savings_goals_router = build_record_router(
    SavingsGoal, SavingsGoalCreate, SavingsGoalUpdate, SavingsGoalResponse
)
recurring_bills_router = build_record_router(
    RecurringBill, RecurringBillCreate, RecurringBillUpdate, RecurringBillResponse
)