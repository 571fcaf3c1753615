# backend/app/api/v1/endpoints/transactions.py
from datetime import date
from typing import List, Literal, Optional

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.api.v1.endpoints.records import build_record_router
from backend.app.core.exceptions import ValidationFailed
from backend.app.db.base import get_db
from backend.app.models.records import Transaction
from backend.app.models.user import User
from backend.app.schemas.records import TransactionCreate, TransactionResponse, TransactionUpdate
from backend.app.services import access

router = build_record_router(
    Transaction, TransactionCreate, TransactionUpdate, TransactionResponse, include_list=False
)


@router.get("/", response_model=List[TransactionResponse])
async def list_transactions(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        type: Optional[Literal["income", "expense"]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=500)
):
    """Transactions of the caller and of their active partner, newest first."""
    if start_date and end_date and start_date > end_date:
        raise ValidationFailed("start_date must not be after end_date")

    criteria = []
    if type is not None:
        criteria.append(Transaction.type == type)
    if start_date is not None:
        criteria.append(Transaction.date >= start_date)
    if end_date is not None:
        criteria.append(Transaction.date <= end_date)

    return await access.list_records(
        db, Transaction, current_user, *criteria,
        order_by=(Transaction.date.desc(), Transaction.id.desc()),
        skip=skip, limit=limit,
    )
