# backend/app/api/v1/endpoints/loan_payments.py
"""
Loan payments. Access follows the loan a payment belongs to.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.records import (
    LoanPaymentCreate,
    LoanPaymentResponse,
    LoanPaymentSummary,
    LoanPaymentUpdate,
)
from backend.app.schemas.user import MessageResponse
from backend.app.services import loan_payments

router = APIRouter()


@router.get("/", response_model=List[LoanPaymentResponse])
async def list_payments(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        skip: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=500)
):
    return await loan_payments.list_payments(db, current_user, skip=skip, limit=limit)


@router.get("/by-loan/{loan_id}", response_model=List[LoanPaymentResponse])
async def list_loan_payments(
        loan_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    return await loan_payments.list_loan_payments(db, loan_id, current_user)


@router.get("/summary/{loan_id}", response_model=LoanPaymentSummary)
async def loan_summary(
        loan_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    return await loan_payments.summarize(db, loan_id, current_user)


@router.post("/", response_model=LoanPaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
        payment_in: LoanPaymentCreate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    return await loan_payments.create_payment(db, current_user, payment_in.model_dump())


@router.get("/{payment_id}", response_model=LoanPaymentResponse)
async def read_payment(
        payment_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    return await loan_payments.get_payment(db, payment_id, current_user)


@router.put("/{payment_id}", response_model=LoanPaymentResponse)
async def update_payment(
        payment_id: int,
        payment_in: LoanPaymentUpdate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    changes = payment_in.model_dump(exclude_unset=True)
    return await loan_payments.update_payment(db, payment_id, current_user, changes)


@router.delete("/{payment_id}", response_model=MessageResponse)
async def delete_payment(
        payment_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user)
):
    await loan_payments.delete_payment(db, payment_id, current_user)
    return MessageResponse(message="Payment deleted")
