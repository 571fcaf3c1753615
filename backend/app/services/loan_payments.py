# backend/app/services/loan_payments.py
"""
Payments against a loan.

A payment belongs to its loan: anyone who may read the loan may read its
payments, only the loan's owner may add, change or remove them. Every
change keeps the loan's total_paid / remaining_amount / is_settled in step.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import RecordNotFound
from backend.app.models.records import Loan, LoanPayment
from backend.app.models.user import User
from backend.app.security.policy import Action
from backend.app.services import access

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _apply_to_loan(loan: Loan, delta: Decimal) -> None:
    total_paid = max((loan.total_paid or Decimal("0")) + delta, Decimal("0"))
    remaining = loan.amount - total_paid

    loan.total_paid = total_paid
    loan.is_settled = remaining <= 0
    loan.remaining_amount = max(remaining, Decimal("0"))


async def _load_payment(
    db: AsyncSession, payment_id: int, user: User, action: Action
) -> Tuple[LoanPayment, Loan]:
    payment = await db.get(LoanPayment, payment_id)
    if payment is None:
        raise RecordNotFound("Loan payment not found")

    loan = await db.get(Loan, payment.loan_id)
    await access.check_owner(db, user, loan.user_id, action, "Loan payment")
    return payment, loan


async def _payments_for(db: AsyncSession, loan_id: int) -> List[LoanPayment]:
    result = await db.execute(
        select(LoanPayment)
        .where(LoanPayment.loan_id == loan_id)
        .order_by(LoanPayment.payment_date.desc(), LoanPayment.id.desc())
    )
    return list(result.scalars().all())


async def list_payments(db: AsyncSession, user: User, skip: int = 0, limit: int = 100) -> List[LoanPayment]:
    """Payments on every loan the user can read."""
    owner_ids = await access.readable_owner_ids(db, user)
    result = await db.execute(
        select(LoanPayment)
        .join(Loan, Loan.id == LoanPayment.loan_id)
        .where(Loan.user_id.in_(owner_ids))
        .order_by(LoanPayment.payment_date.desc(), LoanPayment.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_loan_payments(db: AsyncSession, loan_id: int, user: User) -> List[LoanPayment]:
    await access.load_record(db, Loan, loan_id, user, Action.READ)
    return await _payments_for(db, loan_id)


async def get_payment(db: AsyncSession, payment_id: int, user: User) -> LoanPayment:
    payment, _ = await _load_payment(db, payment_id, user, Action.READ)
    return payment


async def create_payment(db: AsyncSession, user: User, data: Dict[str, Any]) -> LoanPayment:
    loan = await access.load_record(db, Loan, data["loan_id"], user, Action.WRITE)

    payment = LoanPayment(**data)
    db.add(payment)
    _apply_to_loan(loan, payment.amount)
    await access.commit(db, payment)

    logger.info("Payment %s recorded on loan %s", payment.id, loan.id)
    return payment


async def update_payment(
    db: AsyncSession, payment_id: int, user: User, changes: Dict[str, Any]
) -> LoanPayment:
    payment, loan = await _load_payment(db, payment_id, user, Action.WRITE)
    previous_amount = payment.amount

    access.apply_changes(payment, changes, protected={"id", "loan_id", "created_at"})
    if payment.amount != previous_amount:
        _apply_to_loan(loan, payment.amount - previous_amount)

    await access.commit(db, payment)
    return payment


async def delete_payment(db: AsyncSession, payment_id: int, user: User) -> None:
    payment, loan = await _load_payment(db, payment_id, user, Action.WRITE)

    _apply_to_loan(loan, -payment.amount)
    await db.delete(payment)
    await db.commit()


async def summarize(db: AsyncSession, loan_id: int, user: User) -> Dict[str, Any]:
    loan = await access.load_record(db, Loan, loan_id, user, Action.READ)
    payments = await _payments_for(db, loan_id)

    total = sum((p.amount for p in payments), Decimal("0"))
    average = (total / len(payments)).quantize(CENT) if payments else Decimal("0")
    remaining = loan.remaining_amount
    if remaining is None:
        remaining = max(loan.amount - loan.total_paid, Decimal("0"))

    return {
        "loan_id": loan.id,
        "loan_amount": loan.amount,
        "total_paid": loan.total_paid,
        "remaining_amount": remaining,
        "is_settled": loan.is_settled,
        "payment_count": len(payments),
        "total_principal": sum((p.principal_amount for p in payments), Decimal("0")),
        "total_interest": sum((p.interest_amount for p in payments), Decimal("0")),
        "average_payment": average,
        "last_payment_date": max((p.payment_date for p in payments), default=None),
        "payments": payments,
    }
