# backend/app/api/v1/router.py
from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    auth,
    loan_payments,
    partnership,
    records,
    shopping_lists,
    transactions,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(partnership.router, prefix="/partnership", tags=["partnership"])

api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(records.loans_router, prefix="/loans", tags=["loans"])
api_router.include_router(loan_payments.router, prefix="/loan-payments", tags=["loan-payments"])
api_router.include_router(records.budgets_router, prefix="/budgets", tags=["budgets"])
api_router.include_router(records.savings_goals_router, prefix="/savings-goals", tags=["savings-goals"])
api_router.include_router(records.recurring_bills_router, prefix="/recurring-bills", tags=["recurring-bills"])
api_router.include_router(shopping_lists.router, prefix="/shopping-lists", tags=["shopping-lists"])
