# backend/app/schemas/records.py
"""
Request/response schemas for owned records.

Create schemas never carry user_id: the owner is always the authenticated
caller. Responses do carry it, so partners can see who added a row.
"""
import datetime as dt
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Money = Decimal


class OwnedRecordResponse(BaseModel):
    id: int
    user_id: int
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


# ─────────────────────────────────────────────────────────────────────────────
# Transactions
# ─────────────────────────────────────────────────────────────────────────────
class TransactionCreate(BaseModel):
    type: Literal["income", "expense"]
    amount: Money = Field(..., gt=0, max_digits=18, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    date: dt.date
    is_recurring: bool = False
    notes: Optional[str] = None


class TransactionUpdate(BaseModel):
    type: Optional[Literal["income", "expense"]] = None
    amount: Optional[Money] = Field(None, gt=0, max_digits=18, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    is_recurring: Optional[bool] = None
    notes: Optional[str] = None


class TransactionResponse(OwnedRecordResponse):
    type: str
    amount: Money
    category: Optional[str] = None
    description: Optional[str] = None
    date: dt.date
    is_recurring: bool
    notes: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# Loans
# ─────────────────────────────────────────────────────────────────────────────
class LoanCreate(BaseModel):
    lent_by: str = Field(..., max_length=100)
    borrowed_by: str = Field(..., max_length=100)
    amount: Money = Field(..., gt=0, max_digits=18, decimal_places=2)
    description: Optional[str] = None
    date: dt.date
    interest_rate: Optional[Money] = Field(None, ge=0, max_digits=5, decimal_places=2)
    due_date: Optional[dt.date] = None
    total_paid: Money = Field(Decimal("0"), ge=0, max_digits=18, decimal_places=2)
    remaining_amount: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    is_settled: bool = False
    category: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class LoanUpdate(BaseModel):
    lent_by: Optional[str] = Field(None, max_length=100)
    borrowed_by: Optional[str] = Field(None, max_length=100)
    amount: Optional[Money] = Field(None, gt=0, max_digits=18, decimal_places=2)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    interest_rate: Optional[Money] = Field(None, ge=0, max_digits=5, decimal_places=2)
    due_date: Optional[dt.date] = None
    total_paid: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    remaining_amount: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    is_settled: Optional[bool] = None
    category: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class LoanResponse(OwnedRecordResponse):
    lent_by: str
    borrowed_by: str
    amount: Money
    description: Optional[str] = None
    date: dt.date
    interest_rate: Optional[Money] = None
    due_date: Optional[dt.date] = None
    total_paid: Money
    remaining_amount: Optional[Money] = None
    is_settled: bool
    category: Optional[str] = None
    notes: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# Budgets
# ─────────────────────────────────────────────────────────────────────────────
class BudgetCreate(BaseModel):
    category: str = Field(..., max_length=100)
    amount: Money = Field(..., gt=0, max_digits=18, decimal_places=2)
    period: Literal["monthly", "yearly"] = "monthly"
    start_date: dt.date
    end_date: Optional[dt.date] = None
    spent_amount: Money = Field(Decimal("0"), ge=0, max_digits=18, decimal_places=2)
    is_active: bool = True


class BudgetUpdate(BaseModel):
    category: Optional[str] = Field(None, max_length=100)
    amount: Optional[Money] = Field(None, gt=0, max_digits=18, decimal_places=2)
    period: Optional[Literal["monthly", "yearly"]] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    spent_amount: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    is_active: Optional[bool] = None


class BudgetResponse(OwnedRecordResponse):
    category: str
    amount: Money
    period: str
    start_date: dt.date
    end_date: Optional[dt.date] = None
    spent_amount: Money
    is_active: bool


# ─────────────────────────────────────────────────────────────────────────────
# Savings goals
# ─────────────────────────────────────────────────────────────────────────────
class SavingsGoalCreate(BaseModel):
    name: str = Field(..., max_length=100)
    target_amount: Money = Field(..., gt=0, max_digits=18, decimal_places=2)
    current_amount: Money = Field(Decimal("0"), ge=0, max_digits=18, decimal_places=2)
    target_date: Optional[dt.date] = None
    priority: Literal["low", "medium", "high"] = "medium"
    category: Optional[str] = Field(None, max_length=50)
    is_achieved: bool = False
    notes: Optional[str] = None


class SavingsGoalUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    target_amount: Optional[Money] = Field(None, gt=0, max_digits=18, decimal_places=2)
    current_amount: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    target_date: Optional[dt.date] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    category: Optional[str] = Field(None, max_length=50)
    is_achieved: Optional[bool] = None
    notes: Optional[str] = None


class SavingsGoalResponse(OwnedRecordResponse):
    name: str
    target_amount: Money
    current_amount: Money
    target_date: Optional[dt.date] = None
    priority: str
    category: Optional[str] = None
    is_achieved: bool
    notes: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# Recurring bills
# ─────────────────────────────────────────────────────────────────────────────
Frequency = Literal["weekly", "monthly", "quarterly", "yearly"]


class RecurringBillCreate(BaseModel):
    name: str = Field(..., max_length=100)
    amount: Money = Field(..., gt=0, max_digits=18, decimal_places=2)
    category: str = Field(..., max_length=100)
    frequency: Frequency = "monthly"
    # Day of month (1-31) or of week (1-7) depending on frequency
    due_day: int = Field(..., ge=1, le=31)
    next_due_date: Optional[dt.date] = None
    auto_pay: bool = False
    reminder_days: int = Field(3, ge=0, le=60)
    is_active: bool = True
    notes: Optional[str] = None


class RecurringBillUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    amount: Optional[Money] = Field(None, gt=0, max_digits=18, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    frequency: Optional[Frequency] = None
    due_day: Optional[int] = Field(None, ge=1, le=31)
    next_due_date: Optional[dt.date] = None
    auto_pay: Optional[bool] = None
    reminder_days: Optional[int] = Field(None, ge=0, le=60)
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class RecurringBillResponse(OwnedRecordResponse):
    name: str
    amount: Money
    category: str
    frequency: str
    due_day: int
    next_due_date: Optional[dt.date] = None
    auto_pay: bool
    reminder_days: int
    is_active: bool
    notes: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# Shopping lists
# ─────────────────────────────────────────────────────────────────────────────
class ShoppingListCreate(BaseModel):
    name: str = Field(..., max_length=100)
    category: Optional[str] = Field(None, max_length=50)
    is_completed: bool = False
    completed_date: Optional[dt.date] = None
    estimated_total: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    actual_total: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    notes: Optional[str] = None


class ShoppingListUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = Field(None, max_length=50)
    is_completed: Optional[bool] = None
    completed_date: Optional[dt.date] = None
    estimated_total: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    actual_total: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    notes: Optional[str] = None


class ShoppingListResponse(OwnedRecordResponse):
    name: str
    category: Optional[str] = None
    is_completed: bool
    completed_date: Optional[dt.date] = None
    estimated_total: Optional[Money] = None
    actual_total: Optional[Money] = None
    notes: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# Loan payments
# ─────────────────────────────────────────────────────────────────────────────
class LoanPaymentCreate(BaseModel):
    loan_id: int
    amount: Money = Field(..., gt=0, max_digits=18, decimal_places=2)
    payment_date: dt.date
    principal_amount: Money = Field(Decimal("0"), ge=0, max_digits=18, decimal_places=2)
    interest_amount: Money = Field(Decimal("0"), ge=0, max_digits=18, decimal_places=2)
    notes: Optional[str] = None


class LoanPaymentUpdate(BaseModel):
    amount: Optional[Money] = Field(None, gt=0, max_digits=18, decimal_places=2)
    payment_date: Optional[dt.date] = None
    principal_amount: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    interest_amount: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    notes: Optional[str] = None


class LoanPaymentResponse(BaseModel):
    id: int
    loan_id: int
    amount: Money
    payment_date: dt.date
    principal_amount: Money
    interest_amount: Money
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class LoanPaymentSummary(BaseModel):
    loan_id: int
    loan_amount: Money
    total_paid: Money
    remaining_amount: Money
    is_settled: bool
    payment_count: int
    total_principal: Money
    total_interest: Money
    average_payment: Money
    last_payment_date: Optional[dt.date] = None
    payments: List[LoanPaymentResponse]


# ─────────────────────────────────────────────────────────────────────────────
# Shopping list items
# ─────────────────────────────────────────────────────────────────────────────
class ShoppingListItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(1, ge=1)
    unit: Optional[str] = Field(None, max_length=20)
    estimated_price: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    actual_price: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    is_checked: bool = False
    category: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class ShoppingListItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    quantity: Optional[int] = Field(None, ge=1)
    unit: Optional[str] = Field(None, max_length=20)
    estimated_price: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    actual_price: Optional[Money] = Field(None, ge=0, max_digits=18, decimal_places=2)
    is_checked: Optional[bool] = None
    category: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class ShoppingListItemResponse(BaseModel):
    id: int
    shopping_list_id: int
    name: str
    quantity: int
    unit: Optional[str] = None
    estimated_price: Optional[Money] = None
    actual_price: Optional[Money] = None
    is_checked: bool
    category: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True
