# backend/app/models/records.py
"""
Owned financial records.

Every table here has exactly one owning user (user_id). Who may read or
change a row is decided by backend.app.security.policy, never by the
models themselves.
"""
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func

from backend.app.db.base import Base


class OwnedRecordMixin:
    id = Column(Integer, primary_key=True, index=True)

    @declared_attr
    def user_id(cls):
        return Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )


class Transaction(OwnedRecordMixin, Base):
    __tablename__ = "transactions"

    # "income" or "expense"
    type = Column(String(16), index=True, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    date = Column(Date, index=True, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)


class Loan(OwnedRecordMixin, Base):
    __tablename__ = "loans"

    lent_by = Column(String(100), nullable=False)
    borrowed_by = Column(String(100), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False)
    interest_rate = Column(Numeric(5, 2), nullable=True)  # annual, percent
    due_date = Column(Date, nullable=True)
    total_paid = Column(Numeric(18, 2), nullable=False, default=0)
    remaining_amount = Column(Numeric(18, 2), nullable=True)
    is_settled = Column(Boolean, nullable=False, default=False)
    category = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)


class Budget(OwnedRecordMixin, Base):
    __tablename__ = "budgets"

    category = Column(String(100), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    period = Column(String(16), nullable=False, default="monthly")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    spent_amount = Column(Numeric(18, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class SavingsGoal(OwnedRecordMixin, Base):
    __tablename__ = "savings_goals"

    name = Column(String(100), nullable=False)
    target_amount = Column(Numeric(18, 2), nullable=False)
    current_amount = Column(Numeric(18, 2), nullable=False, default=0)
    target_date = Column(Date, nullable=True)
    priority = Column(String(16), nullable=False, default="medium")
    category = Column(String(50), nullable=True)
    is_achieved = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)


class RecurringBill(OwnedRecordMixin, Base):
    __tablename__ = "recurring_bills"

    name = Column(String(100), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    category = Column(String(100), nullable=False)
    frequency = Column(String(16), nullable=False, default="monthly")
    due_day = Column(Integer, nullable=False)
    next_due_date = Column(Date, nullable=True)
    auto_pay = Column(Boolean, nullable=False, default=False)
    reminder_days = Column(Integer, nullable=False, default=3)
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)


class ShoppingList(OwnedRecordMixin, Base):
    __tablename__ = "shopping_lists"

    name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_date = Column(Date, nullable=True)
    estimated_total = Column(Numeric(18, 2), nullable=True)
    actual_total = Column(Numeric(18, 2), nullable=True)
    notes = Column(Text, nullable=True)


# ─────────────────────────────────────────────────────────────────────────────
# Child rows. They have no owner column: whoever owns the parent owns them,
# and they go away with the parent (ON DELETE CASCADE).
# ─────────────────────────────────────────────────────────────────────────────
class LoanPayment(Base):
    __tablename__ = "loan_payments"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id", ondelete="CASCADE"), index=True, nullable=False)

    amount = Column(Numeric(18, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    principal_amount = Column(Numeric(18, 2), nullable=False, default=0)
    interest_amount = Column(Numeric(18, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ShoppingListItem(Base):
    __tablename__ = "shopping_list_items"

    id = Column(Integer, primary_key=True, index=True)
    shopping_list_id = Column(
        Integer, ForeignKey("shopping_lists.id", ondelete="CASCADE"), index=True, nullable=False
    )

    name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit = Column(String(20), nullable=True)
    estimated_price = Column(Numeric(18, 2), nullable=True)  # per unit
    actual_price = Column(Numeric(18, 2), nullable=True)  # per unit
    is_checked = Column(Boolean, nullable=False, default=False)
    category = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
