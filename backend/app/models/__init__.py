from backend.app.models.user import User
from backend.app.models.auth_token import RefreshToken, UserToken
from backend.app.models.partnership import (
    Partnership,
    PartnershipInvitation,
    PartnershipMember,
)
from backend.app.models.records import (
    Budget,
    Loan,
    LoanPayment,
    RecurringBill,
    SavingsGoal,
    ShoppingList,
    ShoppingListItem,
    Transaction,
)

__all__ = [
    "User",
    "RefreshToken",
    "UserToken",
    "Partnership",
    "PartnershipInvitation",
    "PartnershipMember",
    "Budget",
    "Loan",
    "LoanPayment",
    "RecurringBill",
    "SavingsGoal",
    "ShoppingList",
    "ShoppingListItem",
    "Transaction",
]
