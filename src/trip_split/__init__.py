"""TripSplit - Split shared trip expenses and work out who owes whom."""

__version__ = "0.1.0"

from .calculator import apply_debts, calculate_balances, calculate_debts, round_amount
from .config import Settings, load_settings
from .db import Database
from .models import (
    Balance,
    Debt,
    Expense,
    ExpenseCategory,
    Member,
    SplitType,
    Trip,
)
from .service import TripService

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "Balance",
    "Debt",
    "Expense",
    "ExpenseCategory",
    "Member",
    "SplitType",
    "Trip",
    "apply_debts",
    "calculate_balances",
    "calculate_debts",
    "round_amount",
    "TripService",
]
