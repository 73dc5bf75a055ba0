"""Pydantic domain models for TripSplit."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

# ============================================================================
# Enums
# ============================================================================


class SplitType(str, Enum):
    """How an expense is divided among its participants."""

    EQUAL = "equal"
    UNEVEN = "uneven"


class ExpenseCategory(str, Enum):
    """Classification tag for an expense. Only used for budget reporting."""

    FOOD = "food"
    ACCOMMODATION = "accommodation"
    TRANSPORTATION = "transportation"
    ACTIVITIES = "activities"
    OTHER = "other"
    SETTLEMENT = "settlement"


# ============================================================================
# Trip Models
# ============================================================================


class Member(BaseModel):
    """A member of a trip."""

    id: str
    name: str


class Expense(BaseModel):
    """A shared expense, or a settlement transfer when is_settlement is set.

    Amounts are not validated here: the calculator degrades malformed records
    to no-ops and the service validates before anything is stored.
    """

    id: str
    description: str = ""
    amount: Decimal
    paid_by: str  # member id
    participants: list[str] = Field(default_factory=list)  # member ids
    split_type: SplitType = SplitType.EQUAL
    shares: dict[str, Decimal] | None = None  # member id -> amount owed
    is_settlement: bool = False
    category: ExpenseCategory = ExpenseCategory.OTHER
    date: datetime = Field(default_factory=datetime.now)
    trip_id: str | None = None


class Trip(BaseModel):
    """A trip that groups members and expenses."""

    id: str
    name: str
    description: str | None = None
    date_created: datetime = Field(default_factory=datetime.now)
    start_date: date | None = None
    end_date: date | None = None
    is_archived: bool = False
    pinned: bool = False


# ============================================================================
# Computed Models
# ============================================================================


class Balance(BaseModel):
    """A member's net position. Positive: the group owes them."""

    member_id: str
    member_name: str
    amount: Decimal


class Debt(BaseModel):
    """A suggested transfer from one member to another."""

    from_member: Member
    to_member: Member
    amount: Decimal


class TripSummary(BaseModel):
    """Balances and suggested transfers for one trip."""

    trip: Trip
    members: list[Member]
    balances: list[Balance]
    debts: list[Debt]
    total_spent: Decimal


# ============================================================================
# Budget Models
# ============================================================================


class Budget(BaseModel):
    """Spending budget for a trip."""

    id: int | None = None
    trip_id: str
    total_budget: Decimal
    category_budgets: dict[ExpenseCategory, Decimal] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class BudgetSummary(BaseModel):
    """Budgeted vs spent for one category, or for the whole trip ("total")."""

    category: str
    budgeted: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: float
    is_over_budget: bool


# ============================================================================
# Display Models
# ============================================================================


class Currency(BaseModel):
    """A display currency. Formatting only, no conversion."""

    code: str
    symbol: str
    name: str
