"""Budget tracking: budgeted vs spent per category."""

from collections.abc import Iterable
from decimal import Decimal

from .models import Budget, BudgetSummary, Expense, ExpenseCategory

TOTAL = "total"

# Categories a budget can be set for, in display order
BUDGET_CATEGORIES = [
    ExpenseCategory.FOOD,
    ExpenseCategory.ACCOMMODATION,
    ExpenseCategory.TRANSPORTATION,
    ExpenseCategory.ACTIVITIES,
    ExpenseCategory.OTHER,
]

_DISPLAY_NAMES = {
    TOTAL: "Total Budget",
    ExpenseCategory.FOOD.value: "Food & Dining",
    ExpenseCategory.ACCOMMODATION.value: "Accommodation",
    ExpenseCategory.TRANSPORTATION.value: "Transportation",
    ExpenseCategory.ACTIVITIES.value: "Activities",
    ExpenseCategory.OTHER.value: "Other",
    ExpenseCategory.SETTLEMENT.value: "Settlement",
}

_EMOJI = {
    TOTAL: "💰",
    ExpenseCategory.FOOD.value: "🍔",
    ExpenseCategory.ACCOMMODATION.value: "🏠",
    ExpenseCategory.TRANSPORTATION.value: "🚗",
    ExpenseCategory.ACTIVITIES.value: "🎯",
    ExpenseCategory.OTHER.value: "📦",
    ExpenseCategory.SETTLEMENT.value: "🤝",
}


def get_category_display_name(category: str) -> str:
    """Human readable name for a category, or the raw value if unknown."""
    return _DISPLAY_NAMES.get(category, category)


def get_category_emoji(category: str) -> str:
    return _EMOJI.get(category, "📦")


def spending_by_category(expenses: Iterable[Expense]) -> dict[ExpenseCategory, Decimal]:
    """Sum real (non-settlement) spending per category."""
    spending: dict[ExpenseCategory, Decimal] = {}
    for expense in expenses:
        if expense.is_settlement:
            continue
        spending[expense.category] = (
            spending.get(expense.category, Decimal("0")) + expense.amount
        )
    return spending


def _summarize(category: str, budgeted: Decimal, spent: Decimal) -> BudgetSummary:
    return BudgetSummary(
        category=category,
        budgeted=budgeted,
        spent=spent,
        remaining=budgeted - spent,
        percentage=float(spent / budgeted * 100) if budgeted > 0 else 0.0,
        is_over_budget=spent > budgeted,
    )


def calculate_budget_summary(
    budget: Budget | None, expenses: list[Expense]
) -> list[BudgetSummary]:
    """
    Compare a trip's budget against what has actually been spent.

    Settlements are transfers between members, not spending, so they are
    excluded. Categories without a budget are left out of the report.

    Args:
        budget: The trip budget, or None if none was set
        expenses: The trip's expenses

    Returns:
        A "total" summary first, then one summary per budgeted category.
        Empty when no budget is set.
    """
    if budget is None:
        return []

    spending = spending_by_category(expenses)
    total_spent = sum(spending.values(), Decimal("0"))

    summaries = [_summarize(TOTAL, budget.total_budget, total_spent)]

    for category in BUDGET_CATEGORIES:
        budgeted = budget.category_budgets.get(category, Decimal("0"))
        if budgeted > 0:
            summaries.append(
                _summarize(
                    category.value, budgeted, spending.get(category, Decimal("0"))
                )
            )

    return summaries
