"""Tests for budget summaries."""

from decimal import Decimal

from trip_split.budget import (
    calculate_budget_summary,
    get_category_display_name,
    get_category_emoji,
    spending_by_category,
)
from trip_split.models import Budget, Expense, ExpenseCategory


def make_expense(
    id: str, amount: str, category: ExpenseCategory, is_settlement: bool = False
) -> Expense:
    return Expense(
        id=id,
        amount=Decimal(amount),
        paid_by="a",
        participants=["a", "b"],
        category=category,
        is_settlement=is_settlement,
    )


EXPENSES = [
    make_expense("1", "40", ExpenseCategory.FOOD),
    make_expense("2", "25.50", ExpenseCategory.FOOD),
    make_expense("3", "300", ExpenseCategory.ACCOMMODATION),
    make_expense("4", "80", ExpenseCategory.SETTLEMENT, is_settlement=True),
]


class TestSpendingByCategory:
    def test_settlements_excluded(self):
        assert spending_by_category(EXPENSES) == {
            ExpenseCategory.FOOD: Decimal("65.50"),
            ExpenseCategory.ACCOMMODATION: Decimal("300"),
        }


class TestBudgetSummary:
    def test_no_budget(self):
        assert calculate_budget_summary(None, EXPENSES) == []

    def test_total_first(self):
        budget = Budget(trip_id="t", total_budget=Decimal("500"))

        summaries = calculate_budget_summary(budget, EXPENSES)

        assert len(summaries) == 1
        total = summaries[0]
        assert total.category == "total"
        assert total.spent == Decimal("365.50")
        assert total.remaining == Decimal("134.50")
        assert total.percentage == 73.1
        assert not total.is_over_budget

    def test_only_budgeted_categories_reported(self):
        budget = Budget(
            trip_id="t",
            total_budget=Decimal("500"),
            category_budgets={
                ExpenseCategory.FOOD: Decimal("50"),
                ExpenseCategory.ACTIVITIES: Decimal("0"),
                ExpenseCategory.TRANSPORTATION: Decimal("100"),
            },
        )

        summaries = calculate_budget_summary(budget, EXPENSES)

        assert [s.category for s in summaries] == ["total", "food", "transportation"]
        food = summaries[1]
        assert food.is_over_budget
        assert food.remaining == Decimal("-15.50")
        transport = summaries[2]
        assert transport.spent == Decimal("0")
        assert transport.percentage == 0.0

    def test_zero_total_budget(self):
        budget = Budget(trip_id="t", total_budget=Decimal("0"))

        total = calculate_budget_summary(budget, EXPENSES)[0]

        assert total.percentage == 0.0
        assert total.is_over_budget


class TestCategoryDisplay:
    def test_display_names(self):
        assert get_category_display_name("food") == "Food & Dining"
        assert get_category_display_name("total") == "Total Budget"
        assert get_category_display_name("souvenirs") == "souvenirs"

    def test_emoji_fallback(self):
        assert get_category_emoji("food") == "🍔"
        assert get_category_emoji("souvenirs") == "📦"
