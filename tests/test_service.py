"""Tests for TripService layer."""

from datetime import datetime
from decimal import Decimal

import pytest

from trip_split.config import Settings
from trip_split.db import Database
from trip_split.exceptions import (
    ConfigurationError,
    ExpenseNotFoundError,
    InvalidExpenseError,
    InvalidInputError,
    InvalidSharesError,
    MemberHasExpensesError,
    MemberNotFoundError,
    TripNotFoundError,
)
from trip_split.models import ExpenseCategory, SplitType
from trip_split.service import TripService, count_member_expenses, validate_shares


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings pointing at a temporary directory."""
    return Settings(database_path=tmp_path / "trip_split.db", default_currency="USD")


@pytest.fixture
def mock_db(mock_settings):
    """Create a temporary database."""
    db = Database(mock_settings.database_path)
    yield db
    db.close()


@pytest.fixture
def service(mock_settings, mock_db):
    """Create a TripService instance."""
    return TripService(mock_settings, mock_db)


@pytest.fixture
def trip(service):
    """A trip with three members: Alice, Bob, Carol."""
    trip = service.create_trip("Lisbon", description="Long weekend")
    for name in ("Alice", "Bob", "Carol"):
        service.add_member(trip.id, name)
    return trip


@pytest.fixture
def members(service, trip):
    alice, bob, carol = service.get_members(trip.id)
    return alice, bob, carol


class TestTrips:
    def test_create_and_get(self, service):
        trip = service.create_trip("  Tokyo  ")

        assert service.get_trip(trip.id).name == "Tokyo"

    def test_empty_name_rejected(self, service):
        with pytest.raises(InvalidInputError):
            service.create_trip("   ")

    def test_missing_trip(self, service):
        with pytest.raises(TripNotFoundError):
            service.get_trip("nope")

    def test_archived_hidden_by_default(self, service):
        kept = service.create_trip("Kept")
        archived = service.create_trip("Old")
        service.set_archived(archived.id)

        assert [t.id for t in service.list_trips()] == [kept.id]
        assert len(service.list_trips(include_archived=True)) == 2

    def test_pinned_first(self, service):
        first = service.create_trip("First")
        service.create_trip("Second")
        service.set_pinned(first.id)

        assert service.list_trips()[0].id == first.id

    def test_find_trip_by_name_or_prefix(self, service):
        trip = service.create_trip("Lisbon")

        assert service.find_trip("lisbon").id == trip.id
        assert service.find_trip(trip.id[:8]).id == trip.id

    def test_delete_removes_everything(self, service, trip, members):
        alice, bob, _ = members
        service.add_expense(trip.id, Decimal("10"), "Coffee", paid_by=alice.id)

        service.delete_trip(trip.id)

        with pytest.raises(TripNotFoundError):
            service.get_trip(trip.id)
        assert service.db.get_members(trip.id) == []
        assert service.db.get_expenses(trip.id) == []


class TestMembers:
    def test_roster_order_preserved(self, service, trip):
        assert [m.name for m in service.get_members(trip.id)] == [
            "Alice",
            "Bob",
            "Carol",
        ]

    def test_find_member_case_insensitive(self, service, trip, members):
        assert service.find_member(trip.id, "bob").id == members[1].id

    def test_find_member_ambiguous(self, service, trip):
        with pytest.raises(MemberNotFoundError, match="ambiguous"):
            service.find_member(trip.id, "")

    def test_remove_unused_member(self, service, trip, members):
        service.remove_member(trip.id, members[2].id)

        assert [m.name for m in service.get_members(trip.id)] == ["Alice", "Bob"]

    def test_remove_member_with_expenses_rejected(self, service, trip, members):
        alice, bob, carol = members
        service.add_expense(
            trip.id, Decimal("30"), "Taxi", paid_by=alice.id, participants=[alice.id, bob.id]
        )

        with pytest.raises(MemberHasExpensesError) as exc_info:
            service.remove_member(trip.id, bob.id)

        assert exc_info.value.expense_count == 1
        # Carol isn't on the expense
        service.remove_member(trip.id, carol.id)

    def test_count_member_expenses(self, service, trip, members):
        alice, bob, carol = members
        service.add_expense(trip.id, Decimal("30"), "Taxi", paid_by=alice.id)
        service.add_expense(
            trip.id, Decimal("10"), "Snack", paid_by=bob.id, participants=[bob.id]
        )

        expenses = service.get_expenses(trip.id)

        assert count_member_expenses(expenses, alice.id) == 1
        assert count_member_expenses(expenses, bob.id) == 2


class TestExpenses:
    def test_defaults_to_whole_roster_equal_split(self, service, trip, members):
        alice = members[0]

        expense = service.add_expense(trip.id, Decimal("90"), "Dinner", paid_by=alice.id)

        assert expense.participants == [m.id for m in members]
        assert expense.split_type is SplitType.EQUAL

    def test_uneven_split_stored(self, service, trip, members):
        alice, bob, _ = members

        service.add_expense(
            trip.id,
            Decimal("100"),
            "Hotel",
            paid_by=alice.id,
            shares={alice.id: Decimal("70"), bob.id: Decimal("30")},
            category=ExpenseCategory.ACCOMMODATION,
        )

        stored = service.get_expenses(trip.id)[0]
        assert stored.split_type is SplitType.UNEVEN
        assert stored.participants == [alice.id, bob.id]
        assert stored.shares == {alice.id: Decimal("70"), bob.id: Decimal("30")}
        assert stored.category is ExpenseCategory.ACCOMMODATION

    def test_shares_must_add_up(self, service, trip, members):
        alice, bob, _ = members

        with pytest.raises(InvalidSharesError):
            service.add_expense(
                trip.id,
                Decimal("100"),
                "Hotel",
                paid_by=alice.id,
                shares={alice.id: Decimal("70"), bob.id: Decimal("20")},
            )

    def test_shares_within_a_cent_accepted(self):
        validate_shares(
            Decimal("100"),
            ["a", "b", "c"],
            {"a": Decimal("33.33"), "b": Decimal("33.33"), "c": Decimal("33.33")},
        )

    def test_shares_for_non_participant_rejected(self):
        with pytest.raises(InvalidSharesError, match="non-participants"):
            validate_shares(Decimal("10"), ["a"], {"a": Decimal("5"), "b": Decimal("5")})

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount_rejected(self, service, trip, members, amount):
        with pytest.raises(InvalidExpenseError):
            service.add_expense(trip.id, Decimal(amount), "Free", paid_by=members[0].id)

    def test_unknown_payer_rejected(self, service, trip):
        with pytest.raises(MemberNotFoundError):
            service.add_expense(trip.id, Decimal("10"), "Coffee", paid_by="ghost")

    def test_unknown_participant_rejected(self, service, trip, members):
        with pytest.raises(MemberNotFoundError):
            service.add_expense(
                trip.id,
                Decimal("10"),
                "Coffee",
                paid_by=members[0].id,
                participants=[members[0].id, "ghost"],
            )

    def test_delete_expense(self, service, trip, members):
        expense = service.add_expense(trip.id, Decimal("10"), "Coffee", paid_by=members[0].id)

        service.delete_expense(trip.id, expense.id)

        assert service.get_expenses(trip.id) == []

    def test_delete_missing_expense(self, service, trip):
        with pytest.raises(ExpenseNotFoundError):
            service.delete_expense(trip.id, "nope")

    def test_expenses_ordered_by_date(self, service, trip, members):
        alice = members[0]
        service.add_expense(
            trip.id, Decimal("5"), "Later", paid_by=alice.id,
            expense_date=datetime(2025, 6, 2),
        )
        service.add_expense(
            trip.id, Decimal("5"), "Earlier", paid_by=alice.id,
            expense_date=datetime(2025, 6, 1),
        )

        assert [e.description for e in service.get_expenses(trip.id)] == [
            "Earlier",
            "Later",
        ]


class TestSummaryAndSettleUp:
    def test_summary(self, service, trip, members):
        alice, bob, carol = members
        service.add_expense(trip.id, Decimal("90"), "Dinner", paid_by=alice.id)

        summary = service.get_summary(trip.id)

        assert [b.amount for b in summary.balances] == [
            Decimal("60.00"),
            Decimal("-30.00"),
            Decimal("-30.00"),
        ]
        assert [(d.from_member.name, d.to_member.name, d.amount) for d in summary.debts] == [
            ("Bob", "Alice", Decimal("30.00")),
            ("Carol", "Alice", Decimal("30.00")),
        ]
        assert summary.total_spent == Decimal("90")

    def test_settle_up_clears_debts(self, service, trip, members):
        alice = members[0]
        service.add_expense(trip.id, Decimal("90"), "Dinner", paid_by=alice.id)

        for debt in service.get_summary(trip.id).debts:
            service.settle_up(trip.id, debt.from_member.id, debt.to_member.id, debt.amount)

        summary = service.get_summary(trip.id)
        assert summary.debts == []
        assert all(b.amount == 0 for b in summary.balances)
        # Settlements aren't spending
        assert summary.total_spent == Decimal("90")

    def test_settlement_expense_shape(self, service, trip, members):
        alice, bob, _ = members

        settlement = service.settle_up(trip.id, bob.id, alice.id, Decimal("12.50"))

        assert settlement.is_settlement
        assert settlement.paid_by == bob.id
        assert settlement.participants == [bob.id, alice.id]
        assert settlement.category is ExpenseCategory.SETTLEMENT
        assert settlement.description == "Settlement from Bob to Alice"

    def test_settle_with_self_rejected(self, service, trip, members):
        with pytest.raises(InvalidExpenseError):
            service.settle_up(trip.id, members[0].id, members[0].id, Decimal("5"))

    def test_summary_for_empty_trip(self, service, trip):
        summary = service.get_summary(trip.id)

        assert summary.debts == []
        assert all(b.amount == 0 for b in summary.balances)


class TestBudgetAndCurrency:
    def test_budget_summary(self, service, trip, members):
        alice, bob, _ = members
        service.set_budget(
            trip.id,
            Decimal("500"),
            {ExpenseCategory.FOOD: Decimal("100")},
        )
        service.add_expense(
            trip.id, Decimal("120"), "Dinner", paid_by=alice.id,
            category=ExpenseCategory.FOOD,
        )
        service.settle_up(trip.id, bob.id, alice.id, Decimal("40"))

        summaries = service.get_budget_summary(trip.id)

        assert [s.category for s in summaries] == ["total", "food"]
        assert summaries[0].spent == Decimal("120")
        assert summaries[1].is_over_budget

    def test_budget_replaced(self, service, trip):
        service.set_budget(trip.id, Decimal("100"))
        service.set_budget(trip.id, Decimal("200"))

        assert service.db.get_budget(trip.id).total_budget == Decimal("200")

    def test_negative_budget_rejected(self, service, trip):
        with pytest.raises(InvalidInputError):
            service.set_budget(trip.id, Decimal("-1"))

    def test_no_budget(self, service, trip):
        assert service.get_budget_summary(trip.id) == []

    def test_default_currency(self, service):
        assert service.get_currency().code == "USD"

    def test_set_currency_persists(self, service):
        service.set_currency("eur")

        assert service.get_currency().symbol == "€"

    def test_unsupported_currency(self, service):
        with pytest.raises(ConfigurationError):
            service.set_currency("XYZ")
