"""Service layer that composes the database with the balance engine.

The calculator functions are pure; everything that touches storage or
enforces business rules lives here.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal

from .budget import calculate_budget_summary
from .calculator import SETTLED_TOLERANCE, calculate_balances, calculate_debts
from .config import Settings
from .currencies import get_currency_by_code, is_supported
from .db import Database
from .exceptions import (
    ConfigurationError,
    ExpenseNotFoundError,
    InvalidExpenseError,
    InvalidInputError,
    InvalidSharesError,
    MemberHasExpensesError,
    MemberNotFoundError,
    TripNotFoundError,
)
from .models import (
    Budget,
    BudgetSummary,
    Currency,
    Expense,
    ExpenseCategory,
    Member,
    SplitType,
    Trip,
    TripSummary,
)

logger = logging.getLogger(__name__)

CURRENCY_CONFIG_KEY = "currency_code"


def new_id() -> str:
    return str(uuid.uuid4())


def validate_shares(
    amount: Decimal, participants: list[str], shares: dict[str, Decimal]
) -> None:
    """
    Check uneven split shares before an expense is stored.

    Args:
        amount: The expense total
        participants: Member ids sharing the expense
        shares: Member id -> amount owed

    Raises:
        InvalidSharesError: If a share is negative, belongs to a
            non-participant, or the shares don't add up to the amount
    """
    outsiders = [member_id for member_id in shares if member_id not in participants]
    if outsiders:
        raise InvalidSharesError(
            f"Shares given for non-participants: {', '.join(outsiders)}"
        )

    if any(share < 0 for share in shares.values()):
        raise InvalidSharesError("Shares cannot be negative")

    total = sum(shares.values(), Decimal("0"))
    if abs(total - amount) > SETTLED_TOLERANCE:
        raise InvalidSharesError(
            f"Shares add up to {total}, but the expense amount is {amount}"
        )


def count_member_expenses(expenses: list[Expense], member_id: str) -> int:
    """Number of expenses that reference a member as payer or participant."""
    return sum(
        1
        for expense in expenses
        if expense.paid_by == member_id or member_id in expense.participants
    )


def _match_refs(items: list, ref: str, get_id, get_name) -> list:
    """Exact id, then exact name, then id prefix. First non-empty tier wins."""
    ref = ref.strip()
    for predicate in (
        lambda item: get_id(item) == ref,
        lambda item: get_name(item).lower() == ref.lower(),
        lambda item: get_id(item).startswith(ref),
    ):
        matches = [item for item in items if predicate(item)]
        if matches:
            return matches
    return []


class TripService:
    """Service for managing trips and computing who owes whom."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the trip service."""
        self.settings = settings
        self.db = database

    # ========================================================================
    # Trips
    # ========================================================================

    def create_trip(
        self,
        name: str,
        description: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Trip:
        """Create and store a new trip."""
        name = name.strip()
        if not name:
            raise InvalidInputError("Trip name cannot be empty")
        if start_date and end_date and end_date < start_date:
            raise InvalidInputError("Trip end date is before its start date")

        trip = Trip(
            id=new_id(),
            name=name,
            description=description,
            start_date=start_date,
            end_date=end_date,
        )
        self.db.save_trip(trip)

        logger.info(f"Created trip '{trip.name}' ({trip.id})")
        return trip

    def get_trip(self, trip_id: str) -> Trip:
        """
        Get a trip by id.

        Raises:
            TripNotFoundError: If no trip has that id
        """
        trip = self.db.get_trip(trip_id)
        if trip is None:
            raise TripNotFoundError(trip_id)
        return trip

    def find_trip(self, ref: str) -> Trip:
        """
        Look up a trip by id, name (case-insensitive) or unique id prefix.

        Raises:
            TripNotFoundError: If nothing matches, or the ref is ambiguous
        """
        trips = self.list_trips(include_archived=True)
        matches = _match_refs(trips, ref, lambda t: t.id, lambda t: t.name)
        if len(matches) != 1:
            raise TripNotFoundError(
                ref, f"Trip '{ref}' is ambiguous" if matches else None
            )
        return matches[0]

    def list_trips(self, include_archived: bool = False) -> list[Trip]:
        return self.db.get_trips(include_archived=include_archived)

    def set_archived(self, trip_id: str, archived: bool = True) -> Trip:
        trip = self.get_trip(trip_id).model_copy(update={"is_archived": archived})
        self.db.save_trip(trip)
        return trip

    def set_pinned(self, trip_id: str, pinned: bool = True) -> Trip:
        trip = self.get_trip(trip_id).model_copy(update={"pinned": pinned})
        self.db.save_trip(trip)
        return trip

    def delete_trip(self, trip_id: str):
        """Delete a trip with its members, expenses and budget."""
        trip = self.get_trip(trip_id)
        self.db.delete_trip(trip.id)
        logger.info(f"Deleted trip '{trip.name}' ({trip.id})")

    # ========================================================================
    # Members
    # ========================================================================

    def add_member(self, trip_id: str, name: str) -> Member:
        """Add a member to the end of a trip's roster."""
        self.get_trip(trip_id)

        name = name.strip()
        if not name:
            raise InvalidInputError("Member name cannot be empty")

        member = Member(id=new_id(), name=name)
        self.db.save_member(trip_id, member)

        logger.info(f"Added member '{member.name}' to trip {trip_id}")
        return member

    def get_members(self, trip_id: str) -> list[Member]:
        self.get_trip(trip_id)
        return self.db.get_members(trip_id)

    def get_member(self, trip_id: str, member_id: str) -> Member:
        """
        Get one member of a trip.

        Raises:
            MemberNotFoundError: If the member isn't on the trip's roster
        """
        for member in self.get_members(trip_id):
            if member.id == member_id:
                return member
        raise MemberNotFoundError(member_id)

    def find_member(self, trip_id: str, ref: str) -> Member:
        """
        Look up a member by id, name (case-insensitive) or unique id prefix.

        Raises:
            MemberNotFoundError: If nothing matches, or the ref is ambiguous
        """
        members = self.get_members(trip_id)
        matches = _match_refs(members, ref, lambda m: m.id, lambda m: m.name)
        if len(matches) != 1:
            raise MemberNotFoundError(
                ref,
                f"Member '{ref}' is ambiguous" if matches else None,
            )
        return matches[0]

    def remove_member(self, trip_id: str, member_id: str):
        """
        Remove a member from a trip.

        Raises:
            MemberHasExpensesError: If any expense still references the member
        """
        member = self.get_member(trip_id, member_id)

        referenced = count_member_expenses(self.db.get_expenses(trip_id), member_id)
        if referenced:
            raise MemberHasExpensesError(member.name, referenced)

        self.db.delete_member(trip_id, member_id)
        logger.info(f"Removed member '{member.name}' from trip {trip_id}")

    # ========================================================================
    # Expenses
    # ========================================================================

    def add_expense(
        self,
        trip_id: str,
        amount: Decimal,
        description: str,
        paid_by: str,
        participants: list[str] | None = None,
        shares: dict[str, Decimal] | None = None,
        category: ExpenseCategory = ExpenseCategory.OTHER,
        expense_date: datetime | None = None,
    ) -> Expense:
        """
        Validate and store a new expense.

        Participants default to the whole roster. Passing shares makes the
        expense an uneven split; shares must add up to the amount.

        Raises:
            InvalidExpenseError: If the amount or participant list is invalid
            InvalidSharesError: If uneven shares don't add up
            MemberNotFoundError: If the payer or a participant isn't on the trip
        """
        members = self.get_members(trip_id)
        roster = {member.id for member in members}

        if amount <= 0:
            raise InvalidExpenseError("Amount must be greater than 0")
        if category is ExpenseCategory.SETTLEMENT:
            raise InvalidExpenseError("Use settle_up to record settlements")
        if paid_by not in roster:
            raise MemberNotFoundError(paid_by)

        if participants is None:
            participants = (
                list(shares) if shares is not None else [m.id for m in members]
            )
        if not participants:
            raise InvalidExpenseError("Select at least one participant")

        unknown = [member_id for member_id in participants if member_id not in roster]
        if unknown:
            raise MemberNotFoundError(unknown[0])

        if shares is not None:
            validate_shares(amount, participants, shares)

        expense = Expense(
            id=new_id(),
            trip_id=trip_id,
            description=description.strip(),
            amount=amount,
            paid_by=paid_by,
            participants=participants,
            split_type=SplitType.UNEVEN if shares is not None else SplitType.EQUAL,
            shares=shares,
            category=category,
            date=expense_date or datetime.now(),
        )
        self.db.save_expense(expense)

        logger.info(
            f"Added expense '{expense.description}' ({expense.amount}) "
            f"to trip {trip_id}"
        )
        return expense

    def get_expenses(self, trip_id: str) -> list[Expense]:
        self.get_trip(trip_id)
        return self.db.get_expenses(trip_id)

    def delete_expense(self, trip_id: str, expense_id: str):
        self.get_trip(trip_id)
        if not self.db.delete_expense(trip_id, expense_id):
            raise ExpenseNotFoundError(expense_id)
        logger.info(f"Deleted expense {expense_id} from trip {trip_id}")

    def settle_up(
        self, trip_id: str, from_id: str, to_id: str, amount: Decimal
    ) -> Expense:
        """
        Record that one member paid another back.

        The payment is stored as a settlement expense, which the next balance
        calculation picks up like any other expense.

        Args:
            trip_id: The trip
            from_id: Member who paid (the debtor)
            to_id: Member who received the money (the creditor)
            amount: Amount paid

        Returns:
            The stored settlement expense
        """
        from_member = self.get_member(trip_id, from_id)
        to_member = self.get_member(trip_id, to_id)

        if from_id == to_id:
            raise InvalidExpenseError("A member cannot settle up with themselves")
        if amount <= 0:
            raise InvalidExpenseError("Settlement amount must be greater than 0")

        settlement = Expense(
            id=new_id(),
            trip_id=trip_id,
            description=f"Settlement from {from_member.name} to {to_member.name}",
            amount=amount,
            paid_by=from_id,
            participants=[from_id, to_id],
            split_type=SplitType.EQUAL,
            is_settlement=True,
            category=ExpenseCategory.SETTLEMENT,
        )
        self.db.save_expense(settlement)

        logger.info(
            f"Recorded settlement of {amount} from '{from_member.name}' "
            f"to '{to_member.name}'"
        )
        return settlement

    # ========================================================================
    # Balances
    # ========================================================================

    def get_summary(self, trip_id: str) -> TripSummary:
        """Load a trip snapshot and compute balances and suggested transfers."""
        trip = self.get_trip(trip_id)
        members = self.db.get_members(trip_id)
        expenses = self.db.get_expenses(trip_id)

        balances = calculate_balances(expenses, members)
        debts = calculate_debts(balances, members)

        logger.debug(
            f"Computed {len(balances)} balances and {len(debts)} transfers "
            f"from {len(expenses)} expenses"
        )

        return TripSummary(
            trip=trip,
            members=members,
            balances=balances,
            debts=debts,
            total_spent=sum(
                (e.amount for e in expenses if not e.is_settlement), Decimal("0")
            ),
        )

    # ========================================================================
    # Budget
    # ========================================================================

    def set_budget(
        self,
        trip_id: str,
        total_budget: Decimal,
        category_budgets: dict[ExpenseCategory, Decimal] | None = None,
    ) -> Budget:
        """Create or replace the budget for a trip."""
        self.get_trip(trip_id)

        category_budgets = category_budgets or {}
        if total_budget < 0 or any(amt < 0 for amt in category_budgets.values()):
            raise InvalidInputError("Budgets cannot be negative")
        if ExpenseCategory.SETTLEMENT in category_budgets:
            raise InvalidInputError("Settlements cannot have a budget")

        existing = self.db.get_budget(trip_id)
        budget = Budget(
            trip_id=trip_id,
            total_budget=total_budget,
            category_budgets=category_budgets,
            created_at=existing.created_at if existing else datetime.now(),
        )
        self.db.save_budget(budget)

        logger.info(f"Set budget of {total_budget} for trip {trip_id}")
        return budget

    def get_budget_summary(self, trip_id: str) -> list[BudgetSummary]:
        self.get_trip(trip_id)
        return calculate_budget_summary(
            self.db.get_budget(trip_id), self.db.get_expenses(trip_id)
        )

    # ========================================================================
    # Display settings
    # ========================================================================

    def get_currency(self) -> Currency:
        """The stored display currency, or the configured default."""
        code = self.db.get_config(CURRENCY_CONFIG_KEY)
        return get_currency_by_code(code or self.settings.default_currency)

    def set_currency(self, code: str) -> Currency:
        if not is_supported(code):
            raise ConfigurationError(f"Unsupported currency: {code}")
        currency = get_currency_by_code(code)
        self.db.set_config(CURRENCY_CONFIG_KEY, currency.code)
        return currency
