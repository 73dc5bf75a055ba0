"""Custom exceptions for TripSplit."""


class TripSplitError(Exception):
    """Base exception for all TripSplit errors."""

    pass


class ConfigurationError(TripSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class TripNotFoundError(TripSplitError):
    """Raised when a trip id does not exist."""

    def __init__(self, trip_id: str, message: str | None = None):
        self.trip_id = trip_id
        super().__init__(message or f"Trip {trip_id} not found")


class MemberNotFoundError(TripSplitError):
    """Raised when a member id is not part of the trip."""

    def __init__(self, member_id: str, message: str | None = None):
        self.member_id = member_id
        super().__init__(message or f"Member {member_id} not found in this trip")


class ExpenseNotFoundError(TripSplitError):
    """Raised when an expense id does not exist in the trip."""

    def __init__(self, expense_id: str, message: str | None = None):
        self.expense_id = expense_id
        super().__init__(message or f"Expense {expense_id} not found in this trip")


class MemberHasExpensesError(TripSplitError):
    """Raised when removing a member that is still referenced by expenses."""

    def __init__(self, member_name: str, expense_count: int):
        self.member_name = member_name
        self.expense_count = expense_count
        super().__init__(
            f"Cannot remove {member_name}: they are part of "
            f"{expense_count} expense(s). Delete those expenses first."
        )


class InvalidInputError(TripSplitError):
    """Raised when user input fails business validation."""

    pass


class InvalidExpenseError(InvalidInputError):
    """Raised when an expense fails business validation."""

    pass


class InvalidSharesError(InvalidExpenseError):
    """Raised when uneven split shares don't add up to the expense amount."""

    pass
