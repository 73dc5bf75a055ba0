"""Core balance and debt-settlement logic.

Both entry points are pure functions over a snapshot of a trip's expenses and
members. They never raise on bad data: a malformed record is skipped and the
rest of the computation carries on.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce

from .models import Balance, Debt, Expense, Member, SplitType

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Balances and transfers at or below this are considered settled
SETTLED_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0")


def round_amount(amount: Decimal) -> Decimal:
    """
    Round a currency amount to cents.

    Uses ROUND_HALF_UP (half away from zero) for consistency. Negative zero
    is normalized so it never shows up as "-0.00".

    Args:
        amount: Amount as Decimal

    Returns:
        Amount quantized to 2 decimal places
    """
    rounded = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    return abs(rounded) if rounded.is_zero() else rounded


def _settlement_receiver(expense: Expense) -> str | None:
    """First participant who isn't the payer, if any."""
    return next((p for p in expense.participants if p != expense.paid_by), None)


def expense_deltas(expense: Expense) -> list[tuple[str, Decimal]]:
    """
    Compute the balance changes caused by a single expense.

    Args:
        expense: The expense or settlement record

    Returns:
        List of (member_id, signed change) pairs. Empty when the record is a
        no-op (negative amount, no participants, settlement with no receiver).
    """
    amount = expense.amount

    if amount < 0:
        logger.debug(f"Skipping expense {expense.id}: negative amount {amount}")
        return []

    if expense.is_settlement:
        receiver = _settlement_receiver(expense)
        if receiver is None:
            logger.debug(f"Skipping settlement {expense.id}: no receiver")
            return []
        # Payer gets credit, receiver is owed that much less
        return [(expense.paid_by, amount), (receiver, -amount)]

    if not expense.participants:
        logger.debug(f"Skipping expense {expense.id}: no participants")
        return []

    if expense.split_type is SplitType.UNEVEN and expense.shares is not None:
        if any(share < 0 for share in expense.shares.values()):
            logger.debug(f"Skipping expense {expense.id}: negative share")
            return []
        # Only members listed in shares are charged
        return [(expense.paid_by, amount)] + [
            (member_id, -share) for member_id, share in expense.shares.items()
        ]

    share_per_person = amount / len(expense.participants)
    return [(expense.paid_by, amount)] + [
        (member_id, -share_per_person) for member_id in expense.participants
    ]


def apply_expense(
    totals: Mapping[str, Decimal], expense: Expense
) -> dict[str, Decimal]:
    """
    Fold step: return new running totals with one expense applied.

    Ids that aren't in `totals` (members no longer on the roster) are ignored.
    The input mapping is left untouched.
    """
    updated = dict(totals)
    for member_id, delta in expense_deltas(expense):
        if member_id in updated:
            updated[member_id] += delta
        else:
            logger.debug(f"Ignoring unknown member {member_id} in {expense.id}")
    return updated


def calculate_balances(
    expenses: Iterable[Expense], members: list[Member]
) -> list[Balance]:
    """
    Calculate each member's net balance from a trip's expenses.

    Steps:
    1. Start every roster member at zero
    2. Fold each expense into the running totals (full precision Decimal)
    3. Round each final total to cents, once
    4. Emit one balance per member in roster order

    Args:
        expenses: Expenses and settlements, in any order
        members: The trip roster

    Returns:
        List of balances, positive meaning the group owes that member
    """
    initial: dict[str, Decimal] = {member.id: ZERO for member in members}
    totals = reduce(apply_expense, expenses, initial)

    return [
        Balance(
            member_id=member.id,
            member_name=member.name,
            amount=round_amount(totals[member.id]),
        )
        for member in members
    ]


def calculate_debts(balances: list[Balance], members: list[Member]) -> list[Debt]:
    """
    Suggest transfers that settle all balances, greedy largest-first.

    Debtors are taken most-indebted first and each pays the creditor with the
    most remaining credit until one side is exhausted. Sorting is stable, so
    ties are broken by input order and identical inputs give identical output.

    Args:
        balances: Balances from calculate_balances
        members: The trip roster

    Returns:
        Ordered list of suggested transfers
    """
    roster = {member.id: member for member in members}

    known: list[Balance] = []
    for balance in balances:
        if balance.member_id in roster:
            known.append(balance)
        else:
            logger.debug(f"Skipping balance for unknown member {balance.member_id}")

    debtors = sorted(
        (b for b in known if b.amount < -SETTLED_TOLERANCE), key=lambda b: b.amount
    )
    creditors = sorted(
        (b for b in known if b.amount > SETTLED_TOLERANCE),
        key=lambda b: b.amount,
        reverse=True,
    )
    remaining_credit = [creditor.amount for creditor in creditors]

    debts: list[Debt] = []
    current = 0

    for debtor in debtors:
        remaining_debt = -debtor.amount

        while remaining_debt > SETTLED_TOLERANCE and current < len(creditors):
            payment = min(remaining_debt, remaining_credit[current])

            if payment > SETTLED_TOLERANCE:
                debts.append(
                    Debt(
                        from_member=roster[debtor.member_id],
                        to_member=roster[creditors[current].member_id],
                        amount=round_amount(payment),
                    )
                )
                remaining_debt -= payment
                remaining_credit[current] -= payment

            if remaining_credit[current] <= SETTLED_TOLERANCE:
                current += 1

    return debts


def apply_debts(balances: list[Balance], debts: list[Debt]) -> list[Balance]:
    """
    Project balances as if every suggested transfer had been paid.

    Useful for previewing the effect of settling up.
    """
    adjustments: dict[str, Decimal] = {}
    for debt in debts:
        adjustments[debt.from_member.id] = (
            adjustments.get(debt.from_member.id, ZERO) + debt.amount
        )
        adjustments[debt.to_member.id] = (
            adjustments.get(debt.to_member.id, ZERO) - debt.amount
        )

    return [
        balance.model_copy(
            update={
                "amount": round_amount(
                    balance.amount + adjustments.get(balance.member_id, ZERO)
                )
            }
        )
        for balance in balances
    ]
