"""Interactive UI components for picking members and transfers."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .currencies import format_amount
from .models import Currency, Debt, Member

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="aln" matches "Alan"
        query="bb" matches "Bobby"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class MemberCompleter(Completer):
    """Fuzzy search completer for trip members."""

    def __init__(self, members: list[Member]):
        """Initialize the completer with the trip roster."""
        self.members = members
        self.name_to_id = {member.name: member.id for member in members}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for member in self.members:
            if not query or fuzzy_match(query, member.name.lower()):
                yield Completion(
                    text=member.name,
                    start_position=-len(document.text),
                    display=member.name,
                )


def select_member_interactive(members: list[Member], prompt: str) -> str | None:
    """
    Interactive member selection with fuzzy search.

    Args:
        members: The trip roster
        prompt: What the member is being picked for, e.g. "Paid by"

    Returns:
        Selected member id, or None to skip
    """
    if not members:
        return None

    print("   Type to search, press Enter to confirm, Ctrl+C to skip\n")

    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt(f"{prompt}: ", complete_while_typing=True)

            if not result:
                return None

            member_id = completer.name_to_id.get(result.strip())
            if member_id:
                logger.info(f"User selected member: {result.strip()}")
                return member_id

            print("❌ Unknown member. Please select from the list or press Tab.")

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return None


def select_debt_interactive(debts: list[Debt], currency: Currency) -> int | None:
    """
    Let the user pick which suggested transfer to settle.

    Args:
        debts: Suggested transfers
        currency: Display currency

    Returns:
        Index into debts, or None if cancelled
    """
    if not debts:
        return None

    print("\n💸 Suggested transfers:\n")
    for idx, debt in enumerate(debts, start=1):
        print(
            f"  {idx}. {debt.from_member.name} → {debt.to_member.name}: "
            f"{format_amount(debt.amount, currency)}"
        )

    try:
        response = input(f"\nSettle which transfer? [1-{len(debts)}] ").strip()
    except (KeyboardInterrupt, EOFError):
        print("\n⏭️  Skipped")
        return None

    if not response:
        return None

    if response.isdigit() and 1 <= int(response) <= len(debts):
        return int(response) - 1

    print("❌ Invalid selection.")
    return None


def confirm(message: str) -> bool:
    """Simple yes/no confirmation, defaults to no."""
    response = input(f"{message} [y/N] ").strip().lower()
    return response in ("y", "yes")
