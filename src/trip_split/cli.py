"""CLI for TripSplit using Typer."""

import logging
import sys
from contextlib import contextmanager
from datetime import date
from decimal import Decimal, InvalidOperation

import typer
from rich.console import Console
from rich.table import Table

from .budget import get_category_display_name, get_category_emoji
from .calculator import apply_debts
from .config import load_settings
from .currencies import CURRENCIES, format_amount
from .db import Database
from .exceptions import InvalidInputError, TripSplitError
from .models import Currency, ExpenseCategory, SplitType
from .service import TripService
from .ui import confirm, select_debt_interactive, select_member_interactive

app = typer.Typer(
    name="trip-split",
    help="Split shared trip expenses and work out who owes whom",
)
trip_app = typer.Typer(help="Create and manage trips")
member_app = typer.Typer(help="Manage trip members")
expense_app = typer.Typer(help="Record and manage expenses")
budget_app = typer.Typer(help="Trip budgets")

app.add_typer(trip_app, name="trip")
app.add_typer(member_app, name="member")
app.add_typer(expense_app, name="expense")
app.add_typer(budget_app, name="budget")

console = Console()

VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose output")


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def open_service(verbose: bool = False):
    """
    Load settings, open the database and yield a TripService.

    Errors are reported on the console and end the process with exit code 1.
    The database is always closed.
    """
    setup_logging(verbose)
    db = None

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield TripService(settings, db)
    except TripSplitError as e:
        # Validation or lookup problem, nothing unexpected
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def parse_amount(value: str) -> Decimal:
    """Parse a user-entered amount, rejecting anything that isn't a number."""
    try:
        amount = Decimal(value.strip().replace(",", ""))
    except InvalidOperation:
        raise InvalidInputError(f"Not a valid amount: {value}") from None
    if not amount.is_finite():
        raise InvalidInputError(f"Not a valid amount: {value}")
    return amount


def parse_date(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidInputError(f"Dates must be YYYY-MM-DD, got: {value}") from None


def parse_assignments(values: list[str]) -> list[tuple[str, Decimal]]:
    """Parse repeated KEY=AMOUNT options, e.g. --share Alice=30."""
    pairs = []
    for value in values:
        key, sep, amount = value.rpartition("=")
        if not sep or not key.strip():
            raise InvalidInputError(f"Expected NAME=AMOUNT, got: {value}")
        pairs.append((key.strip(), parse_amount(amount)))
    return pairs


def format_money(amount: Decimal, currency: Currency, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    The spaces ensure decimal points align in tables.
    """
    formatted = format_amount(abs(amount), currency)
    if amount < 0:
        return f"([red]{formatted}[/red])" if use_color else f"({formatted})"
    if use_color and amount > 0:
        return f" [green]{formatted}[/green] "
    return f" {formatted} "


# ============================================================================
# Trips
# ============================================================================


@trip_app.command("create")
def trip_create(
    name: str = typer.Argument(..., help="Trip name"),
    description: str | None = typer.Option(None, "--description", "-d"),
    start: str | None = typer.Option(None, "--start", help="Start date (YYYY-MM-DD)"),
    end: str | None = typer.Option(None, "--end", help="End date (YYYY-MM-DD)"),
    verbose: bool = VERBOSE_OPTION,
):
    """Create a new trip."""
    with open_service(verbose) as service:
        trip = service.create_trip(
            name,
            description=description,
            start_date=parse_date(start),
            end_date=parse_date(end),
        )
        console.print(f"[bold green]✓ Created trip {trip.name}[/bold green]")
        console.print(f"  ID: [cyan]{trip.id}[/cyan]")


@trip_app.command("list")
def trip_list(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include archived"),
    verbose: bool = VERBOSE_OPTION,
):
    """List trips, pinned first."""
    with open_service(verbose) as service:
        trips = service.list_trips(include_archived=show_all)

        if not trips:
            console.print("[yellow]No trips yet. Create one with 'trip create'.[/yellow]")
            return

        table = Table(title="Trips", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", width=10)
        table.add_column("Name", style="cyan")
        table.add_column("Dates")
        table.add_column("Members", justify="right")
        table.add_column("", width=4)

        for trip in trips:
            dates = ""
            if trip.start_date:
                dates = f"{trip.start_date} → {trip.end_date or '…'}"
            flags = ("📌" if trip.pinned else "") + ("🗄" if trip.is_archived else "")
            table.add_row(
                trip.id[:8],
                trip.name,
                dates,
                str(len(service.get_members(trip.id))),
                flags,
            )

        console.print(table)


@trip_app.command("archive")
def trip_archive(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    undo: bool = typer.Option(False, "--undo", help="Unarchive instead"),
    verbose: bool = VERBOSE_OPTION,
):
    """Archive (or unarchive) a trip."""
    with open_service(verbose) as service:
        trip = service.set_archived(service.find_trip(trip_ref).id, not undo)
        state = "archived" if trip.is_archived else "unarchived"
        console.print(f"[green]✓ {trip.name} {state}[/green]")


@trip_app.command("pin")
def trip_pin(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    undo: bool = typer.Option(False, "--undo", help="Unpin instead"),
    verbose: bool = VERBOSE_OPTION,
):
    """Pin (or unpin) a trip to the top of the list."""
    with open_service(verbose) as service:
        trip = service.set_pinned(service.find_trip(trip_ref).id, not undo)
        state = "pinned" if trip.pinned else "unpinned"
        console.print(f"[green]✓ {trip.name} {state}[/green]")


@trip_app.command("delete")
def trip_delete(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = VERBOSE_OPTION,
):
    """Delete a trip with all of its members and expenses."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)

        if not yes and not confirm(
            f"Delete {trip.name} and all of its expenses? This cannot be undone."
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.delete_trip(trip.id)
        console.print(f"[green]✓ Deleted {trip.name}[/green]")


# ============================================================================
# Members
# ============================================================================


@member_app.command("add")
def member_add(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    names: list[str] = typer.Argument(..., help="One or more member names"),
    verbose: bool = VERBOSE_OPTION,
):
    """Add members to a trip."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        for name in names:
            member = service.add_member(trip.id, name)
            console.print(f"[green]✓ Added {member.name}[/green] [dim]({member.id})[/dim]")


@member_app.command("list")
def member_list(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    verbose: bool = VERBOSE_OPTION,
):
    """List the members of a trip."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        members = service.get_members(trip.id)

        if not members:
            console.print("[yellow]No members yet.[/yellow]")
            return

        table = Table(title=f"{trip.name} members", header_style="bold magenta")
        table.add_column("ID", style="dim", width=10)
        table.add_column("Name", style="cyan")
        for member in members:
            table.add_row(member.id[:8], member.name)
        console.print(table)


@member_app.command("remove")
def member_remove(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    member_ref: str = typer.Argument(..., help="Member id, id prefix or name"),
    verbose: bool = VERBOSE_OPTION,
):
    """Remove a member. Members with expenses cannot be removed."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        member = service.find_member(trip.id, member_ref)
        service.remove_member(trip.id, member.id)
        console.print(f"[green]✓ Removed {member.name}[/green]")


# ============================================================================
# Expenses
# ============================================================================


@expense_app.command("add")
def expense_add(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    amount: str = typer.Argument(..., help="Total amount, e.g. 42.50"),
    description: str = typer.Argument(..., help="What was bought"),
    paid_by: str | None = typer.Option(
        None, "--paid-by", "-p", help="Member who paid (prompted if omitted)"
    ),
    participants: list[str] = typer.Option(
        [], "--participant", "-w", help="Member sharing the cost (default: everyone)"
    ),
    shares: list[str] = typer.Option(
        [], "--share", "-s", help="Uneven split, NAME=AMOUNT (repeatable)"
    ),
    category: ExpenseCategory = typer.Option(
        ExpenseCategory.OTHER, "--category", "-c", help="Expense category"
    ),
    verbose: bool = VERBOSE_OPTION,
):
    """
    Record an expense.

    Split equally among --participant members (everyone by default), or
    unevenly with one --share per member.
    """
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        total = parse_amount(amount)

        if paid_by is None:
            payer_id = select_member_interactive(
                service.get_members(trip.id), "Paid by"
            )
            if payer_id is None:
                console.print("[yellow]No payer selected.[/yellow]")
                return
        else:
            payer_id = service.find_member(trip.id, paid_by).id

        participant_ids = [
            service.find_member(trip.id, ref).id for ref in participants
        ] or None

        share_map: dict[str, Decimal] | None = None
        if shares:
            share_map = {}
            for ref, share in parse_assignments(shares):
                member = service.find_member(trip.id, ref)
                if member.id in share_map:
                    raise InvalidInputError(
                        f"More than one share given for {member.name}"
                    )
                share_map[member.id] = share

        expense = service.add_expense(
            trip.id,
            total,
            description,
            paid_by=payer_id,
            participants=participant_ids,
            shares=share_map,
            category=category,
        )

        currency = service.get_currency()
        console.print(
            f"[bold green]✓ Added {expense.description}[/bold green] "
            f"({format_amount(expense.amount, currency)}, "
            f"split {expense.split_type.value} between "
            f"{len(expense.participants)})"
        )


@expense_app.command("list")
def expense_list(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    verbose: bool = VERBOSE_OPTION,
):
    """List a trip's expenses and settlements."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        expenses = service.get_expenses(trip.id)
        names = {member.id: member.name for member in service.get_members(trip.id)}
        currency = service.get_currency()

        if not expenses:
            console.print("[yellow]No expenses yet.[/yellow]")
            return

        table = Table(title=f"{trip.name} expenses", header_style="bold magenta")
        table.add_column("ID", style="dim", width=10)
        table.add_column("Date", width=10)
        table.add_column("Description", style="cyan", width=36)
        table.add_column("Amount", justify="right", width=14)
        table.add_column("Paid by")
        table.add_column("Split", style="dim")

        for expense in expenses:
            emoji = get_category_emoji(expense.category.value)
            desc = expense.description
            desc = desc[:33] + "..." if len(desc) > 36 else desc

            if expense.is_settlement:
                split = "settlement"
            elif expense.split_type is SplitType.UNEVEN:
                split = ", ".join(
                    f"{names.get(k, '?')} {format_amount(v, currency)}"
                    for k, v in (expense.shares or {}).items()
                )
            else:
                split = f"equal / {len(expense.participants)}"

            table.add_row(
                expense.id[:8],
                str(expense.date.date()),
                f"{emoji} {desc}",
                format_money(expense.amount, currency, use_color=False),
                names.get(expense.paid_by, "[dim]unknown[/dim]"),
                split,
            )

        console.print(table)


@expense_app.command("delete")
def expense_delete(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    expense_ref: str = typer.Argument(..., help="Expense id or id prefix"),
    verbose: bool = VERBOSE_OPTION,
):
    """Delete an expense or settlement."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        matches = [
            e for e in service.get_expenses(trip.id) if e.id.startswith(expense_ref)
        ]
        if len(matches) != 1:
            raise InvalidInputError(
                f"Expense '{expense_ref}' "
                + ("is ambiguous" if matches else "not found")
            )

        service.delete_expense(trip.id, matches[0].id)
        console.print(f"[green]✓ Deleted {matches[0].description}[/green]")


# ============================================================================
# Balances and settling up
# ============================================================================


def display_summary(summary, currency: Currency):
    """Display balances and suggested transfers."""
    console.print(f"\n[bold]{summary.trip.name}[/bold]")
    console.print(f"  Total spent: {format_amount(summary.total_spent, currency)}")
    console.print()

    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Balance", justify="right", width=16)
    table.add_column("", style="dim")
    if summary.debts:
        table.add_column("After settling", justify="right", width=16)

    projected = apply_debts(summary.balances, summary.debts)

    for balance, after in zip(summary.balances, projected):
        if balance.amount > 0:
            note = "is owed"
        elif balance.amount < 0:
            note = "owes"
        else:
            note = "settled"
        row = [balance.member_name, format_money(balance.amount, currency), note]
        if summary.debts:
            row.append(format_money(after.amount, currency, use_color=False))
        table.add_row(*row)

    console.print(table)
    console.print()

    if not summary.debts:
        console.print("[bold green]✓ Everyone is settled up![/bold green]")
        return

    debts_table = Table(
        title="Suggested Transfers", show_header=True, header_style="bold magenta"
    )
    debts_table.add_column("#", style="dim", width=3)
    debts_table.add_column("From", style="red")
    debts_table.add_column("To", style="green")
    debts_table.add_column("Amount", justify="right", width=14)

    for idx, debt in enumerate(summary.debts, start=1):
        debts_table.add_row(
            str(idx),
            debt.from_member.name,
            debt.to_member.name,
            format_money(debt.amount, currency, use_color=False),
        )

    console.print(debts_table)


@app.command()
def balances(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    verbose: bool = VERBOSE_OPTION,
):
    """Show each member's balance and who should pay whom."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        display_summary(service.get_summary(trip.id), service.get_currency())


@app.command()
def settle(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    index: int | None = typer.Option(
        None, "--index", "-i", help="Number of the transfer from 'balances'"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = VERBOSE_OPTION,
):
    """Record one suggested transfer as paid."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        summary = service.get_summary(trip.id)
        currency = service.get_currency()

        if not summary.debts:
            console.print("[bold green]✓ Everyone is settled up![/bold green]")
            return

        if index is None:
            selected = select_debt_interactive(summary.debts, currency)
            if selected is None:
                console.print("[yellow]No transfer selected.[/yellow]")
                return
        elif 1 <= index <= len(summary.debts):
            selected = index - 1
        else:
            raise InvalidInputError(
                f"Transfer number must be between 1 and {len(summary.debts)}"
            )

        debt = summary.debts[selected]
        message = (
            f"{debt.from_member.name} pays {debt.to_member.name} "
            f"{format_amount(debt.amount, currency)}"
        )

        if not yes and not confirm(f"Record: {message}?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.settle_up(trip.id, debt.from_member.id, debt.to_member.id, debt.amount)
        console.print(f"\n[bold green]✓ Settlement recorded:[/bold green] {message}")


# ============================================================================
# Budget
# ============================================================================


@budget_app.command("set")
def budget_set(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    total: str = typer.Argument(..., help="Total trip budget"),
    categories: list[str] = typer.Option(
        [], "--category", "-c", help="Category budget, CATEGORY=AMOUNT (repeatable)"
    ),
    verbose: bool = VERBOSE_OPTION,
):
    """Set the budget for a trip."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)

        category_budgets = {}
        for name, amount in parse_assignments(categories):
            try:
                category_budgets[ExpenseCategory(name.lower())] = amount
            except ValueError:
                raise InvalidInputError(f"Unknown category: {name}") from None

        budget = service.set_budget(trip.id, parse_amount(total), category_budgets)
        currency = service.get_currency()
        console.print(
            f"[green]✓ Budget for {trip.name} set to "
            f"{format_amount(budget.total_budget, currency)}[/green]"
        )


@budget_app.command("show")
def budget_show(
    trip_ref: str = typer.Argument(..., help="Trip id, id prefix or name"),
    verbose: bool = VERBOSE_OPTION,
):
    """Show budgeted vs spent per category."""
    with open_service(verbose) as service:
        trip = service.find_trip(trip_ref)
        summaries = service.get_budget_summary(trip.id)
        currency = service.get_currency()

        if not summaries:
            console.print("[yellow]No budget set. Use 'budget set'.[/yellow]")
            return

        table = Table(title=f"{trip.name} budget", header_style="bold magenta")
        table.add_column("Category", style="cyan")
        table.add_column("Budgeted", justify="right", width=14)
        table.add_column("Spent", justify="right", width=14)
        table.add_column("Remaining", justify="right", width=16)
        table.add_column("Used", justify="right", width=8)

        for summary in summaries:
            used = f"{summary.percentage:.0f}%"
            if summary.is_over_budget:
                used = f"[bold red]{used}[/bold red]"
            table.add_row(
                f"{get_category_emoji(summary.category)} "
                f"{get_category_display_name(summary.category)}",
                format_money(summary.budgeted, currency, use_color=False),
                format_money(summary.spent, currency, use_color=False),
                format_money(summary.remaining, currency),
                used,
            )

        console.print(table)


# ============================================================================
# Settings
# ============================================================================


@app.command()
def currency(
    code: str | None = typer.Argument(None, help="Currency code to switch to"),
    verbose: bool = VERBOSE_OPTION,
):
    """Show or change the display currency."""
    with open_service(verbose) as service:
        if code is None:
            current = service.get_currency()
            console.print(
                f"Display currency: [bold]{current.code}[/bold] "
                f"({current.symbol}, {current.name})"
            )
            console.print(
                "[dim]Available: "
                + ", ".join(c.code for c in CURRENCIES)
                + "[/dim]"
            )
            return

        selected = service.set_currency(code)
        console.print(
            f"[green]✓ Display currency set to {selected.code} "
            f"({selected.symbol})[/green]"
        )


if __name__ == "__main__":
    app()
