"""SQLite database operations for TripSplit."""

import json
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from .models import Budget, Expense, ExpenseCategory, Member, SplitType, Trip


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Trips table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS trips (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                date_created TIMESTAMP NOT NULL,
                start_date DATE,
                end_date DATE,
                is_archived INTEGER NOT NULL DEFAULT 0,
                pinned INTEGER NOT NULL DEFAULT 0
            )
        """
        )

        # Members table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id TEXT PRIMARY KEY,
                trip_id TEXT NOT NULL REFERENCES trips(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                position INTEGER NOT NULL
            )
        """
        )

        # Expenses table (amounts stored as decimal strings)
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                trip_id TEXT NOT NULL REFERENCES trips(id) ON DELETE CASCADE,
                description TEXT NOT NULL,
                amount TEXT NOT NULL,
                paid_by TEXT NOT NULL,
                participants TEXT NOT NULL,
                split_type TEXT NOT NULL,
                shares TEXT,
                is_settlement INTEGER NOT NULL DEFAULT 0,
                category TEXT NOT NULL,
                date TIMESTAMP NOT NULL
            )
        """
        )

        # Budgets table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS budgets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                trip_id TEXT NOT NULL UNIQUE REFERENCES trips(id) ON DELETE CASCADE,
                total_budget TEXT NOT NULL,
                category_budgets TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    # ========================================================================
    # Trip operations
    # ========================================================================

    def save_trip(self, trip: Trip):
        """Insert or update a trip."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO trips (
                id, name, description, date_created, start_date, end_date,
                is_archived, pinned
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                start_date = excluded.start_date,
                end_date = excluded.end_date,
                is_archived = excluded.is_archived,
                pinned = excluded.pinned
            """,
            (
                trip.id,
                trip.name,
                trip.description,
                trip.date_created.isoformat(),
                trip.start_date.isoformat() if trip.start_date else None,
                trip.end_date.isoformat() if trip.end_date else None,
                int(trip.is_archived),
                int(trip.pinned),
            ),
        )
        self.conn.commit()

    def get_trip(self, trip_id: str) -> Trip | None:
        """Get a trip by id."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM trips WHERE id = ?", (trip_id,))
        row = cursor.fetchone()
        return self._row_to_trip(row) if row else None

    def get_trips(self, include_archived: bool = False) -> list[Trip]:
        """Get all trips, pinned first, then newest first."""
        cursor = self.conn.cursor()
        query = "SELECT * FROM trips"
        if not include_archived:
            query += " WHERE is_archived = 0"
        query += " ORDER BY pinned DESC, date_created DESC"
        cursor.execute(query)
        return [self._row_to_trip(row) for row in cursor.fetchall()]

    def delete_trip(self, trip_id: str):
        """Delete a trip and everything that belongs to it."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM trips WHERE id = ?", (trip_id,))
        self.conn.commit()

    @staticmethod
    def _row_to_trip(row: sqlite3.Row) -> Trip:
        return Trip(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            date_created=datetime.fromisoformat(row["date_created"]),
            start_date=date.fromisoformat(row["start_date"])
            if row["start_date"]
            else None,
            end_date=date.fromisoformat(row["end_date"]) if row["end_date"] else None,
            is_archived=bool(row["is_archived"]),
            pinned=bool(row["pinned"]),
        )

    # ========================================================================
    # Member operations
    # ========================================================================

    def save_member(self, trip_id: str, member: Member):
        """Add a member to the end of a trip's roster."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT COALESCE(MAX(position), -1) + 1 AS next FROM members "
            "WHERE trip_id = ?",
            (trip_id,),
        )
        position = cursor.fetchone()["next"]
        cursor.execute(
            "INSERT INTO members (id, trip_id, name, position) VALUES (?, ?, ?, ?)",
            (member.id, trip_id, member.name, position),
        )
        self.conn.commit()

    def get_members(self, trip_id: str) -> list[Member]:
        """Get a trip's roster in the order members were added."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name FROM members WHERE trip_id = ? ORDER BY position",
            (trip_id,),
        )
        return [Member(id=row["id"], name=row["name"]) for row in cursor.fetchall()]

    def delete_member(self, trip_id: str, member_id: str):
        """Remove a member from a trip."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM members WHERE trip_id = ? AND id = ?", (trip_id, member_id)
        )
        self.conn.commit()

    # ========================================================================
    # Expense operations
    # ========================================================================

    def save_expense(self, expense: Expense):
        """Insert an expense."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO expenses (
                id, trip_id, description, amount, paid_by, participants,
                split_type, shares, is_settlement, category, date
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                expense.id,
                expense.trip_id,
                expense.description,
                str(expense.amount),
                expense.paid_by,
                json.dumps(expense.participants),
                expense.split_type.value,
                json.dumps({k: str(v) for k, v in expense.shares.items()})
                if expense.shares is not None
                else None,
                int(expense.is_settlement),
                expense.category.value,
                expense.date.isoformat(),
            ),
        )
        self.conn.commit()

    def get_expenses(self, trip_id: str) -> list[Expense]:
        """Get a trip's expenses, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM expenses WHERE trip_id = ? ORDER BY date, rowid",
            (trip_id,),
        )
        return [self._row_to_expense(row) for row in cursor.fetchall()]

    def delete_expense(self, trip_id: str, expense_id: str) -> bool:
        """Delete an expense. Returns False if it didn't exist."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM expenses WHERE trip_id = ? AND id = ?",
            (trip_id, expense_id),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_expense(row: sqlite3.Row) -> Expense:
        shares = (
            {k: Decimal(v) for k, v in json.loads(row["shares"]).items()}
            if row["shares"] is not None
            else None
        )
        return Expense(
            id=row["id"],
            trip_id=row["trip_id"],
            description=row["description"],
            amount=Decimal(row["amount"]),
            paid_by=row["paid_by"],
            participants=json.loads(row["participants"]),
            split_type=SplitType(row["split_type"]),
            shares=shares,
            is_settlement=bool(row["is_settlement"]),
            category=ExpenseCategory(row["category"]),
            date=datetime.fromisoformat(row["date"]),
        )

    # ========================================================================
    # Budget operations
    # ========================================================================

    def save_budget(self, budget: Budget) -> int:
        """Save a trip budget, replacing any existing one."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO budgets (
                trip_id, total_budget, category_budgets, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(trip_id) DO UPDATE SET
                total_budget = excluded.total_budget,
                category_budgets = excluded.category_budgets,
                updated_at = excluded.updated_at
            """,
            (
                budget.trip_id,
                str(budget.total_budget),
                json.dumps(
                    {cat.value: str(amt) for cat, amt in budget.category_budgets.items()}
                ),
                budget.created_at.isoformat(),
                budget.updated_at.isoformat(),
            ),
        )
        self.conn.commit()
        row_id = cursor.lastrowid
        if row_id is None:
            raise RuntimeError("Failed to save budget")
        return row_id

    def get_budget(self, trip_id: str) -> Budget | None:
        """Get the budget for a trip."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM budgets WHERE trip_id = ?", (trip_id,))
        row = cursor.fetchone()
        if not row:
            return None

        return Budget(
            id=row["id"],
            trip_id=row["trip_id"],
            total_budget=Decimal(row["total_budget"]),
            category_budgets={
                ExpenseCategory(cat): Decimal(amt)
                for cat, amt in json.loads(row["category_budgets"]).items()
            },
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
