"""
Pytest configuration and fixtures for CuisineDuo tests.
"""

import asyncio
import os
from copy import deepcopy
from itertools import count
from typing import Any

import pytest

# Set test environment before importing cuisineduo modules
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-test")
os.environ["CUISINEDUO_ENV"] = "development"
os.environ["CUISINEDUO_LOG_TO_DB"] = "false"
os.environ["CUISINEDUO_LOG_PROMPTS"] = "false"


def run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# In-memory Supabase
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, data):
        self.data = data


def _column(row: dict[str, Any], column: str) -> Any:
    # JSON path filters like subscription->>endpoint
    if "->>" in column:
        base, key = column.split("->>", 1)
        return (row.get(base) or {}).get(key)
    return row.get(column)


class FakeQuery:
    """Chainable query builder over one in-memory table."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.filters: list = []
        self.operation = "select"
        self.payload: Any = None
        self.on_conflict: str | None = None
        self.order_by: tuple[str, bool] | None = None
        self.row_limit: int | None = None
        self.mode: str | None = None

    # Filters

    def eq(self, column, value):
        self.filters.append(lambda row: _column(row, column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: _column(row, column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: _column(row, column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def single(self):
        self.mode = "single"
        return self

    def maybe_single(self):
        self.mode = "maybe_single"
        return self

    # Operations

    def select(self, *columns, **kwargs):
        self.operation = "select"
        return self

    def insert(self, rows):
        self.operation = "insert"
        self.payload = rows
        return self

    def upsert(self, rows, on_conflict=None, **kwargs):
        self.operation = "upsert"
        self.payload = rows
        self.on_conflict = on_conflict
        return self

    def update(self, values):
        self.operation = "update"
        self.payload = values
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def _matching(self) -> list[dict[str, Any]]:
        return [row for row in self.db.rows(self.table) if all(f(row) for f in self.filters)]

    def execute(self):
        self.db.calls.append((self.table, self.operation, deepcopy(self.payload)))
        rows = self.db.rows(self.table)

        if self.operation == "insert":
            new = self.payload if isinstance(self.payload, list) else [self.payload]
            data = [self.db.add(self.table, row) for row in new]
        elif self.operation == "upsert":
            data = [self._upsert(row) for row in (self.payload if isinstance(self.payload, list) else [self.payload])]
        elif self.operation == "update":
            data = self._matching()
            for row in data:
                row.update(self.payload)
            data = deepcopy(data)
        elif self.operation == "delete":
            data = self._matching()
            self.db.tables[self.table] = [row for row in rows if row not in data]
        else:
            data = deepcopy(self._matching())
            if self.order_by:
                column, desc = self.order_by
                data.sort(key=lambda row: row.get(column) or 0, reverse=desc)
            if self.row_limit is not None:
                data = data[: self.row_limit]

        if self.mode == "maybe_single":
            # supabase-py returns None instead of a response on zero rows
            return FakeResponse(data[0]) if data else None
        if self.mode == "single":
            return FakeResponse(data[0] if data else None)
        return FakeResponse(data)

    def _upsert(self, row: dict[str, Any]) -> dict[str, Any]:
        keys = self.on_conflict.split(",") if self.on_conflict else ["id"]
        for existing in self.db.rows(self.table):
            if all(k in row and existing.get(k) == row[k] for k in keys):
                existing.update(row)
                return deepcopy(existing)
        return self.db.add(self.table, row)


class FakeSupabase:
    """Just enough of supabase.Client for handlers and the swipe store."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None):
        self.tables = deepcopy(tables or {})
        self.calls: list[tuple[str, str, Any]] = []
        self._ids = count(1)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def add(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        stored = {"id": f"{table}-{next(self._ids)}", **deepcopy(row)}
        self.rows(table).append(stored)
        return deepcopy(stored)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def calls_to(self, table: str, operation: str) -> list[Any]:
        return [payload for t, op, payload in self.calls if t == table and op == operation]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

HOUSEHOLD_ID = "house-1"


def swipe_tables(status: str = "voting") -> dict[str, list[dict[str, Any]]]:
    """A household of two with one three-recipe session (plus a neighbour)."""
    return {
        "swipe_sessions": [
            {"id": "session-1", "household_id": HOUSEHOLD_ID, "status": status, "meal_count": 2},
        ],
        "swipe_session_recipes": [
            # Stored out of order on purpose
            {"id": "sr-3", "session_id": "session-1", "name": "Ratatouille", "sort_order": 2, "is_existing_recipe": False},
            {"id": "sr-1", "session_id": "session-1", "name": "Boeuf bourguignon", "sort_order": 0, "is_existing_recipe": False},
            {
                "id": "sr-2",
                "session_id": "session-1",
                "name": "Mapo tofu",
                "sort_order": 1,
                "recipe_id": "recipe-9",
                "is_existing_recipe": True,
            },
            {"id": "sr-x", "session_id": "session-other", "name": "Pho", "sort_order": 0},
        ],
        "swipe_votes": [],
        "profiles": [
            {"id": "alice", "household_id": HOUSEHOLD_ID, "display_name": "Alice"},
            {"id": "bob", "household_id": HOUSEHOLD_ID, "display_name": "Bob"},
            {"id": "carol", "household_id": "house-2", "display_name": "Carol"},
        ],
    }


@pytest.fixture
def fake_db():
    """Supabase fake seeded with a voting swipe session."""
    return FakeSupabase(swipe_tables())


@pytest.fixture
def sample_inventory():
    return [
        {"id": "inv-1", "name": "Milk", "quantity": 1, "unit": "l", "category": "dairy"},
        {"id": "inv-2", "name": "Eggs", "quantity": 6, "unit": "piece", "category": "dairy"},
        {"id": "inv-3", "name": "Tomatoes", "quantity": 0.5, "unit": "kg", "category": "vegetables"},
    ]
