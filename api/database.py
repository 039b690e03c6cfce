"""
Database connection management and data access for the API.

Provides a get_db() dependency that opens a per-request SQLite connection and
closes it after the response is sent.  The database path is resolved once at
startup from the APP_DB_PATH environment variable (default: bankit.sqlite) and
can be overridden by create_app(db_path=...).

The data-access helpers below are plain functions over a connection so that
routes and tests share the same SQL.
"""

import os
import sqlite3
from collections.abc import Generator
from datetime import date
from pathlib import Path

from fastapi import HTTPException

_DB_PATH: Path = Path(os.getenv("APP_DB_PATH", "bankit.sqlite"))

SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    category_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS operations (
    operation_id INTEGER PRIMARY KEY AUTOINCREMENT,
    operation_date TEXT NOT NULL,
    label TEXT NOT NULL,
    amount REAL,
    planned REAL,
    category_id INTEGER REFERENCES categories(category_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_operations_date ON operations(operation_date);
"""


def get_db_path() -> Path:
    """Return the configured database path."""
    return _DB_PATH


def set_db_path(db_path: Path) -> None:
    global _DB_PATH
    _DB_PATH = db_path


def _make_conn(db_path: Path) -> sqlite3.Connection:
    """Open a single read-write SQLite connection with standard pragmas."""
    conn = sqlite3.connect(str(db_path), check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA busy_timeout=5000")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create the categories/operations tables if they do not exist yet."""
    conn.executescript(SCHEMA)
    conn.commit()


def get_db() -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: yield a SQLite connection, close on exit.

    Raises HTTP 503 with a friendly message if the database file is missing,
    instead of letting sqlite silently create an empty one.

    Usage in a route::

        @router.get("/example")
        def example(conn=Depends(get_db)):
            ...
    """
    if not _DB_PATH.exists():
        raise HTTPException(
            status_code=503,
            detail=(
                f"Database not found at '{_DB_PATH}'. "
                "Start the application once with APP_DB_PATH pointing to a "
                "writable location to create it."
            ),
        )
    conn = _make_conn(_DB_PATH)
    try:
        yield conn
    finally:
        conn.close()


# ── Categories ────────────────────────────────────────────────────────────────

def get_category(conn: sqlite3.Connection, category_id: int) -> dict | None:
    row = conn.execute(
        "SELECT category_id, name FROM categories WHERE category_id = ?",
        (category_id,),
    ).fetchone()
    return dict(row) if row else None


def list_categories(conn: sqlite3.Connection) -> list[dict]:
    """Return all categories ordered by name, as rendered in the selectors."""
    rows = conn.execute(
        "SELECT category_id, name FROM categories ORDER BY name, category_id"
    ).fetchall()
    return [dict(r) for r in rows]


# ── Operations ────────────────────────────────────────────────────────────────

def get_operation(conn: sqlite3.Connection, operation_id: int) -> dict | None:
    row = conn.execute(
        "SELECT operation_id, operation_date, label, amount, planned, category_id "
        "FROM operations WHERE operation_id = ?",
        (operation_id,),
    ).fetchone()
    return dict(row) if row else None


def set_operation_category(
    conn: sqlite3.Connection,
    operation_id: int,
    category_id: int | None,
) -> None:
    """Point an operation at *category_id* (``None`` clears it) and commit."""
    conn.execute(
        "UPDATE operations SET category_id = ? WHERE operation_id = ?",
        (category_id, operation_id),
    )
    conn.commit()


def list_operations(
    conn: sqlite3.Connection,
    start: date,
    end: date,
) -> list[dict]:
    """Operations between *start* and *end* (inclusive), oldest first."""
    rows = conn.execute(
        "SELECT o.operation_id, o.operation_date, o.label, o.amount, o.planned, "
        "       o.category_id, c.name AS category_name "
        "FROM operations o "
        "LEFT JOIN categories c ON o.category_id = c.category_id "
        "WHERE o.operation_date BETWEEN ? AND ? "
        "ORDER BY o.operation_date, o.operation_id",
        (start.isoformat(), end.isoformat()),
    ).fetchall()
    return [dict(r) for r in rows]


def balance_before(conn: sqlite3.Connection, day: date) -> float | None:
    """Sum of debited amounts strictly before *day*, or None if there are none."""
    row = conn.execute(
        "SELECT SUM(amount) FROM operations "
        "WHERE operation_date < ? AND amount IS NOT NULL",
        (day.isoformat(),),
    ).fetchone()
    return row[0]


def month_summary(conn: sqlite3.Connection, month_start: date) -> list[dict]:
    """Total debited amount per category for the month of *month_start*.

    One row per category id, ordered by name, so categories sharing a name
    stay separate.  Operations without a category or without a debited
    amount are ignored.
    """
    prefix = f"{month_start.year:04d}-{month_start.month:02d}-%"
    rows = conn.execute(
        "SELECT c.category_id, c.name, SUM(o.amount) AS total "
        "FROM operations o "
        "JOIN categories c ON o.category_id = c.category_id "
        "WHERE o.operation_date LIKE ? AND o.amount IS NOT NULL "
        "GROUP BY c.category_id, c.name ORDER BY c.name, c.category_id",
        (prefix,),
    ).fetchall()
    return [dict(r) for r in rows]


def insert_operation(
    conn: sqlite3.Connection,
    operation_date: date,
    label: str,
    amount: float | None = None,
    planned: float | None = None,
) -> int:
    """Insert an uncategorised operation, commit, and return its id."""
    cur = conn.execute(
        "INSERT INTO operations (operation_date, label, amount, planned) "
        "VALUES (?, ?, ?, ?)",
        (operation_date.isoformat(), label, amount, planned),
    )
    conn.commit()
    return cur.lastrowid


def delete_operation(conn: sqlite3.Connection, operation_id: int) -> bool:
    """Delete an operation; return False when it did not exist."""
    cur = conn.execute(
        "DELETE FROM operations WHERE operation_id = ?", (operation_id,)
    )
    conn.commit()
    return cur.rowcount > 0


def clear_operation_planned(conn: sqlite3.Connection, operation_id: int) -> bool:
    """Detach the planned amount from a debited operation."""
    cur = conn.execute(
        "UPDATE operations SET planned = NULL WHERE operation_id = ?",
        (operation_id,),
    )
    conn.commit()
    return cur.rowcount > 0
