"""
Pytest fixtures for BankIt tests.

Provides a temporary SQLite database with a few categories and operations
dated around today, and a FastAPI TestClient bound to it.
"""

import sqlite3
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from api.database import init_schema  # noqa: E402

TODAY = date.today()

# (category_id, name)
CATEGORIES = [
    (1, "Courses"),
    (2, "Loyer"),
    (3, "Salaire"),
]

# (operation_id, date, label, amount, planned, category_id)
OPERATIONS = [
    (1, TODAY - timedelta(days=60), "Solde initial", 1000.0, None, None),
    (2, TODAY, "CB CARREFOUR", -45.5, -50.0, 1),
    (3, TODAY, "VIR SALAIRE", 2000.0, None, 3),
    (4, TODAY, "PRLV LOYER", None, -700.0, None),
]


def _seed(conn: sqlite3.Connection) -> None:
    init_schema(conn)
    conn.executemany(
        "INSERT INTO categories (category_id, name) VALUES (?, ?)", CATEGORIES
    )
    conn.executemany(
        "INSERT INTO operations (operation_id, operation_date, label, amount, "
        "planned, category_id) VALUES (?, ?, ?, ?, ?, ?)",
        [(i, d.isoformat(), label, amount, planned, cat)
         for i, d, label, amount, planned, cat in OPERATIONS],
    )
    conn.commit()


@pytest.fixture()
def db_path(tmp_path) -> Path:
    """Fresh seeded database for each test."""
    path = tmp_path / "bankit.sqlite"
    conn = sqlite3.connect(str(path))
    try:
        _seed(conn)
    finally:
        conn.close()
    return path


@pytest.fixture()
def db_conn(db_path):
    """Direct connection to the test database for assertions."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    yield conn
    conn.close()


@pytest.fixture()
def app_client(db_path):
    from fastapi.testclient import TestClient
    from api.app import create_app

    app = create_app(db_path=db_path, context_path="/")
    return TestClient(app, raise_server_exceptions=False)
