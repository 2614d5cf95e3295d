"""Shared fixtures for the GreenTrip test suite.

Provides a Flask test client wired to a temporary SQLite database, and a
signed-in client for routes that need a user.
"""

import atexit
import os
import tempfile

import pytest

# Point the DB at a temp file BEFORE importing app/models (they read DB_PATH at import time)
_test_db_fd, _test_db_path = tempfile.mkstemp(suffix=".db")
os.close(_test_db_fd)  # close the fd immediately; sqlite3 opens its own handle
os.environ["GREENTRIP_DB_PATH"] = _test_db_path
atexit.register(lambda: os.unlink(_test_db_path) if os.path.exists(_test_db_path) else None)

# Suppress the SECRET_KEY startup guard
os.environ.setdefault("SECRET_KEY", "test-secret-key")

# The in-memory limiter is shared by every test in the process
os.environ["RATE_LIMIT_DEFAULT"] = "10000/minute"
os.environ["RATE_LIMIT_WRITE"] = "10000/minute"

from app import app  # noqa: E402
from models import init_db, _get_db  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_db():
    """Reset user data before every test.

    The achievement catalog is reference data and stays seeded.
    """
    init_db()
    conn = _get_db()
    for table in ("user_achievements", "journeys", "users"):
        conn.execute(f"DELETE FROM {table}")
    conn.commit()
    conn.close()
    yield


@pytest.fixture()
def client():
    """Flask test client with CSRF disabled (we're testing logic, not CSRF)."""
    app.config["TESTING"] = True
    app.config["WTF_CSRF_ENABLED"] = False
    with app.test_client() as c:
        yield c


@pytest.fixture()
def user_client(client):
    """Test client signed in as a freshly registered user."""
    resp = client.post("/api/users", json={"name": "Ada", "email": "ada@example.com"})
    assert resp.status_code == 201
    client.user_id = resp.get_json()["data"]["id"]
    return client
