"""
Test fixtures for the Arduino course platform.

Provides app, client, auth_client, and db fixtures with file-based SQLite.
"""

from __future__ import annotations

import pytest
from datetime import datetime

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

TEST_PASSWORD = "Testpass123"


@pytest.fixture
def store(tmp_path):
    """Store handle on a temp-file database, closed after the test."""
    from database import Database

    handle = Database(str(tmp_path / "test.db"), pool_size=5, timeout=5.0)
    yield handle
    handle.close()


@pytest.fixture
def app(store):
    """Create app with file-based SQLite for testing."""
    from app import create_app
    from werkzeug.security import generate_password_hash

    app = create_app({
        "TESTING": True,
        "DATABASE": store.path,
        "SECRET_KEY": "test-secret-key",
        "TOKEN_MAX_AGE": 3600,
    }, store=store)

    with app.app_context():
        from database import get_db

        # Seed test users
        db = get_db()
        now = datetime.now().isoformat()
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, created_at) "
            "VALUES (1, 'Test Student', 'test@example.com', ?, ?)",
            (generate_password_hash(TEST_PASSWORD), now),
        )
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, created_at) "
            "VALUES (2, 'Other Student', 'other@example.com', ?, ?)",
            (generate_password_hash(TEST_PASSWORD), now),
        )
        db.commit()

        yield app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def token(app):
    """Bearer token for user 1."""
    from auth import issue_token

    with app.app_context():
        return issue_token(1)


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_client(app, auth_headers):
    """Test client that sends user 1's bearer token on every request."""
    client = app.test_client()
    client.environ_base["HTTP_AUTHORIZATION"] = auth_headers["Authorization"]
    return client


@pytest.fixture
def db(app):
    """Direct database access for store tests."""
    with app.app_context():
        from database import get_db
        yield get_db()
