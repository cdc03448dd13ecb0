"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
  - TEST_DATABASE_URL selects the database; unset, an in-memory SQLite
    database is used, so the suite runs without a server.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)    → member dict
  - login(client, ...)       → dict with member + tokens + tokenFamily
  - refresh(client, token)   → HTTP response
  - auth_headers(token)      → {"Authorization": "Bearer <token>"}

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from backend.app import create_app
from backend.app.extensions import db as _db

PASSWORD = "P@ss1234"


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once for the session."""
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test.

    refresh_tokens is deleted before members (CASCADE would handle it on
    PostgreSQL, but SQLite does not enforce FKs by default).
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test
        _db.session.execute(text("DELETE FROM refresh_tokens"))
        _db.session.execute(text("DELETE FROM members"))
        _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    email: str = "a@x.com",
    password: str = PASSWORD,
    member_name: str = "Alice",
) -> dict:
    """Registers a member and returns the member dict."""
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "memberName": member_name,
            "memberContact": "+1 555 0100",
            "email": email,
            "password": password,
        },
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]["member"]


def login(client, email: str = "a@x.com", password: str = PASSWORD, user_agent: str = "pytest") -> dict:
    """
    Logs a member in and returns the response data dict.
    Returns: {"member": {...}, "accessToken", "refreshToken", "tokenFamily"}
    """
    resp = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
        headers={"User-Agent": user_agent},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def refresh(client, refresh_token: str):
    """Posts a refresh token in the body. Returns the HTTP response."""
    return client.post("/api/v1/auth/refresh", json={"refreshToken": refresh_token})


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def error_code(resp) -> str:
    return resp.get_json()["error"]["code"]
