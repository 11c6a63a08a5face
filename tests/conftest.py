"""Shared pytest fixtures for TinyCore KV tests."""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from apiflask import APIFlask
    from flask.testing import FlaskClient

    from tinycore.db.models import Application, Database, User

# Set test environment variables before importing app modules
os.environ["FLASK_ENV"] = "testing"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMITING_ENABLED"] = "false"
os.environ["ALLOW_MULTI_USER_REGISTRATION"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

TEST_PASSWORD = "password123"


# -----------------------------------------------------------------------------
# Database fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Unique database file for each test."""
    return tmp_path / "tinycore.db"


@pytest.fixture
def test_database(test_db_path: Path) -> Generator[Database]:
    """Create isolated, fully migrated test database for each test."""
    from tinycore.db.models import Database

    db = Database(db_path=test_db_path)
    yield db
    db.close()


# -----------------------------------------------------------------------------
# Flask app fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def app(test_database: Database) -> APIFlask:
    """Flask test application serving the test database."""
    from tinycore.app import create_app

    flask_app = create_app(database=test_database)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app: APIFlask) -> FlaskClient:
    """Create Flask test client."""
    return app.test_client()


# -----------------------------------------------------------------------------
# User and auth fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def make_user(test_database: Database) -> Callable[..., User]:
    """Factory creating users directly, bypassing the first-user-only gate."""
    from tinycore.auth.passwords import hash_password

    def _make_user(email: str, password: str = TEST_PASSWORD) -> User:
        return test_database.create_user(email, hash_password(password))

    return _make_user


@pytest.fixture
def test_user(make_user: Callable[..., User]) -> User:
    """The first registered user."""
    return make_user("test@example.com")


@pytest.fixture
def other_user(test_user: User, make_user: Callable[..., User]) -> User:
    """A second user, created after test_user."""
    return make_user("other@example.com")


@pytest.fixture
def auth_token(test_user: User) -> str:
    """Generate valid JWT token for test user."""
    from tinycore.auth.jwt_auth import create_token

    return create_token(test_user)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Auth headers for authenticated requests."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def other_auth_headers(other_user: User) -> dict[str, str]:
    from tinycore.auth.jwt_auth import create_token

    return {"Authorization": f"Bearer {create_token(other_user)}"}


# -----------------------------------------------------------------------------
# Application fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def test_app_record(test_database: Database) -> Application:
    """A registered application to store keys under."""
    return test_database.create_application("test-app", "Test App")
