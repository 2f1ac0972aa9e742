"""
Test fixtures for inkwell tests.

Provides database session fixtures, users, auth headers and a TestClient
wired to an in-memory database.
"""

import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256-signing")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RUN_SCHEDULER", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from datetime import timedelta
from typing import Any, Callable, Dict, Generator
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import StaticPool

import inkwell.models  # noqa: F401  (registers tables)
from inkwell.core import security
from inkwell.core.jwt import create_access_token
from inkwell.models.post import Post
from inkwell.models.user import User
from inkwell.services import lifecycle


TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def test_session(test_engine) -> Generator[Session, None, None]:
    """Provide a test database session."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(scope="function")
def client(test_engine):
    """Create test client with test database."""
    from inkwell.db import get_session
    from inkwell.main import app

    def override_get_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(test_session: Session) -> Callable[..., User]:
    """Factory for users; the password is always "<local part>-password"."""

    def _make(email: str, is_superuser: bool = False, **fields: Any) -> User:
        user = User(
            email=email,
            hashed_password=security.get_password_hash(f"{email.split('@')[0]}-password"),
            is_superuser=is_superuser,
            **fields,
        )
        test_session.add(user)
        test_session.commit()
        test_session.refresh(user)
        return user

    return _make


@pytest.fixture
def superuser(make_user) -> User:
    """An admin: may create, edit and publish posts."""
    return make_user("admin@example.com", is_superuser=True, display_name="Admin")


@pytest.fixture
def regular_user(make_user) -> User:
    return make_user("reader@example.com")


@pytest.fixture
def auth_headers(superuser: User) -> dict:
    token = create_access_token(subject=superuser.email, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def regular_auth_headers(regular_user: User) -> dict:
    token = create_access_token(subject=regular_user.email, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


def text_block(words: int, word: str = "word") -> Dict[str, Any]:
    return {"type": "text", "content": "<p>" + " ".join([word] * words) + "</p>"}


def image_block(image_id: int = 1) -> Dict[str, Any]:
    return {"type": "image", "image_id": image_id, "alt": "diagram"}


def post_data(**overrides: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "title": "Hello World",
        "excerpt": "A first post",
        "tags": ["intro"],
        "content": [text_block(10)],
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_post(test_session: Session) -> Callable[..., Post]:
    """Factory creating posts through the lifecycle engine."""

    def _make(**overrides: Any) -> Post:
        return lifecycle.create_draft(test_session, post_data(**overrides))

    return _make
