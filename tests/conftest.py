from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Generator

# Must be set before the app modules read them at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_inkwell.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-inkwell-suite-0123456789")
os.environ.setdefault("INKWELL_TIMEZONE", "UTC")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from inkwell.auth import create_access_token
from inkwell.db import Base, SessionLocal, engine
from inkwell.main import app, run_startup_tasks
from inkwell.models import Role, User, new_id


@pytest.fixture(scope="session", autouse=True)
def bootstrap() -> Generator[None, None, None]:
    db_path = Path("test_inkwell.db")
    if os.environ["DATABASE_URL"] == "sqlite:///./test_inkwell.db" and db_path.exists():
        db_path.unlink()
    run_startup_tasks()
    yield
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_tables() -> Generator[None, None, None]:
    yield
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_user(db: Session) -> Callable[..., User]:
    """Factory for persisted users; role defaults to contributor."""

    def _make_user(name: str = "Writer", role: Role = Role.CONTRIBUTOR, email: str | None = None) -> User:
        user_id = new_id()
        user = User(
            id=user_id,
            name=name,
            email=email or f"{user_id}@example.com",
            role=role.value,
            locale="en",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def admin(make_user) -> User:
    return make_user("Admin", Role.ADMIN)


@pytest.fixture()
def contributor(make_user) -> User:
    return make_user("Contributor", Role.CONTRIBUTOR)


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Bearer header for a user."""

    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers
