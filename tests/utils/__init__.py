"""Shared helpers for the test suite."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from taskapi.auth import require_session
from taskapi.database import enable_sqlite_transactions

__all__ = [
    "SESSION_USER",
    "TABLES",
    "clear_tables",
    "create_sqlite_engine",
    "test_client_with_session",
]

# Identity injected in place of a GitHub login
SESSION_USER: dict[str, Any] = {"id": 4242, "login": "octotester", "name": "Octo Tester"}

# Child tables first so deletes never trip foreign keys
TABLES = ("task_assignments", "tasks", "users")


def create_sqlite_engine(path: Path | None = None) -> tuple[Engine, sessionmaker]:
    """Create a SQLite engine and a session factory.

    Without ``path`` the database lives in memory and StaticPool keeps a
    single connection so every session sees it. With ``path`` the database is
    a file and each session gets its own connection, as in production.
    """

    from sqlalchemy.pool import StaticPool

    if path is None:
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    else:
        engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
    enable_sqlite_transactions(engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return engine, session_factory


def clear_tables(session: Session) -> None:
    """Delete every row so each test starts from an empty database."""

    session.rollback()
    for table in TABLES:
        session.execute(text(f"DELETE FROM {table}"))
    session.commit()


@contextmanager
def test_client_with_session(
    app,
    dependency: Callable[..., Generator[Session, None, None]],
    session: Session,
    user: dict[str, Any] | None = SESSION_USER,
) -> Generator[TestClient, None, None]:
    """Provide a TestClient bound to ``session`` and, unless ``user`` is None, logged in."""

    def override_dependency() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[dependency] = override_dependency
    if user is not None:
        app.dependency_overrides[require_session] = lambda: user
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


test_client_with_session.__test__ = False  # type: ignore[attr-defined]
