"""Unit tests for users API router."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from taskapi.database import Base, get_db
from taskapi.main import app
from taskapi.schemas.user import UserCreate
from taskapi.services.user_service import UserService
from tests.utils import clear_tables, create_sqlite_engine, test_client_with_session


engine, SessionLocal = create_sqlite_engine()

ANN = {"name": "Ann", "email": "ann@x.com", "phone_number": "555"}


@pytest.fixture(scope="module")
def db_setup() -> Generator[None, None, None]:
    """Create test database schema once per module."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_setup: None) -> Generator[Session, None, None]:
    """Provide a session over empty tables."""
    db = SessionLocal()
    try:
        clear_tables(db)
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Client with a logged-in session."""
    with test_client_with_session(app, get_db, db_session) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def anonymous_client(db_session: Session) -> Generator[TestClient, None, None]:
    """Client without a session."""
    with test_client_with_session(app, get_db, db_session, user=None) as test_client:
        yield test_client


class TestUsersRouter:
    """Tests for /api/users."""

    def test_create_user(self, client: TestClient) -> None:
        response = client.post("/api/users", json=ANN)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User created successfully"
        assert body["id"] == body["user"]["id"]
        assert body["user"]["role"] == "contributor"
        assert body["user"]["assigned_tasks"] == []

    def test_create_user_duplicate_email(self, client: TestClient) -> None:
        assert client.post("/api/users", json=ANN).status_code == 201

        response = client.post("/api/users", json={**ANN, "name": "Ann Again"})

        assert response.status_code == 400
        assert response.json()["message"] == "Email already registered"

    def test_create_user_email_case_insensitive(self, client: TestClient) -> None:
        """Test that emails are stored lowercased so case variants collide."""
        response = client.post("/api/users", json={**ANN, "email": "Ann@X.com"})

        assert response.status_code == 201
        assert response.json()["user"]["email"] == "ann@x.com"
        assert client.post("/api/users", json={**ANN, "email": "ANN@x.COM"}).status_code == 400

    def test_create_user_missing_fields(self, client: TestClient) -> None:
        """Test that every missing required field is named."""
        response = client.post("/api/users", json={"name": "Ann"})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "email and phone_number are required"
        assert body["required"] == ["email", "phone_number"]

    def test_create_user_blank_field_counts_as_missing(self, client: TestClient) -> None:
        response = client.post("/api/users", json={**ANN, "name": "   "})

        assert response.status_code == 400
        assert response.json()["required"] == ["name"]

    def test_create_user_invalid_role(self, client: TestClient) -> None:
        response = client.post("/api/users", json={**ANN, "role": "owner"})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid role value"
        assert body["allowedValues"] == ["admin", "contributor", "viewer"]

    def test_create_user_unknown_field(self, client: TestClient) -> None:
        response = client.post("/api/users", json={**ANN, "nickname": "annie"})

        assert response.status_code == 400
        assert response.json()["unknownFields"] == ["nickname"]

    def test_create_user_requires_session(self, anonymous_client: TestClient) -> None:
        response = anonymous_client.post("/api/users", json=ANN)

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Please authenticate using GitHub to access this resource"

    def test_list_and_get_without_session(self, anonymous_client: TestClient, db_session: Session) -> None:
        """Test that reads are public."""
        user_id = UserService.create_user(db_session, UserCreate(**ANN)).id

        listed = anonymous_client.get("/api/users")
        fetched = anonymous_client.get(f"/api/users/{user_id}")

        assert listed.status_code == 200
        assert [user["email"] for user in listed.json()] == ["ann@x.com"]
        assert fetched.status_code == 200
        assert fetched.json()["name"] == "Ann"

    def test_get_user_not_found(self, client: TestClient) -> None:
        response = client.get(f"/api/users/{'0' * 32}")

        assert response.status_code == 404
        assert response.json() == {"message": "User not found"}

    def test_get_user_malformed_id(self, client: TestClient) -> None:
        response = client.get("/api/users/12345")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid user ID format"

    def test_update_user(self, client: TestClient) -> None:
        user_id = client.post("/api/users", json=ANN).json()["id"]

        response = client.put(f"/api/users/{user_id}", json={"phone_number": "999", "_id": "ignored"})

        assert response.status_code == 200
        assert response.json() == {"message": "User updated successfully", "modifiedCount": 1}
        assert client.get(f"/api/users/{user_id}").json()["phone_number"] == "999"

    def test_update_user_nothing_to_change(self, client: TestClient) -> None:
        user_id = client.post("/api/users", json=ANN).json()["id"]

        response = client.put(f"/api/users/{user_id}", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "No valid fields provided for update"

    def test_update_user_not_found(self, client: TestClient) -> None:
        response = client.put(f"/api/users/{'a' * 32}", json={"name": "Nobody"})

        assert response.status_code == 404

    def test_delete_user(self, client: TestClient) -> None:
        user_id = client.post("/api/users", json=ANN).json()["id"]

        response = client.delete(f"/api/users/{user_id}")

        assert response.status_code == 200
        assert response.json() == {"message": "User deleted successfully", "deletedCount": 1}
        assert client.get(f"/api/users/{user_id}").status_code == 404

    def test_delete_user_requires_session(self, anonymous_client: TestClient) -> None:
        assert anonymous_client.delete(f"/api/users/{'a' * 32}").status_code == 401
