"""Unit tests for AssignmentService."""

from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import OperationalError

from taskapi.database import Base
from taskapi.errors import NotFoundError, StorageError, ValidationError
from taskapi.models import Task, TaskAssignment, User
from taskapi.schemas.task import TaskCreate
from taskapi.schemas.user import UserCreate
from taskapi.services.assignment_service import AssignmentService
from taskapi.services.task_service import TaskService
from taskapi.services.user_service import UserService
from tests.utils import clear_tables, create_sqlite_engine

if TYPE_CHECKING:
    from pytest_mock.plugin import MockerFixture
    from sqlalchemy.orm import Session


engine, SessionLocal = create_sqlite_engine()


@pytest.fixture(scope="module")
def db_setup() -> Generator[None, None, None]:
    """Create test database schema once per module."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_setup: None) -> Generator["Session", None, None]:
    """Provide a session over empty tables."""
    db = SessionLocal()
    try:
        clear_tables(db)
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture
def task(db_session: "Session") -> Task:
    return TaskService.create_task(db_session, TaskCreate(title="Ship release", description="cut v1"))


@pytest.fixture
def ann(db_session: "Session") -> User:
    return UserService.create_user(db_session, UserCreate(name="Ann", email="ann@x.com", phone_number="555"))


@pytest.fixture
def bob(db_session: "Session") -> User:
    return UserService.create_user(db_session, UserCreate(name="Bob", email="bob@x.com", phone_number="556"))


def _assignment_count(db: "Session", task_id: str) -> int:
    return db.query(TaskAssignment).filter(TaskAssignment.task_id == task_id).count()


class TestAssign:
    """Tests for AssignmentService.assign."""

    def test_assign_writes_row_and_mirrors(self, db_session: "Session", task: Task, ann: User) -> None:
        result = AssignmentService.assign(db_session, task.id, ["ann@x.com"], assigned_by="octotester")

        assert result.created == 1
        assert [user.email for user in result.users] == ["ann@x.com"]
        row = db_session.query(TaskAssignment).one()
        assert (row.task_id, row.user_id, row.assigned_by) == (task.id, ann.id, "octotester")

        db_session.expire_all()
        assert db_session.get(Task, task.id).assigned_users == [ann.id]
        assert db_session.get(User, ann.id).assigned_tasks == [task.id]

    def test_assign_twice_is_idempotent(self, db_session: "Session", task: Task, ann: User) -> None:
        """Test that repeating an assignment keeps exactly one record and one mirror entry."""
        AssignmentService.assign(db_session, task.id, ["ann@x.com"])
        second = AssignmentService.assign(db_session, task.id, ["ann@x.com"])

        assert second.created == 0
        assert _assignment_count(db_session, task.id) == 1
        db_session.expire_all()
        assert db_session.get(Task, task.id).assigned_users == [ann.id]
        assert db_session.get(User, ann.id).assigned_tasks == [task.id]

    def test_assign_duplicate_emails_in_request(self, db_session: "Session", task: Task, ann: User) -> None:
        result = AssignmentService.assign(db_session, task.id, ["ann@x.com", "ann@x.com"])

        assert result.created == 1
        assert len(result.users) == 1

    def test_assign_keeps_request_order(
        self, db_session: "Session", task: Task, ann: User, bob: User
    ) -> None:
        result = AssignmentService.assign(db_session, task.id, ["bob@x.com", "ann@x.com"])

        assert [user.name for user in result.users] == ["Bob", "Ann"]

    def test_assign_unknown_email_writes_nothing(self, db_session: "Session", task: Task, ann: User) -> None:
        """Test that one unknown email fails the whole request before any write."""
        with pytest.raises(ValidationError) as exc_info:
            AssignmentService.assign(db_session, task.id, ["ann@x.com", "ghost@x.com"])

        assert exc_info.value.message == "Some users were not found"
        assert exc_info.value.details["foundEmails"] == ["ann@x.com"]
        assert exc_info.value.details["missingEmails"] == ["ghost@x.com"]
        assert _assignment_count(db_session, task.id) == 0
        db_session.expire_all()
        assert db_session.get(Task, task.id).assigned_users == []
        assert db_session.get(User, ann.id).assigned_tasks == []

    def test_assign_matches_email_case_insensitively(self, db_session: "Session", task: Task, ann: User) -> None:
        result = AssignmentService.assign(db_session, task.id, [" ANN@X.com "])

        assert [user.id for user in result.users] == [ann.id]
        assert result.created == 1

    def test_assign_concurrent_duplicate_counts_as_assigned(
        self, db_session: "Session", task: Task, ann: User, mocker: "MockerFixture"
    ) -> None:
        """Test that a pair inserted by another request after the pre-check is not an error."""
        db_session.add(TaskAssignment(task_id=task.id, user_id=ann.id))
        db_session.commit()
        mocker.patch.object(AssignmentService, "_assigned_user_ids", return_value=set())

        result = AssignmentService.assign(db_session, task.id, ["ann@x.com"])

        assert result.created == 0
        assert _assignment_count(db_session, task.id) == 1
        db_session.expire_all()
        assert db_session.get(Task, task.id).assigned_users == [ann.id]
        assert db_session.get(User, ann.id).assigned_tasks == [task.id]

    def test_assign_failure_after_insert_leaves_no_row(self, tmp_path: Path, mocker: "MockerFixture") -> None:
        """Test that a failure after the join row is written rolls the row back too."""
        file_engine, file_sessions = create_sqlite_engine(tmp_path / "tasks.db")
        Base.metadata.create_all(bind=file_engine)
        try:
            with file_sessions() as db:
                task_id = TaskService.create_task(db, TaskCreate(title="Ship release", description="cut v1")).id
                UserService.create_user(db, UserCreate(name="Ann", email="ann@x.com", phone_number="555"))
                mocker.patch(
                    "taskapi.services.assignment_service._union",
                    side_effect=OperationalError("UPDATE tasks", {}, Exception("disk I/O error")),
                )

                with pytest.raises(StorageError):
                    AssignmentService.assign(db, task_id, ["ann@x.com"])

            with file_sessions() as db:
                assert _assignment_count(db, task_id) == 0
                assert db.get(Task, task_id).assigned_users == []
        finally:
            file_engine.dispose()

    def test_assign_empty_list(self, db_session: "Session", task: Task) -> None:
        with pytest.raises(ValidationError):
            AssignmentService.assign(db_session, task.id, [])

    def test_assign_missing_task(self, db_session: "Session", ann: User) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            AssignmentService.assign(db_session, "9" * 32, ["ann@x.com"])
        assert exc_info.value.message == "Task not found"

    def test_assign_malformed_task_id(self, db_session: "Session") -> None:
        with pytest.raises(ValidationError) as exc_info:
            AssignmentService.assign(db_session, "nope", ["ann@x.com"])
        assert exc_info.value.message == "Invalid task ID format"


class TestUnassign:
    """Tests for AssignmentService.unassign."""

    def test_unassign_by_email(self, db_session: "Session", task: Task, ann: User) -> None:
        AssignmentService.assign(db_session, task.id, ["ann@x.com"])

        removal = AssignmentService.unassign(db_session, task.id, "ann@x.com")

        assert (removal.task_id, removal.user_id, removal.user_email) == (task.id, ann.id, "ann@x.com")
        assert _assignment_count(db_session, task.id) == 0
        db_session.expire_all()
        assert db_session.get(Task, task.id).assigned_users == []
        assert db_session.get(User, ann.id).assigned_tasks == []

    def test_unassign_by_email_any_case(self, db_session: "Session", task: Task, ann: User) -> None:
        AssignmentService.assign(db_session, task.id, ["ann@x.com"])

        removal = AssignmentService.unassign(db_session, task.id, "Ann@X.COM")

        assert removal.user_id == ann.id
        assert _assignment_count(db_session, task.id) == 0

    def test_unassign_by_id_keeps_other_users(
        self, db_session: "Session", task: Task, ann: User, bob: User
    ) -> None:
        AssignmentService.assign(db_session, task.id, ["ann@x.com", "bob@x.com"])

        AssignmentService.unassign(db_session, task.id, ann.id)

        db_session.expire_all()
        assert db_session.get(Task, task.id).assigned_users == [bob.id]
        assert _assignment_count(db_session, task.id) == 1

    def test_unassign_not_assigned(self, db_session: "Session", task: Task, ann: User) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            AssignmentService.unassign(db_session, task.id, "ann@x.com")
        assert exc_info.value.message == "User is not assigned to this task"

    def test_unassign_unknown_email(self, db_session: "Session", task: Task) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            AssignmentService.unassign(db_session, task.id, "ghost@x.com")
        assert exc_info.value.message == "User not found"

    def test_unassign_malformed_user_id(self, db_session: "Session", task: Task) -> None:
        with pytest.raises(ValidationError) as exc_info:
            AssignmentService.unassign(db_session, task.id, "ann")
        assert exc_info.value.message == "Invalid user ID format"

    def test_reassign_after_unassign(self, db_session: "Session", task: Task, ann: User) -> None:
        """Test the assigned, unassigned, assigned transitions for one pair."""
        AssignmentService.assign(db_session, task.id, ["ann@x.com"])
        AssignmentService.unassign(db_session, task.id, "ann@x.com")

        result = AssignmentService.assign(db_session, task.id, ["ann@x.com"])

        assert result.created == 1
        assert _assignment_count(db_session, task.id) == 1


class TestGetAssignees:
    """Tests for AssignmentService.get_assignees."""

    def test_round_trip(self, db_session: "Session", task: Task, ann: User) -> None:
        """Test that an assigned user is listed once with a past timestamp."""
        AssignmentService.assign(db_session, task.id, ["ann@x.com"])

        listing = AssignmentService.get_assignees(db_session, task.id)

        assert listing.task.title == "Ship release"
        assert len(listing.rows) == 1
        assignment, user = listing.rows[0]
        assert user.email == "ann@x.com"
        assert assignment.assigned_at <= datetime.now()

    def test_empty(self, db_session: "Session", task: Task) -> None:
        assert AssignmentService.get_assignees(db_session, task.id).rows == []

    def test_missing_task(self, db_session: "Session") -> None:
        with pytest.raises(NotFoundError):
            AssignmentService.get_assignees(db_session, "1" * 32)


class TestReconcileMirrors:
    """Tests for AssignmentService.reconcile_mirrors."""

    def test_rebuilds_drifted_mirrors(self, db_session: "Session", task: Task, ann: User, bob: User) -> None:
        AssignmentService.assign(db_session, task.id, ["ann@x.com"])
        # Simulate records written without the mirrors
        task.assigned_users = [bob.id, bob.id]
        ann.assigned_tasks = []
        db_session.commit()

        report = AssignmentService.reconcile_mirrors(db_session)

        assert report.tasks_repaired == 1
        assert report.users_repaired == 1
        assert report.orphans_removed == 0
        db_session.expire_all()
        assert db_session.get(Task, task.id).assigned_users == [ann.id]
        assert db_session.get(User, ann.id).assigned_tasks == [task.id]

    def test_removes_orphan_rows(self, db_session: "Session", task: Task) -> None:
        db_session.add(TaskAssignment(task_id=task.id, user_id="e" * 32, assigned_at=datetime.now()))
        db_session.commit()

        report = AssignmentService.reconcile_mirrors(db_session)

        assert report.orphans_removed == 1
        assert _assignment_count(db_session, task.id) == 0

    def test_consistent_data_untouched(self, db_session: "Session", task: Task, ann: User) -> None:
        AssignmentService.assign(db_session, task.id, ["ann@x.com"])

        report = AssignmentService.reconcile_mirrors(db_session)

        assert (report.tasks_repaired, report.users_repaired, report.orphans_removed) == (0, 0, 0)
