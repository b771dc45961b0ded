"""Service coordinating task/user assignments.

An assignment lives in three places:

- a row in ``task_assignments`` (source of truth, unique per task/user pair),
- the user ID inside ``tasks.assigned_users``,
- the task ID inside ``users.assigned_tasks``.

Every operation here writes all three in one transaction. The embedded lists
are projections of the join table; ``reconcile_mirrors`` rebuilds them when
older data has drifted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskapi.database import storage_errors
from taskapi.errors import NotFoundError, ValidationError
from taskapi.models.identifiers import parse_id
from taskapi.models.task import Task
from taskapi.models.task_assignment import TaskAssignment
from taskapi.models.user import User, normalize_email

logger = logging.getLogger("taskapi.assignments")


@dataclass(slots=True)
class AssignmentResult:
    """Users now assigned to a task after `assign`."""

    task: Task
    users: list[User]
    created: int


@dataclass(slots=True)
class RemovalResult:
    task_id: str
    user_id: str
    user_email: str | None


@dataclass(slots=True)
class AssigneeListing:
    """A task with its join rows and the matching users, in insertion order."""

    task: Task
    rows: list[tuple[TaskAssignment, User]] = field(default_factory=list)


@dataclass(slots=True)
class ReconcileReport:
    tasks_repaired: int = 0
    users_repaired: int = 0
    orphans_removed: int = 0


def _union(current: Iterable[str] | None, additions: Iterable[str]) -> list[str]:
    """Append new values keeping order and dropping duplicates."""
    return list(dict.fromkeys([*(current or []), *additions]))


def _without(current: Iterable[str] | None, value: str) -> list[str]:
    return [item for item in (current or []) if item != value]


def _mirror_differs(current: list[str] | None, expected: list[str]) -> bool:
    current = list(current or [])
    return set(current) != set(expected) or len(current) != len(set(current))


class AssignmentService:
    """Keeps the join table and the embedded mirrors consistent."""

    @staticmethod
    def _require_task(db: Session, task_id: str) -> Task:
        task = db.query(Task).filter(Task.id == task_id).first()
        if task is None:
            raise NotFoundError("Task not found")
        return task

    @staticmethod
    def _assigned_user_ids(db: Session, task_id: str, user_ids: list[str]) -> set[str]:
        """IDs among ``user_ids`` that already have a join row for the task."""
        return {
            user_id
            for (user_id,) in db.query(TaskAssignment.user_id).filter(
                TaskAssignment.task_id == task_id,
                TaskAssignment.user_id.in_(user_ids),
            )
        }

    @staticmethod
    def assign(
        db: Session,
        task_id: str,
        user_emails: Iterable[str],
        assigned_by: str | None = None,
    ) -> AssignmentResult:
        """Assign users (by email) to a task.

        All emails must resolve to existing users before anything is written;
        already-assigned users are left as they are.

        Raises:
            ValidationError: Malformed task ID, empty email list, or unknown
                emails (the error lists ``foundEmails`` and ``missingEmails``).
            NotFoundError: The task does not exist.
        """
        task_id = parse_id(task_id, "task")
        requested = list(dict.fromkeys(normalize_email(email) for email in user_emails if email and email.strip()))
        if not requested:
            raise ValidationError("userEmails must be a non-empty array of email addresses")

        with storage_errors(db, "assigning users to task"):
            task = AssignmentService._require_task(db, task_id)

            users = db.query(User).filter(User.email.in_(requested)).all()
            if len(users) != len(requested):
                found = {normalize_email(user.email) for user in users}
                raise ValidationError(
                    "Some users were not found",
                    foundEmails=[email for email in requested if email in found],
                    missingEmails=[email for email in requested if email not in found],
                )
            # Keep the caller's order in the response
            order = {email: index for index, email in enumerate(requested)}
            users.sort(key=lambda user: order.get(normalize_email(user.email), len(order)))
            user_ids = [user.id for user in users]

            already_assigned = AssignmentService._assigned_user_ids(db, task_id, user_ids)

            created = 0
            now = datetime.now()
            for user in users:
                if user.id in already_assigned:
                    continue
                try:
                    with db.begin_nested():
                        db.add(
                            TaskAssignment(
                                task_id=task_id,
                                user_id=user.id,
                                assigned_at=now,
                                assigned_by=assigned_by,
                            )
                        )
                except IntegrityError:
                    # A concurrent request inserted the same pair first
                    logger.info("Assignment task=%s user=%s already recorded", task_id, user.id)
                    continue
                created += 1

            task.assigned_users = _union(task.assigned_users, user_ids)
            for user in users:
                user.assigned_tasks = _union(user.assigned_tasks, [task_id])

            db.commit()

        logger.info(
            "Assigned %s user(s) to task %s (%s new) by %s",
            len(users),
            task_id,
            created,
            assigned_by or "anonymous",
        )
        return AssignmentResult(task=task, users=users, created=created)

    @staticmethod
    def unassign(db: Session, task_id: str, user_identifier: str) -> RemovalResult:
        """Remove one user from a task.

        ``user_identifier`` is an email (contains ``@``) or a user ID; both are
        resolved to the user ID before touching the join table.

        Raises:
            ValidationError: Malformed task or user ID.
            NotFoundError: Task missing, user email unknown, or the user is not
                assigned to this task.
        """
        task_id = parse_id(task_id, "task")
        with storage_errors(db, "removing user from task"):
            task = AssignmentService._require_task(db, task_id)

            if "@" in user_identifier:
                user = db.query(User).filter(User.email == normalize_email(user_identifier)).first()
                if user is None:
                    raise NotFoundError("User not found")
                user_id = user.id
            else:
                user_id = parse_id(user_identifier, "user")
                user = db.query(User).filter(User.id == user_id).first()

            deleted = (
                db.query(TaskAssignment)
                .filter(TaskAssignment.task_id == task_id, TaskAssignment.user_id == user_id)
                .delete(synchronize_session=False)
            )
            if deleted == 0:
                db.rollback()
                raise NotFoundError("User is not assigned to this task")

            task.assigned_users = _without(task.assigned_users, user_id)
            user_email = None
            if user is not None:
                user.assigned_tasks = _without(user.assigned_tasks, task_id)
                user_email = user.email

            db.commit()

        logger.info("Removed user %s from task %s", user_id, task_id)
        return RemovalResult(task_id=task_id, user_id=user_id, user_email=user_email)

    @staticmethod
    def get_assignees(db: Session, task_id: str) -> AssigneeListing:
        """Return the task and one (assignment, user) pair per join row."""
        task_id = parse_id(task_id, "task")
        with storage_errors(db, "fetching task assignees"):
            task = AssignmentService._require_task(db, task_id)
            rows = (
                db.query(TaskAssignment, User)
                .join(User, User.id == TaskAssignment.user_id)
                .filter(TaskAssignment.task_id == task_id)
                .order_by(TaskAssignment.id)
                .all()
            )
        return AssigneeListing(task=task, rows=[(assignment, user) for assignment, user in rows])

    @staticmethod
    def detach_task(db: Session, task: Task) -> int:
        """Drop a task's join rows and scrub it from user mirrors.

        Does not commit; the caller deletes the task in the same transaction.
        """
        user_ids = {
            user_id
            for (user_id,) in db.query(TaskAssignment.user_id).filter(TaskAssignment.task_id == task.id)
        }
        user_ids.update(task.assigned_users or [])
        removed = (
            db.query(TaskAssignment)
            .filter(TaskAssignment.task_id == task.id)
            .delete(synchronize_session=False)
        )
        if user_ids:
            for user in db.query(User).filter(User.id.in_(user_ids)).all():
                user.assigned_tasks = _without(user.assigned_tasks, task.id)
        return removed

    @staticmethod
    def detach_user(db: Session, user: User) -> int:
        """Drop a user's join rows and scrub it from task mirrors.

        Does not commit; the caller deletes the user in the same transaction.
        """
        task_ids = {
            task_id
            for (task_id,) in db.query(TaskAssignment.task_id).filter(TaskAssignment.user_id == user.id)
        }
        task_ids.update(user.assigned_tasks or [])
        removed = (
            db.query(TaskAssignment)
            .filter(TaskAssignment.user_id == user.id)
            .delete(synchronize_session=False)
        )
        if task_ids:
            for task in db.query(Task).filter(Task.id.in_(task_ids)).all():
                task.assigned_users = _without(task.assigned_users, user.id)
        return removed

    @staticmethod
    def reconcile_mirrors(db: Session) -> ReconcileReport:
        """Rebuild every embedded mirror from the join table.

        Join rows pointing at a missing task or user are deleted first.
        """
        report = ReconcileReport()
        with storage_errors(db, "reconciling assignments"):
            tasks = db.query(Task).all()
            users = db.query(User).all()
            task_ids = {task.id for task in tasks}
            user_ids = {user.id for user in users}

            by_task: dict[str, list[str]] = {}
            by_user: dict[str, list[str]] = {}
            for row in db.query(TaskAssignment).order_by(TaskAssignment.id).all():
                if row.task_id not in task_ids or row.user_id not in user_ids:
                    db.delete(row)
                    report.orphans_removed += 1
                    continue
                by_task.setdefault(row.task_id, []).append(row.user_id)
                by_user.setdefault(row.user_id, []).append(row.task_id)

            for task in tasks:
                expected = by_task.get(task.id, [])
                if _mirror_differs(task.assigned_users, expected):
                    task.assigned_users = expected
                    report.tasks_repaired += 1
            for user in users:
                expected = by_user.get(user.id, [])
                if _mirror_differs(user.assigned_tasks, expected):
                    user.assigned_tasks = expected
                    report.users_repaired += 1

            db.commit()

        logger.info(
            "Reconciled assignments: tasks_repaired=%s users_repaired=%s orphans_removed=%s",
            report.tasks_repaired,
            report.users_repaired,
            report.orphans_removed,
        )
        return report


__all__ = [
    "AssignmentService",
    "AssignmentResult",
    "AssigneeListing",
    "ReconcileReport",
    "RemovalResult",
]
