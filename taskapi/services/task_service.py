"""Service for task business logic."""

from datetime import datetime
import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from taskapi.database import storage_errors
from taskapi.errors import NotFoundError, ValidationError
from taskapi.models.identifiers import parse_id
from taskapi.models.task import Task
from taskapi.services.assignment_service import AssignmentService

if TYPE_CHECKING:
    from taskapi.schemas.task import TaskCreate, TaskUpdate

logger = logging.getLogger("taskapi.tasks")

NULLABLE_FIELDS = frozenset({"due_date"})


class TaskService:
    """Service for managing tasks."""

    @staticmethod
    def get_all_tasks(db: Session) -> list[Task]:
        """Get all tasks, oldest first."""
        with storage_errors(db, "fetching tasks"):
            return db.query(Task).order_by(Task.created_at).all()

    @staticmethod
    def get_task(db: Session, task_id: str) -> Task:
        """Get a task by ID.

        Raises:
            ValidationError: If the ID is malformed ("Invalid task ID format").
            NotFoundError: If no task has this ID.
        """
        task_id = parse_id(task_id, "task")
        with storage_errors(db, "fetching task"):
            task = db.query(Task).filter(Task.id == task_id).first()
        if task is None:
            raise NotFoundError("Task not found")
        return task

    @staticmethod
    def create_task(db: Session, task_data: "TaskCreate") -> Task:
        """Create a task; status and priority default to pending/medium."""
        task = Task(**task_data.model_dump(), assigned_users=[], created_at=datetime.now())
        with storage_errors(db, "creating task"):
            db.add(task)
            db.commit()
            db.refresh(task)
        logger.info(
            "Created task id=%s status=%s priority=%s",
            task.id,
            task.status.value,
            task.priority.value,
        )
        return task

    @staticmethod
    def update_task(db: Session, task_id: str, task_data: "TaskUpdate") -> int:
        """Merge the supplied fields into a task and stamp `updated_at`.

        Returns:
            1 if any stored value changed, otherwise 0.
        """
        task_id = parse_id(task_id, "task")
        update_data = {
            key: value
            for key, value in task_data.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELDS
        }
        if not update_data:
            raise ValidationError(
                "No valid fields provided for update",
                allowedFields=sorted(type(task_data).model_fields),
            )

        with storage_errors(db, "updating task"):
            task = db.query(Task).filter(Task.id == task_id).first()
            if task is None:
                raise NotFoundError("Task not found")

            changed = {key: value for key, value in update_data.items() if getattr(task, key) != value}
            if not changed:
                return 0

            for key, value in changed.items():
                setattr(task, key, value)
            task.updated_at = datetime.now()
            db.commit()
        logger.info("Updated task id=%s fields=%s", task_id, sorted(changed))
        return 1

    @staticmethod
    def delete_task(db: Session, task_id: str) -> int:
        """Delete a task together with its assignments."""
        task_id = parse_id(task_id, "task")
        with storage_errors(db, "deleting task"):
            task = db.query(Task).filter(Task.id == task_id).first()
            if task is None:
                raise NotFoundError("Task not found")
            removed = AssignmentService.detach_task(db, task)
            db.delete(task)
            db.commit()
        logger.info("Deleted task id=%s (removed %s assignments)", task_id, removed)
        return 1
