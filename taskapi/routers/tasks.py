"""API router for tasks."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskapi.auth import require_session
from taskapi.database import get_db
from taskapi.schemas.common import DeleteResult, UpdateResult
from taskapi.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from taskapi.services.task_service import TaskService

router = APIRouter()


@router.get("", response_model=list[TaskResponse])
def get_tasks(db: Session = Depends(get_db)) -> list[TaskResponse]:
    """Get all tasks."""
    tasks = TaskService.get_all_tasks(db)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(task_id: str, db: Session = Depends(get_db)) -> TaskResponse:
    """Get a specific task by ID."""
    return TaskResponse.model_validate(TaskService.get_task(db, task_id))


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_session)],
)
def create_task(task: TaskCreate, db: Session = Depends(get_db)) -> TaskResponse:
    """Create a new task.

    `status` defaults to `pending` and `priority` to `medium`.
    """
    created_task = TaskService.create_task(db, task)
    return TaskResponse.model_validate(created_task)


@router.put("/{task_id}", response_model=UpdateResult, dependencies=[Depends(require_session)])
def update_task(task_id: str, task_update: TaskUpdate, db: Session = Depends(get_db)) -> UpdateResult:
    """Update a task."""
    modified = TaskService.update_task(db, task_id, task_update)
    return UpdateResult(message="Task updated successfully", modified_count=modified)


@router.delete("/{task_id}", response_model=DeleteResult, dependencies=[Depends(require_session)])
def delete_task(task_id: str, db: Session = Depends(get_db)) -> DeleteResult:
    """Delete a task and its assignments."""
    deleted = TaskService.delete_task(db, task_id)
    return DeleteResult(message="Task deleted successfully", deleted_count=deleted)
