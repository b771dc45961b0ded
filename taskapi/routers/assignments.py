"""API router for assigning users to tasks."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskapi.auth import require_session
from taskapi.database import get_db
from taskapi.schemas.assignment import (
    AssignResponse,
    AssignUsersRequest,
    AssignedUser,
    Assignee,
    AssigneeList,
    RemovalData,
    RemovalResponse,
)
from taskapi.services.assignment_service import AssignmentService

router = APIRouter()


@router.post("/{task_id}/assign", response_model=AssignResponse)
def assign_users(
    task_id: str,
    payload: AssignUsersRequest,
    db: Session = Depends(get_db),
    session_user: dict[str, Any] = Depends(require_session),
) -> AssignResponse:
    """Assign users, identified by email, to a task.

    Unknown emails fail the whole request; users already assigned are kept as is.
    """
    result = AssignmentService.assign(
        db,
        task_id,
        payload.user_emails,
        assigned_by=session_user.get("login"),
    )
    return AssignResponse(
        message="Users assigned successfully",
        task_id=result.task.id,
        assigned_users=[AssignedUser(email=user.email, name=user.name) for user in result.users],
    )


@router.get(
    "/{task_id}/assignees",
    response_model=AssigneeList,
    dependencies=[Depends(require_session)],
)
@router.get(
    "/{task_id}/users",
    response_model=AssigneeList,
    dependencies=[Depends(require_session)],
)
def get_task_assignees(task_id: str, db: Session = Depends(get_db)) -> AssigneeList:
    """List the users assigned to a task."""
    listing = AssignmentService.get_assignees(db, task_id)
    assignees = [
        Assignee(
            user_id=user.id,
            name=user.name,
            email=user.email,
            assigned_at=assignment.assigned_at,
        )
        for assignment, user in listing.rows
    ]
    return AssigneeList(
        task_id=listing.task.id,
        task_title=listing.task.title,
        assignee_count=len(assignees),
        assignees=assignees,
    )


@router.delete(
    "/{task_id}/users/{user_identifier}",
    response_model=RemovalResponse,
    dependencies=[Depends(require_session)],
)
def remove_user_from_task(task_id: str, user_identifier: str, db: Session = Depends(get_db)) -> RemovalResponse:
    """Remove a user from a task. The user may be given by ID or by email."""
    removal = AssignmentService.unassign(db, task_id, user_identifier)
    return RemovalResponse(
        message="User removed from task successfully",
        data=RemovalData(
            task_id=removal.task_id,
            user_id=removal.user_id,
            user_email=removal.user_email,
        ),
    )
