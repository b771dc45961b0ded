"""Pydantic schemas for task assignment endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model whose JSON keys are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssignUsersRequest(CamelModel):
    """Body of `POST /api/tasks/{id}/assign`."""

    user_emails: list[str] = Field(
        ...,
        min_length=1,
        description="Emails of the users to assign",
    )

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class AssignedUser(BaseModel):
    """User included in an assignment result."""

    email: str
    name: str


class AssignResponse(CamelModel):
    """Result of assigning users to a task."""

    message: str
    task_id: str
    assigned_users: list[AssignedUser]


class Assignee(CamelModel):
    """One row of a task's assignee list."""

    user_id: str
    name: str
    email: str
    assigned_at: datetime = Field(..., alias="assigned_at")


class AssigneeList(CamelModel):
    """Assignees of a task with a denormalized count."""

    task_id: str
    task_title: str
    assignee_count: int
    assignees: list[Assignee]


class RemovalData(CamelModel):
    task_id: str
    user_id: str
    user_email: str | None = None


class RemovalResponse(BaseModel):
    """Confirmation that a user was removed from a task."""

    success: bool = True
    message: str
    data: RemovalData


__all__ = [
    "AssignUsersRequest",
    "AssignedUser",
    "AssignResponse",
    "Assignee",
    "AssigneeList",
    "RemovalData",
    "RemovalResponse",
]
