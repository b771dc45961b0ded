"""Pydantic request and response schemas."""

from taskapi.schemas.assignment import (
    AssignResponse,
    AssignUsersRequest,
    AssignedUser,
    Assignee,
    AssigneeList,
    RemovalData,
    RemovalResponse,
)
from taskapi.schemas.common import DeleteResult, UpdateResult
from taskapi.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from taskapi.schemas.user import UserCreate, UserCreated, UserResponse, UserUpdate

__all__ = [
    "AssignResponse",
    "AssignUsersRequest",
    "AssignedUser",
    "Assignee",
    "AssigneeList",
    "DeleteResult",
    "RemovalData",
    "RemovalResponse",
    "TaskCreate",
    "TaskResponse",
    "TaskUpdate",
    "UpdateResult",
    "UserCreate",
    "UserCreated",
    "UserResponse",
    "UserUpdate",
]
