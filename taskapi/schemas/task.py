"""Pydantic schemas for Task model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from taskapi.models.task import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, TaskPriority, TaskStatus
from taskapi.schemas.common import drop_identity_fields


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH, description="Title of the task")
    description: str = Field(
        ...,
        min_length=1,
        max_length=DESCRIPTION_MAX_LENGTH,
        description="Detailed description of the task",
    )
    status: TaskStatus = Field(TaskStatus.PENDING, description="Current status of the task")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Priority level of the task")
    due_date: datetime | None = Field(None, description="Task deadline")

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class TaskUpdate(BaseModel):
    """Schema for updating a task. Every field is optional."""

    title: str | None = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(None, min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def strip_identity(cls, data: Any) -> Any:
        """Ignore `id`/`_id` keys; identifiers cannot be changed."""
        return drop_identity_fields(data)


class TaskResponse(BaseModel):
    """Schema returned from API."""

    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    assigned_users: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


__all__ = ["TaskCreate", "TaskUpdate", "TaskResponse"]
