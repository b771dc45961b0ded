"""Database models."""

from taskapi.models.task import Task, TaskPriority, TaskStatus
from taskapi.models.task_assignment import TaskAssignment
from taskapi.models.user import User, UserRole

__all__ = ["Task", "TaskAssignment", "TaskPriority", "TaskStatus", "User", "UserRole"]
