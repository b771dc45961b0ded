"""Business logic services."""

from taskapi.services.assignment_service import AssignmentService
from taskapi.services.task_service import TaskService
from taskapi.services.user_service import UserService

__all__ = ["AssignmentService", "TaskService", "UserService"]
