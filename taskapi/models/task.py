"""Task model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Enum as SQLEnum, String, Text

from taskapi.database import Base
from taskapi.models.identifiers import new_id

TITLE_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 500


class TaskStatus(str, Enum):
    """Workflow state of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Priority level of a task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Task(Base):
    """A unit of work that users can be assigned to."""

    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False, index=True)
    description = Column(Text, nullable=False)
    status = Column(
        SQLEnum(TaskStatus, name="task_status", values_callable=_enum_values, create_constraint=True),
        default=TaskStatus.PENDING,
        nullable=False,
    )
    priority = Column(
        SQLEnum(TaskPriority, name="task_priority", values_callable=_enum_values, create_constraint=True),
        default=TaskPriority.MEDIUM,
        nullable=False,
    )
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    # Mirror of task_assignments rows for this task (user IDs, no duplicates)
    assigned_users = Column(JSON, default=list, nullable=False)

    def __repr__(self) -> str:
        """String representation of Task."""
        return f"<Task(id={self.id}, title='{self.title}', status={self.status})>"


__all__ = ["Task", "TaskStatus", "TaskPriority", "TITLE_MAX_LENGTH", "DESCRIPTION_MAX_LENGTH"]
