"""Join table linking tasks and users (many-to-many)."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from taskapi.database import Base


class TaskAssignment(Base):
    """One row per (task, user) pair; source of truth for assignments."""

    __tablename__ = "task_assignments"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="ux_task_assignments_task_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(String(32), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_at = Column(DateTime, default=datetime.now, nullable=False)
    # GitHub login of the session that created the assignment
    assigned_by = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<TaskAssignment(task_id={self.task_id}, user_id={self.user_id})>"


__all__ = ["TaskAssignment"]
