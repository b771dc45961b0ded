"""User model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Enum as SQLEnum, String

from taskapi.database import Base
from taskapi.models.identifiers import new_id


def normalize_email(email: str) -> str:
    """Canonical form used for storing and looking up emails."""
    return email.strip().lower()


class UserRole(str, Enum):
    """Privilege levels for users."""

    ADMIN = "admin"
    CONTRIBUTOR = "contributor"
    VIEWER = "viewer"


class User(Base):
    """A person tasks can be assigned to."""

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone_number = Column(String(64), nullable=False)
    role = Column(
        SQLEnum(
            UserRole,
            name="user_role",
            values_callable=lambda roles: [role.value for role in roles],
            create_constraint=True,
        ),
        default=UserRole.CONTRIBUTOR,
        nullable=False,
    )
    profile_picture = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    # Mirror of task_assignments rows for this user (task IDs)
    assigned_tasks = Column(JSON, default=list, nullable=False)

    def __repr__(self) -> str:
        """String representation of User."""
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"


__all__ = ["User", "UserRole", "normalize_email"]
