"""Service for managing users."""

from datetime import datetime
import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskapi.database import storage_errors
from taskapi.errors import ConflictError, NotFoundError, ValidationError
from taskapi.models.identifiers import parse_id
from taskapi.models.user import User
from taskapi.services.assignment_service import AssignmentService

if TYPE_CHECKING:
    from taskapi.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger("taskapi.users")

# Columns that may be cleared with an explicit null in an update body
NULLABLE_FIELDS = frozenset({"profile_picture"})


class UserService:
    """Business logic for users."""

    @staticmethod
    def get_all_users(db: Session) -> list[User]:
        with storage_errors(db, "fetching users"):
            return db.query(User).order_by(User.created_at).all()

    @staticmethod
    def get_user(db: Session, user_id: str) -> User:
        """Get a user by ID.

        Raises:
            ValidationError: If the ID is malformed.
            NotFoundError: If no user has this ID.
        """
        user_id = parse_id(user_id, "user")
        with storage_errors(db, "fetching user"):
            user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def create_user(db: Session, user_data: "UserCreate") -> User:
        """Create a user with an empty assigned-tasks list.

        Raises:
            ConflictError: If the email is already registered.
        """
        payload = user_data.model_dump()
        with storage_errors(db, "creating user"):
            existing = db.query(User).filter(User.email == payload["email"]).first()
            if existing:
                raise ConflictError("Email already registered")

            user = User(**payload, assigned_tasks=[], created_at=datetime.now())
            db.add(user)
            try:
                db.commit()
            except IntegrityError as exc:
                # Lost a race against a concurrent signup with the same email
                db.rollback()
                raise ConflictError("Email already registered") from exc
            db.refresh(user)
        logger.info("Created user id=%s email=%s role=%s", user.id, user.email, user.role.value)
        return user

    @staticmethod
    def update_user(db: Session, user_id: str, user_data: "UserUpdate") -> int:
        """Merge the supplied fields into a user.

        Returns:
            1 if any stored value changed, otherwise 0.
        """
        user_id = parse_id(user_id, "user")
        update_data = {
            key: value
            for key, value in user_data.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELDS
        }
        if not update_data:
            raise ValidationError(
                "No valid fields provided for update",
                allowedFields=sorted(type(user_data).model_fields),
            )

        with storage_errors(db, "updating user"):
            user = db.query(User).filter(User.id == user_id).first()
            if user is None:
                raise NotFoundError("User not found")

            if "email" in update_data and update_data["email"] != user.email:
                taken = (
                    db.query(User)
                    .filter(User.email == update_data["email"], User.id != user_id)
                    .first()
                )
                if taken:
                    raise ConflictError("Email already registered")

            changed = {key: value for key, value in update_data.items() if getattr(user, key) != value}
            if not changed:
                return 0

            for key, value in changed.items():
                setattr(user, key, value)
            user.updated_at = datetime.now()
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ConflictError("Email already registered") from exc
        logger.info("Updated user id=%s fields=%s", user_id, sorted(changed))
        return 1

    @staticmethod
    def delete_user(db: Session, user_id: str) -> int:
        """Delete a user together with its assignments.

        Returns:
            Number of deleted users (always 1; a missing user raises).
        """
        user_id = parse_id(user_id, "user")
        with storage_errors(db, "deleting user"):
            user = db.query(User).filter(User.id == user_id).first()
            if user is None:
                raise NotFoundError("User not found")
            removed = AssignmentService.detach_user(db, user)
            db.delete(user)
            db.commit()
        logger.info("Deleted user id=%s (removed %s assignments)", user_id, removed)
        return 1
