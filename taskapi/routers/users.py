"""API router for users."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskapi.auth import require_session
from taskapi.database import get_db
from taskapi.schemas.common import DeleteResult, UpdateResult
from taskapi.schemas.user import UserCreate, UserCreated, UserResponse, UserUpdate
from taskapi.services.user_service import UserService

router = APIRouter()


@router.get("", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)) -> list[UserResponse]:
    """List all users."""
    users = UserService.get_all_users(db)
    return [UserResponse.model_validate(user) for user in users]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)) -> UserResponse:
    """Get a single user."""
    return UserResponse.model_validate(UserService.get_user(db, user_id))


@router.post(
    "",
    response_model=UserCreated,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_session)],
)
def create_user(user: UserCreate, db: Session = Depends(get_db)) -> UserCreated:
    """Create a new user. Emails must be unique."""
    created = UserService.create_user(db, user)
    return UserCreated(
        message="User created successfully",
        id=created.id,
        user=UserResponse.model_validate(created),
    )


@router.put("/{user_id}", response_model=UpdateResult, dependencies=[Depends(require_session)])
def update_user(user_id: str, user_update: UserUpdate, db: Session = Depends(get_db)) -> UpdateResult:
    """Update a user."""
    modified = UserService.update_user(db, user_id, user_update)
    return UpdateResult(message="User updated successfully", modified_count=modified)


@router.delete("/{user_id}", response_model=DeleteResult, dependencies=[Depends(require_session)])
def delete_user(user_id: str, db: Session = Depends(get_db)) -> DeleteResult:
    """Delete a user and its task assignments."""
    deleted = UserService.delete_user(db, user_id)
    return DeleteResult(message="User deleted successfully", deleted_count=deleted)
