"""User administration and profile API."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from knowledge_chakra.api.v1.auth import UserResponse, get_current_user, require_admin
from knowledge_chakra.db import get_db
from knowledge_chakra.exceptions import InvalidStateError, NotFoundError
from knowledge_chakra.logging_config import get_logger
from knowledge_chakra.models import (
    Assessment,
    Course,
    Enrollment,
    Notification,
    Submission,
    User,
    UserRole,
)
from knowledge_chakra.utils.updates import reject_null_fields

router = APIRouter()
logger = get_logger(__name__)


# === Schemas ===

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    profile_picture: Optional[str] = None


class RoleUpdate(BaseModel):
    role: UserRole


class ProfileResponse(UserResponse):
    profile_picture: Optional[str] = None


class UserListResponse(BaseModel):
    users: List[ProfileResponse]
    total: int
    page: int
    total_pages: int


class UserStatsResponse(BaseModel):
    total_users: int
    total_students: int
    total_teachers: int
    total_admins: int


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


# === API endpoints ===

@router.get("/", response_model=UserListResponse)
async def list_users(
    page: int = 1,
    limit: int = 50,
    role: Optional[UserRole] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """All users, optionally filtered by role (admin only)."""
    page = max(page, 1)
    limit = max(limit, 1)
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    total = query.count()
    users = query.order_by(User.id).offset((page - 1) * limit).limit(limit).all()
    return {
        "users": users,
        "total": total,
        "page": page,
        "total_pages": (total + limit - 1) // limit,
    }


@router.get("/teachers", response_model=List[ProfileResponse])
async def list_teachers(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return (
        db.query(User)
        .filter(User.role == UserRole.TEACHER)
        .order_by(User.last_name, User.first_name)
        .all()
    )


@router.get("/stats", response_model=UserStatsResponse)
async def get_user_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    def count(role: UserRole) -> int:
        return db.query(User).filter(User.role == role).count()

    return {
        "total_users": db.query(User).count(),
        "total_students": count(UserRole.STUDENT),
        "total_teachers": count(UserRole.TEACHER),
        "total_admins": count(UserRole.ADMIN),
    }


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update the caller's name or picture. Email and role are not editable here."""
    changes = data.model_dump(exclude_unset=True)
    reject_null_fields(changes, ("first_name", "last_name"))
    for key, value in changes.items():
        setattr(current_user, key, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.put("/{user_id}/role", response_model=ProfileResponse)
async def update_user_role(
    user_id: int,
    data: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Change a user's role (admin only). Admins cannot change their own role."""
    user = get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise InvalidStateError("Cannot change your own role", field="role")
    user.role = data.role
    db.commit()
    db.refresh(user)
    logger.info("User %s role set to %s by %s", user.id, user.role.value, current_user.id)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Delete a user with their enrollments, submissions and notifications (admin only).

    Users who still instruct a course or authored an assessment must have that
    content reassigned or deleted first.
    """
    user = get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise InvalidStateError("Cannot delete your own account")
    if db.query(Course).filter(Course.instructor_id == user.id).count():
        raise InvalidStateError("User still instructs courses")
    if db.query(Assessment).filter(Assessment.created_by == user.id).count():
        raise InvalidStateError("User still owns assessments")

    for enrollment in db.query(Enrollment).filter(Enrollment.student_id == user.id).all():
        db.delete(enrollment)
    db.query(Submission).filter(Submission.student_id == user.id).delete(synchronize_session=False)
    db.query(Submission).filter(Submission.graded_by == user.id).update(
        {Submission.graded_by: None}, synchronize_session=False
    )
    db.query(Notification).filter(Notification.user_id == user.id).delete(synchronize_session=False)
    db.delete(user)
    db.commit()
    logger.info("User %s deleted by %s", user_id, current_user.id)
