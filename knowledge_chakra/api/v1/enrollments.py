"""Enrollment API."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from knowledge_chakra.api.v1.auth import UserResponse, get_current_user, require_staff
from knowledge_chakra.api.v1.courses import get_course_or_404
from knowledge_chakra.db import get_db
from knowledge_chakra.dependencies import get_enrollment_service
from knowledge_chakra.exceptions import InvalidStateError
from knowledge_chakra.models import Enrollment, User
from knowledge_chakra.services.enrollments import EnrollmentService
from knowledge_chakra.services.permissions import ensure_owner_or_admin

router = APIRouter()


# === Schemas ===

class EnrollmentResponse(BaseModel):
    id: int
    student_id: int
    course_id: int
    overall_progress: int
    is_completed: bool
    completed_lessons: List[int]
    enrolled_at: datetime
    completed_at: Optional[datetime]
    last_accessed_at: Optional[datetime]


class EnrollmentListResponse(BaseModel):
    enrollments: List[EnrollmentResponse]
    total: int
    page: int
    total_pages: int


class CourseStudentsResponse(BaseModel):
    students: List[UserResponse]
    total: int


class LessonCompletionUpdate(BaseModel):
    # Optional so a missing flag surfaces as INVALID_STATE rather than 422
    completed: Optional[bool] = None


class MessageResponse(BaseModel):
    message: str


def _enrollment_response(enrollment: Enrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=enrollment.id,
        student_id=enrollment.student_id,
        course_id=enrollment.course_id,
        overall_progress=enrollment.overall_progress,
        is_completed=enrollment.is_completed,
        completed_lessons=sorted(c.lesson_id for c in enrollment.completions),
        enrolled_at=enrollment.enrolled_at,
        completed_at=enrollment.completed_at,
        last_accessed_at=enrollment.last_accessed_at,
    )


# === API endpoints ===

@router.post("/courses/{course_id}", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll_in_course(
    course_id: int,
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: User = Depends(get_current_user)
):
    """Enroll the caller in a published course."""
    return _enrollment_response(service.enroll(course_id, current_user))


@router.get("/my", response_model=EnrollmentListResponse)
async def list_my_enrollments(
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The caller's enrollments, newest first."""
    page = max(page, 1)
    limit = max(limit, 1)
    query = db.query(Enrollment).filter(Enrollment.student_id == current_user.id)
    total = query.count()
    enrollments = (
        query.order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "enrollments": [_enrollment_response(e) for e in enrollments],
        "total": total,
        "page": page,
        "total_pages": (total + limit - 1) // limit,
    }


@router.get("/courses/{course_id}", response_model=EnrollmentResponse)
async def get_my_enrollment(
    course_id: int,
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: User = Depends(get_current_user)
):
    """The caller's enrollment in a course; records the access time."""
    return _enrollment_response(service.get_enrollment(course_id, current_user))


@router.put("/courses/{course_id}/lessons/{lesson_id}", response_model=EnrollmentResponse)
async def update_lesson_completion(
    course_id: int,
    lesson_id: int,
    data: LessonCompletionUpdate,
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: User = Depends(get_current_user)
):
    """Mark a lesson complete or incomplete and return the updated progress."""
    if data.completed is None:
        raise InvalidStateError("Completed status is required", field="completed")
    enrollment = service.set_lesson_completion(course_id, lesson_id, current_user, data.completed)
    return _enrollment_response(enrollment)


@router.delete("/courses/{course_id}", response_model=MessageResponse)
async def unenroll_from_course(
    course_id: int,
    service: EnrollmentService = Depends(get_enrollment_service),
    current_user: User = Depends(get_current_user)
):
    service.unenroll(course_id, current_user)
    return {"message": "Successfully unenrolled from course"}


@router.get("/courses/{course_id}/students", response_model=CourseStudentsResponse)
async def list_course_students(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Students enrolled in a course (owner or admin)."""
    course = get_course_or_404(db, course_id)
    ensure_owner_or_admin(
        current_user, course.instructor_id, "Not authorized to view students of this course"
    )
    students = (
        db.query(User)
        .join(Enrollment, Enrollment.student_id == User.id)
        .filter(Enrollment.course_id == course_id)
        .order_by(User.last_name, User.first_name)
        .all()
    )
    return {"students": students, "total": len(students)}
