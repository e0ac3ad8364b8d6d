"""Course API."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from knowledge_chakra.api.v1.auth import get_current_user, require_staff
from knowledge_chakra.db import get_db
from knowledge_chakra.dependencies import get_course_content_service
from knowledge_chakra.exceptions import NotFoundError
from knowledge_chakra.logging_config import get_logger
from knowledge_chakra.models import Course, LessonType, User, UserRole
from knowledge_chakra.services.courses import CourseContentService
from knowledge_chakra.services.permissions import ensure_owner_or_admin
from knowledge_chakra.utils.updates import reject_null_fields

router = APIRouter()
logger = get_logger(__name__)


# === Schemas ===

class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    thumbnail: Optional[str] = None
    published: bool = False


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    thumbnail: Optional[str] = None
    published: Optional[bool] = None


class ModuleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    position: Optional[int] = Field(default=None, ge=0)


class ModuleUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    position: Optional[int] = Field(default=None, ge=0)


class LessonCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    type: LessonType
    duration: Optional[int] = Field(default=None, ge=0)
    position: Optional[int] = Field(default=None, ge=0)


class LessonUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    type: Optional[LessonType] = None
    duration: Optional[int] = Field(default=None, ge=0)
    position: Optional[int] = Field(default=None, ge=0)


class LessonResponse(BaseModel):
    id: int
    module_id: int
    title: str
    content: str
    type: LessonType
    duration: Optional[int]
    position: int

    class Config:
        from_attributes = True


class ModuleResponse(BaseModel):
    id: int
    course_id: int
    title: str
    position: int
    lessons: List[LessonResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CourseResponse(BaseModel):
    id: int
    title: str
    description: str
    thumbnail: Optional[str]
    instructor_id: int
    published: bool
    created_at: datetime
    updated_at: datetime
    modules: List[ModuleResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CourseListResponse(BaseModel):
    courses: List[CourseResponse]
    total: int


def get_course_or_404(db: Session, course_id: int) -> Course:
    course = db.get(Course, course_id)
    if course is None:
        raise NotFoundError("Course", course_id)
    return course


# === API endpoints ===

@router.post("/", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Create a course taught by the caller."""
    course = Course(**data.model_dump(), instructor_id=current_user.id)
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Course %s created by user %s", course.id, current_user.id)
    return course


@router.get("/", response_model=CourseListResponse)
async def list_courses(
    page: int = 1,
    page_size: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Admins see every course, teachers their own, students the published ones."""
    query = db.query(Course)
    if current_user.role == UserRole.TEACHER:
        query = query.filter(Course.instructor_id == current_user.id)
    elif current_user.role == UserRole.STUDENT:
        query = query.filter(Course.published.is_(True))

    total = query.count()
    courses = (
        query.order_by(Course.created_at.desc(), Course.id.desc())
        .offset((max(page, 1) - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {"courses": courses, "total": total}


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    course = get_course_or_404(db, course_id)
    if current_user.role == UserRole.STUDENT and not course.published:
        raise NotFoundError("Course", course_id)
    return course


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    data: CourseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Partially update a course (owner or admin)."""
    course = get_course_or_404(db, course_id)
    ensure_owner_or_admin(current_user, course.instructor_id, "Not authorized to update this course")

    changes = data.model_dump(exclude_unset=True)
    reject_null_fields(changes, ("title", "description", "published"))
    for key, value in changes.items():
        setattr(course, key, value)
    db.commit()
    db.refresh(course)
    return course


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Delete a course with its enrollments, assessments and submissions."""
    course = get_course_or_404(db, course_id)
    ensure_owner_or_admin(current_user, course.instructor_id, "Not authorized to delete this course")

    db.delete(course)
    db.commit()
    logger.info("Course %s deleted by user %s", course_id, current_user.id)


# === Modules and lessons ===

@router.post(
    "/{course_id}/modules",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_module(
    course_id: int,
    data: ModuleCreate,
    service: CourseContentService = Depends(get_course_content_service),
    current_user: User = Depends(require_staff)
):
    """Append a module; without ``position`` it goes last."""
    return service.add_module(course_id, current_user, data.title, data.position)


@router.put("/{course_id}/modules/{module_id}", response_model=ModuleResponse)
async def update_module(
    course_id: int,
    module_id: int,
    data: ModuleUpdate,
    service: CourseContentService = Depends(get_course_content_service),
    current_user: User = Depends(require_staff)
):
    return service.update_module(
        course_id, module_id, data.model_dump(exclude_unset=True), current_user
    )


@router.delete("/{course_id}/modules/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_module(
    course_id: int,
    module_id: int,
    service: CourseContentService = Depends(get_course_content_service),
    current_user: User = Depends(require_staff)
):
    """Delete a module with its lessons."""
    service.delete_module(course_id, module_id, current_user)


@router.post(
    "/{course_id}/modules/{module_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_lesson(
    course_id: int,
    module_id: int,
    data: LessonCreate,
    service: CourseContentService = Depends(get_course_content_service),
    current_user: User = Depends(require_staff)
):
    return service.add_lesson(course_id, module_id, current_user, **data.model_dump())


@router.put(
    "/{course_id}/modules/{module_id}/lessons/{lesson_id}",
    response_model=LessonResponse,
)
async def update_lesson(
    course_id: int,
    module_id: int,
    lesson_id: int,
    data: LessonUpdate,
    service: CourseContentService = Depends(get_course_content_service),
    current_user: User = Depends(require_staff)
):
    return service.update_lesson(
        course_id, module_id, lesson_id, data.model_dump(exclude_unset=True), current_user
    )


@router.delete(
    "/{course_id}/modules/{module_id}/lessons/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_lesson(
    course_id: int,
    module_id: int,
    lesson_id: int,
    service: CourseContentService = Depends(get_course_content_service),
    current_user: User = Depends(require_staff)
):
    service.delete_lesson(course_id, module_id, lesson_id, current_user)
