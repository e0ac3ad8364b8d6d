"""Course content authoring: modules and their lessons."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from knowledge_chakra.exceptions import NotFoundError
from knowledge_chakra.logging_config import get_logger
from knowledge_chakra.models import Course, CourseModule, Lesson, LessonType, User
from knowledge_chakra.services.enrollments import EnrollmentService
from knowledge_chakra.services.permissions import ensure_owner_or_admin
from knowledge_chakra.utils.updates import reject_null_fields

logger = get_logger(__name__)


class CourseContentService:
    """Module and lesson changes, restricted to the course instructor or an admin.

    Adding or removing lessons changes every enrollment's progress, so those
    operations recompute it for the whole course.
    """

    def __init__(self, db: Session, enrollments: EnrollmentService) -> None:
        self.db = db
        self.enrollments = enrollments

    def _get_owned_course(self, course_id: int, user: User) -> Course:
        course = self.db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        ensure_owner_or_admin(user, course.instructor_id, "You can only update your own courses")
        return course

    def _get_module(self, course: Course, module_id: int) -> CourseModule:
        module = self.db.get(CourseModule, module_id)
        if module is None or module.course_id != course.id:
            raise NotFoundError("Module", module_id)
        return module

    def _get_lesson(self, module: CourseModule, lesson_id: int) -> Lesson:
        lesson = self.db.get(Lesson, lesson_id)
        if lesson is None or lesson.module_id != module.id:
            raise NotFoundError("Lesson", lesson_id)
        return lesson

    def add_module(
        self, course_id: int, user: User, title: str, position: Optional[int] = None
    ) -> CourseModule:
        course = self._get_owned_course(course_id, user)
        module = CourseModule(
            course_id=course.id,
            title=title,
            position=len(course.modules) if position is None else position,
        )
        self.db.add(module)
        self.db.commit()
        self.db.refresh(module)
        logger.info("Module %s added to course %s", module.id, course.id)
        return module

    def update_module(
        self, course_id: int, module_id: int, changes: Dict[str, Any], user: User
    ) -> CourseModule:
        course = self._get_owned_course(course_id, user)
        module = self._get_module(course, module_id)
        reject_null_fields(changes, ("title", "position"))
        for key, value in changes.items():
            setattr(module, key, value)
        self.db.commit()
        self.db.refresh(module)
        return module

    def delete_module(self, course_id: int, module_id: int, user: User) -> None:
        course = self._get_owned_course(course_id, user)
        module = self._get_module(course, module_id)
        self.db.delete(module)
        self.db.commit()
        logger.info("Module %s deleted from course %s", module_id, course.id)
        self.enrollments.refresh_course_progress(course.id)

    def add_lesson(
        self,
        course_id: int,
        module_id: int,
        user: User,
        title: str,
        content: str,
        type: LessonType,
        duration: Optional[int] = None,
        position: Optional[int] = None,
    ) -> Lesson:
        course = self._get_owned_course(course_id, user)
        module = self._get_module(course, module_id)
        lesson = Lesson(
            module_id=module.id,
            title=title,
            content=content,
            type=type,
            duration=duration,
            position=len(module.lessons) if position is None else position,
        )
        self.db.add(lesson)
        self.db.commit()
        self.db.refresh(lesson)
        logger.info("Lesson %s added to module %s", lesson.id, module.id)
        self.enrollments.refresh_course_progress(course.id)
        return lesson

    def update_lesson(
        self, course_id: int, module_id: int, lesson_id: int, changes: Dict[str, Any], user: User
    ) -> Lesson:
        course = self._get_owned_course(course_id, user)
        lesson = self._get_lesson(self._get_module(course, module_id), lesson_id)
        reject_null_fields(changes, ("title", "content", "type", "position"))
        for key, value in changes.items():
            setattr(lesson, key, value)
        self.db.commit()
        self.db.refresh(lesson)
        return lesson

    def delete_lesson(self, course_id: int, module_id: int, lesson_id: int, user: User) -> None:
        course = self._get_owned_course(course_id, user)
        lesson = self._get_lesson(self._get_module(course, module_id), lesson_id)
        self.db.delete(lesson)
        self.db.commit()
        logger.info("Lesson %s deleted from course %s", lesson_id, course.id)
        self.enrollments.refresh_course_progress(course.id)
