"""Enrollment lifecycle and lesson-completion progress.

``overall_progress`` is the round-half-up percentage of the course's lessons
the student has completed. ``is_completed`` latches the first time progress
reaches 100 and is not cleared when lessons are later added or un-completed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Set

from sqlalchemy.orm import Session

from knowledge_chakra.exceptions import InvalidStateError, NotFoundError
from knowledge_chakra.logging_config import get_logger
from knowledge_chakra.models import (
    Course,
    CourseModule,
    Enrollment,
    Lesson,
    LessonCompletion,
    NotificationType,
    User,
)
from knowledge_chakra.services.grading import to_percentage
from knowledge_chakra.services.notifications import NotificationEvent, Notifier, notify_safely
from knowledge_chakra.utils.dates import utc_now

logger = get_logger(__name__)


def course_lesson_ids(db: Session, course_id: int) -> Set[int]:
    rows = (
        db.query(Lesson.id)
        .join(CourseModule, Lesson.module_id == CourseModule.id)
        .filter(CourseModule.course_id == course_id)
        .all()
    )
    return {row.id for row in rows}


class EnrollmentService:
    def __init__(self, db: Session, notifier: Notifier) -> None:
        self.db = db
        self.notifier = notifier

    def _get_course(self, course_id: int) -> Course:
        course = self.db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        return course

    def _find(self, course_id: int, student_id: int) -> Optional[Enrollment]:
        return (
            self.db.query(Enrollment)
            .filter(Enrollment.student_id == student_id, Enrollment.course_id == course_id)
            .first()
        )

    def _get_own(self, course_id: int, student: User) -> Enrollment:
        enrollment = self._find(course_id, student.id)
        if enrollment is None:
            raise NotFoundError("Enrollment", f"course:{course_id}")
        return enrollment

    def enroll(self, course_id: int, student: User) -> Enrollment:
        """Enroll ``student`` in a published course and tell the instructor."""

        course = self._get_course(course_id)
        if not course.published:
            raise InvalidStateError("Cannot enroll in unpublished course")
        if self._find(course_id, student.id) is not None:
            raise InvalidStateError("Already enrolled in this course")

        enrollment = Enrollment(student_id=student.id, course_id=course_id)
        self.db.add(enrollment)
        self.db.commit()
        self.db.refresh(enrollment)
        logger.info("User %s enrolled in course %s", student.id, course_id)

        notify_safely(
            self.notifier,
            NotificationEvent(
                recipient_id=course.instructor_id,
                title="New Enrollment",
                message=f"A new student has enrolled in your course: {course.title}",
                type=NotificationType.COURSE,
                resource_id=str(course_id),
                link=f"/teacher/courses/{course_id}/students",
            ),
        )
        return enrollment

    def get_enrollment(
        self, course_id: int, student: User, now: Optional[datetime] = None
    ) -> Enrollment:
        """The caller's enrollment; records the access time."""

        enrollment = self._get_own(course_id, student)
        enrollment.last_accessed_at = now or utc_now()
        self.db.commit()
        self.db.refresh(enrollment)
        return enrollment

    def set_lesson_completion(
        self,
        course_id: int,
        lesson_id: int,
        student: User,
        completed: bool,
        now: Optional[datetime] = None,
    ) -> Enrollment:
        """Mark a lesson of the course complete or incomplete and recompute progress."""

        enrollment = self._get_own(course_id, student)
        lesson_ids = course_lesson_ids(self.db, course_id)
        if lesson_id not in lesson_ids:
            raise NotFoundError("Lesson", lesson_id)

        existing = next((c for c in enrollment.completions if c.lesson_id == lesson_id), None)
        if completed and existing is None:
            enrollment.completions.append(LessonCompletion(lesson_id=lesson_id))
        elif not completed and existing is not None:
            enrollment.completions.remove(existing)

        just_completed = self._recompute(enrollment, lesson_ids, now)
        self.db.commit()
        self.db.refresh(enrollment)
        logger.info(
            "Enrollment %s progress is %s%%",
            enrollment.id,
            enrollment.overall_progress,
            extra={"event_type": "lesson_completion", "lesson_id": lesson_id},
        )

        if just_completed:
            course = self._get_course(course_id)
            notify_safely(
                self.notifier,
                NotificationEvent(
                    recipient_id=student.id,
                    title="Course Completed",
                    message=f"Congratulations! You have completed the course: {course.title}",
                    type=NotificationType.COURSE,
                    resource_id=str(course_id),
                    link=f"/student/courses/{course_id}",
                ),
            )
        return enrollment

    @staticmethod
    def _recompute(
        enrollment: Enrollment, lesson_ids: Set[int], now: Optional[datetime] = None
    ) -> bool:
        """Update progress in place. True when this call completed the course."""

        done = sum(1 for c in enrollment.completions if c.lesson_id in lesson_ids)
        enrollment.overall_progress = to_percentage(done, len(lesson_ids))
        if enrollment.overall_progress == 100 and not enrollment.is_completed:
            enrollment.is_completed = True
            enrollment.completed_at = now or utc_now()
            return True
        return False

    def refresh_course_progress(self, course_id: int) -> None:
        """Recompute every enrollment of a course after its lessons changed."""

        lesson_ids = course_lesson_ids(self.db, course_id)
        enrollments = self.db.query(Enrollment).filter(Enrollment.course_id == course_id).all()
        for enrollment in enrollments:
            self._recompute(enrollment, lesson_ids)
        self.db.commit()

    def unenroll(self, course_id: int, student: User) -> None:
        enrollment = self._get_own(course_id, student)
        self.db.delete(enrollment)
        self.db.commit()
        logger.info("User %s unenrolled from course %s", student.id, course_id)
