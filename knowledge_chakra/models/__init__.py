"""SQLAlchemy models."""

from knowledge_chakra.models.assessment import Assessment
from knowledge_chakra.models.content import CourseModule, Lesson, LessonCompletion
from knowledge_chakra.models.course import Course, Enrollment
from knowledge_chakra.models.enums import (
    AssessmentType,
    LessonType,
    NotificationType,
    QuestionType,
    SubmissionStatus,
    SubmissionType,
    UserRole,
)
from knowledge_chakra.models.notification import Notification
from knowledge_chakra.models.submission import Submission
from knowledge_chakra.models.user import User

__all__ = [
    "Assessment",
    "AssessmentType",
    "Course",
    "CourseModule",
    "Enrollment",
    "Lesson",
    "LessonCompletion",
    "LessonType",
    "Notification",
    "NotificationType",
    "QuestionType",
    "Submission",
    "SubmissionStatus",
    "SubmissionType",
    "User",
    "UserRole",
]
