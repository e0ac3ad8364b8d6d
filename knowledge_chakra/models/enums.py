"""Enumerations shared by models, schemas and services."""

import enum


class UserRole(str, enum.Enum):
    """User roles."""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class AssessmentType(str, enum.Enum):
    """Assessment kind. Only quizzes are auto-graded."""
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"


class QuestionType(str, enum.Enum):
    """Question kind."""
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"        # not auto-graded
    SHORT_ANSWER = "short_answer"    # not auto-graded


class SubmissionType(str, enum.Enum):
    """Medium a student is expected to submit in."""
    FILE = "file"
    TEXT = "text"
    LINK = "link"
    AUTOGRADED = "autograded"


class SubmissionStatus(str, enum.Enum):
    """Submission state.

    draft -> submitted | late -> graded. ``RESUBMITTED`` is reserved; nothing
    transitions into it.
    """
    DRAFT = "draft"
    SUBMITTED = "submitted"
    LATE = "late"
    GRADED = "graded"
    RESUBMITTED = "resubmitted"


class NotificationType(str, enum.Enum):
    """Notification category tag."""
    COURSE = "course"
    ASSESSMENT = "assessment"
    ANNOUNCEMENT = "announcement"
    LIVE_CLASS = "live_class"
    SYSTEM = "system"
    GRADE = "grade"


class LessonType(str, enum.Enum):
    """Lesson content kind."""
    VIDEO = "video"
    PDF = "pdf"
    LINK = "link"
    TEXT = "text"
