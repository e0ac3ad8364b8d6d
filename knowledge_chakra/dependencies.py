"""FastAPI dependency providers for services and their collaborators."""

from fastapi import Depends
from sqlalchemy.orm import Session

from knowledge_chakra.config import get_settings
from knowledge_chakra.db import get_db
from knowledge_chakra.services.assessments import AssessmentService
from knowledge_chakra.services.courses import CourseContentService
from knowledge_chakra.services.enrollments import EnrollmentService
from knowledge_chakra.services.notifications import DatabaseNotifier, Notifier
from knowledge_chakra.services.submissions import SubmissionService


def get_notifier(db: Session = Depends(get_db)) -> Notifier:
    """Notification sink; tests override this with a recording fake."""

    return DatabaseNotifier(db)


def get_submission_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> SubmissionService:
    return SubmissionService(db, notifier)


def get_assessment_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> AssessmentService:
    return AssessmentService(db, notifier, get_settings().assessment_defaults)


def get_enrollment_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> EnrollmentService:
    return EnrollmentService(db, notifier)


def get_course_content_service(
    db: Session = Depends(get_db),
    enrollments: EnrollmentService = Depends(get_enrollment_service),
) -> CourseContentService:
    return CourseContentService(db, enrollments)
