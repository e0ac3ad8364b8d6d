"""Assessment authoring: create, update, publish and delete."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from knowledge_chakra.config import AssessmentDefaults
from knowledge_chakra.exceptions import NotFoundError
from knowledge_chakra.logging_config import get_logger
from knowledge_chakra.models import (
    Assessment,
    AssessmentType,
    Course,
    Enrollment,
    NotificationType,
    SubmissionType,
    User,
)
from knowledge_chakra.schemas.assessments import Question, QuestionIn, dump_questions
from knowledge_chakra.services.notifications import NotificationEvent, Notifier, notify_all
from knowledge_chakra.services.permissions import ensure_owner_or_admin
from knowledge_chakra.utils.dates import as_utc, utc_now
from knowledge_chakra.utils.updates import reject_null_fields

logger = get_logger(__name__)

# Columns a partial update may not clear
REQUIRED_FIELDS = ("title", "type", "passing_score", "total_points", "submission_type", "questions")


@dataclass
class AssessmentDraft:
    """Fields of a new assessment; ``None`` means "use the configured default"."""

    title: str
    course_id: int
    type: AssessmentType
    description: Optional[str] = None
    questions: Optional[List[QuestionIn]] = None
    due_date: Optional[datetime] = None
    time_limit: Optional[int] = None
    passing_score: Optional[int] = None
    total_points: Optional[int] = None
    submission_type: Optional[SubmissionType] = None
    published: bool = False


def build_questions(questions: Optional[List[Any]], defaults: AssessmentDefaults) -> List[Dict[str, Any]]:
    """Stored form of authored questions (models or plain dicts)."""

    return dump_questions(
        Question.from_input(QuestionIn.model_validate(q), default_points=defaults.question_points)
        for q in (questions or [])
    )


def default_submission_type(kind: AssessmentType, defaults: AssessmentDefaults) -> SubmissionType:
    if kind == AssessmentType.QUIZ:
        return SubmissionType(defaults.quiz_submission_type)
    return SubmissionType(defaults.assignment_submission_type)


class AssessmentService:
    def __init__(self, db: Session, notifier: Notifier, defaults: AssessmentDefaults) -> None:
        self.db = db
        self.notifier = notifier
        self.defaults = defaults

    def _get_course(self, course_id: int) -> Course:
        course = self.db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        return course

    def get(self, assessment_id: int) -> Assessment:
        assessment = self.db.get(Assessment, assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment", assessment_id)
        return assessment

    def _get_owned(self, assessment_id: int, user: User, action: str) -> Assessment:
        assessment = self.get(assessment_id)
        course = self._get_course(assessment.course_id)
        ensure_owner_or_admin(user, course.instructor_id, f"Not authorized to {action} this assessment")
        return assessment

    def list_for_course(
        self,
        course_id: int,
        published_only: bool = False,
        kind: Optional[AssessmentType] = None,
    ) -> List[Assessment]:
        self._get_course(course_id)
        query = self.db.query(Assessment).filter(Assessment.course_id == course_id)
        if published_only:
            query = query.filter(Assessment.published.is_(True))
        if kind is not None:
            query = query.filter(Assessment.type == kind)
        # Undated assessments sort last
        return query.order_by(
            Assessment.due_date.is_(None), Assessment.due_date.asc(), Assessment.id.asc()
        ).all()

    def create(self, draft: AssessmentDraft, user: User) -> Assessment:
        course = self._get_course(draft.course_id)
        ensure_owner_or_admin(
            user, course.instructor_id, "Not authorized to add assessments to this course"
        )

        assessment = Assessment(
            title=draft.title,
            description=draft.description,
            course_id=course.id,
            type=draft.type,
            questions_json=build_questions(draft.questions, self.defaults),
            due_date=as_utc(draft.due_date),
            time_limit=draft.time_limit,
            passing_score=(
                self.defaults.passing_score if draft.passing_score is None else draft.passing_score
            ),
            total_points=(
                self.defaults.total_points if draft.total_points is None else draft.total_points
            ),
            submission_type=draft.submission_type or default_submission_type(draft.type, self.defaults),
            published=False,
            created_by=user.id,
        )
        self.db.add(assessment)
        self.db.commit()
        self.db.refresh(assessment)
        logger.info("Assessment %s created in course %s", assessment.id, course.id)

        if draft.published:
            self._publish(assessment)
        return assessment

    def update(self, assessment_id: int, changes: Dict[str, Any], user: User) -> Assessment:
        """Apply a partial update. ``changes`` holds only the fields that were sent."""

        assessment = self._get_owned(assessment_id, user, "update")
        reject_null_fields(changes, REQUIRED_FIELDS)

        publish = changes.pop("published", None)
        if "questions" in changes:
            assessment.questions_json = build_questions(changes.pop("questions"), self.defaults)
        if "due_date" in changes:
            assessment.due_date = as_utc(changes.pop("due_date"))
        for key, value in changes.items():
            setattr(assessment, key, value)

        if publish is False:
            assessment.published = False
        self.db.commit()
        self.db.refresh(assessment)

        if publish:
            self._publish(assessment)
        return assessment

    def publish(self, assessment_id: int, user: User) -> Assessment:
        assessment = self._get_owned(assessment_id, user, "publish")
        return self._publish(assessment)

    def _publish(self, assessment: Assessment) -> Assessment:
        """Mark published; the very first publish notifies enrolled students."""

        if assessment.published:
            return assessment
        first_time = assessment.published_at is None
        assessment.published = True
        if first_time:
            assessment.published_at = utc_now()
        self.db.commit()
        self.db.refresh(assessment)
        logger.info("Assessment %s published", assessment.id, extra={"first_time": first_time})

        if first_time:
            self._announce(assessment)
        return assessment

    def _announce(self, assessment: Assessment) -> int:
        student_ids = [
            row.student_id
            for row in self.db.query(Enrollment.student_id)
            .filter(Enrollment.course_id == assessment.course_id)
            .all()
        ]
        kind = "quiz" if assessment.type == AssessmentType.QUIZ else "assignment"
        events = [
            NotificationEvent(
                recipient_id=student_id,
                title=f"New {kind.capitalize()}",
                message=f"A new {kind} has been published: {assessment.title}",
                type=NotificationType.ASSESSMENT,
                resource_id=str(assessment.id),
                link=f"/student/assessments/{assessment.id}",
            )
            for student_id in student_ids
        ]
        delivered = notify_all(self.notifier, events)
        logger.info(
            "Announced assessment %s to %s/%s students", assessment.id, delivered, len(events)
        )
        return delivered

    def delete(self, assessment_id: int, user: User) -> None:
        """Delete an assessment together with all of its submissions."""

        assessment = self._get_owned(assessment_id, user, "delete")
        self.db.delete(assessment)
        self.db.commit()
        logger.info("Assessment %s deleted", assessment_id)
