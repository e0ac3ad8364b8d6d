"""Submission lifecycle: submit, auto-grade, manual grade and listing.

State machine::

    (none) -> draft -> submitted | late -> graded

Quizzes go straight to ``graded`` on every submit. Assignments stay
``submitted``/``late`` until an instructor or admin calls ``grade``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from knowledge_chakra.exceptions import InvalidStateError, NotFoundError
from knowledge_chakra.logging_config import get_logger
from knowledge_chakra.models import (
    Assessment,
    AssessmentType,
    Course,
    NotificationType,
    Submission,
    SubmissionStatus,
    User,
)
from knowledge_chakra.schemas.assessments import (
    AnswerIn,
    Answer,
    dump_answers,
    load_answers,
    load_questions,
)
from knowledge_chakra.services.grading import auto_grade
from knowledge_chakra.services.notifications import (
    NotificationEvent,
    Notifier,
    notify_safely,
)
from knowledge_chakra.services.permissions import ensure_owner_or_admin
from knowledge_chakra.utils.dates import is_past, utc_now

logger = get_logger(__name__)


@dataclass
class SubmissionPayload:
    """Partial update sent with a submit. Empty fields keep stored values."""

    answers: Optional[List[AnswerIn]] = None
    file_url: Optional[str] = None
    text_content: Optional[str] = None
    link_url: Optional[str] = None


@dataclass
class GradeInput:
    score: Optional[float] = None
    feedback: Optional[str] = None


@dataclass
class SubmitOutcome:
    submission: Submission
    created: bool
    notified: Optional[bool] = field(default=None)


def _kind_label(assessment: Assessment) -> str:
    return "quiz" if assessment.type == AssessmentType.QUIZ else "assignment"


class SubmissionService:
    """Owns state changes of ``Submission`` rows."""

    def __init__(self, db: Session, notifier: Notifier) -> None:
        self.db = db
        self.notifier = notifier

    # === lookups ===

    def _get_assessment(self, assessment_id: int) -> Assessment:
        assessment = self.db.get(Assessment, assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment", assessment_id)
        return assessment

    def _get_course(self, course_id: int) -> Course:
        course = self.db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        return course

    def _find(self, student_id: int, assessment_id: int) -> Optional[Submission]:
        return (
            self.db.query(Submission)
            .filter(
                Submission.student_id == student_id,
                Submission.assessment_id == assessment_id,
            )
            .first()
        )

    # === student side ===

    def submit(
        self,
        assessment_id: int,
        student_id: int,
        payload: SubmissionPayload,
        now: Optional[datetime] = None,
    ) -> SubmitOutcome:
        """Create or update the caller's submission and mark it submitted."""

        assessment = self._get_assessment(assessment_id)
        if not assessment.published:
            raise InvalidStateError("Cannot submit to an unpublished assessment")

        now = now or utc_now()
        submission = self._find(student_id, assessment_id)
        created = submission is None
        if created:
            submission = Submission(
                student_id=student_id,
                assessment_id=assessment_id,
                answers_json=[],
                status=SubmissionStatus.DRAFT,
            )
            self.db.add(submission)

        self._merge(submission, payload)

        late = is_past(assessment.due_date, now)
        submission.status = SubmissionStatus.LATE if late else SubmissionStatus.SUBMITTED
        submission.submitted_at = now

        if assessment.type == AssessmentType.QUIZ:
            result = auto_grade(
                load_questions(assessment.questions_json),
                load_answers(submission.answers_json),
            )
            submission.answers_json = dump_answers(result.answers)
            submission.score = result.score
            submission.status = SubmissionStatus.GRADED
            submission.graded_at = now
            submission.graded_by = None

        self.db.commit()
        self.db.refresh(submission)
        logger.info(
            "Submission %s for assessment %s is %s",
            submission.id,
            assessment_id,
            submission.status.value,
            extra={"event_type": "submission", "late": late, "new_submission": created},
        )

        outcome = SubmitOutcome(submission=submission, created=created)
        if created:
            course = self.db.get(Course, assessment.course_id)
            if course is not None:
                outcome.notified = notify_safely(
                    self.notifier,
                    NotificationEvent(
                        recipient_id=course.instructor_id,
                        title="New Submission",
                        message=(
                            f"A student has submitted the {_kind_label(assessment)}: "
                            f"{assessment.title}"
                        ),
                        type=NotificationType.ASSESSMENT,
                        resource_id=str(assessment.id),
                        link=f"/teacher/assessments/{assessment.id}/submissions",
                    ),
                )
        return outcome

    @staticmethod
    def _merge(submission: Submission, payload: SubmissionPayload) -> None:
        if payload.answers:
            # Client-side correctness is discarded; grading recomputes it
            submission.answers_json = dump_answers(
                Answer(**a.model_dump()) for a in payload.answers
            )
        if payload.file_url:
            submission.file_url = payload.file_url
        if payload.text_content:
            submission.text_content = payload.text_content
        if payload.link_url:
            submission.link_url = payload.link_url

    def get_submission(self, assessment_id: int, student_id: int) -> Submission:
        submission = self._find(student_id, assessment_id)
        if submission is None:
            raise NotFoundError("Submission", f"assessment:{assessment_id}")
        return submission

    # === instructor side ===

    def grade(
        self,
        submission_id: int,
        grader: User,
        data: GradeInput,
        now: Optional[datetime] = None,
    ) -> Submission:
        """Manually grade a submission. Overrides any auto-graded score."""

        if data.score is None:
            raise InvalidStateError("Score is required", field="score")

        submission = self.db.get(Submission, submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        assessment = self._get_assessment(submission.assessment_id)
        course = self._get_course(assessment.course_id)
        ensure_owner_or_admin(
            grader, course.instructor_id, "Not authorized to grade this submission"
        )

        submission.score = data.score
        if data.feedback:
            submission.feedback = data.feedback
        submission.status = SubmissionStatus.GRADED
        submission.graded_by = grader.id
        submission.graded_at = now or utc_now()

        self.db.commit()
        self.db.refresh(submission)
        logger.info(
            "Submission %s graded by user %s",
            submission.id,
            grader.id,
            extra={"event_type": "grade", "score": data.score},
        )

        notify_safely(
            self.notifier,
            NotificationEvent(
                recipient_id=submission.student_id,
                title="Assessment Graded",
                message=f'Your {_kind_label(assessment)} "{assessment.title}" has been graded',
                type=NotificationType.GRADE,
                resource_id=str(assessment.id),
                link=f"/student/assessments/{assessment.id}",
            ),
        )
        return submission

    def list_submissions(
        self,
        assessment_id: int,
        caller: User,
        status: Optional[SubmissionStatus] = None,
    ) -> List[Submission]:
        assessment = self._get_assessment(assessment_id)
        course = self._get_course(assessment.course_id)
        ensure_owner_or_admin(
            caller, course.instructor_id, "Not authorized to view submissions for this assessment"
        )

        query = self.db.query(Submission).filter(Submission.assessment_id == assessment_id)
        if status is not None:
            query = query.filter(Submission.status == status)
        return query.order_by(Submission.submitted_at.desc(), Submission.id.desc()).all()
