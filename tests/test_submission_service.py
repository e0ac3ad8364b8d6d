from datetime import datetime, timedelta, timezone

import pytest

from conftest import RecordingNotifier, make_user
from knowledge_chakra.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from knowledge_chakra.models import (
    Assessment,
    AssessmentType,
    Course,
    Notification,
    NotificationType,
    SubmissionStatus,
    SubmissionType,
    UserRole,
)
from knowledge_chakra.schemas.assessments import AnswerIn
from knowledge_chakra.services.notifications import DatabaseNotifier
from knowledge_chakra.services.submissions import GradeInput, SubmissionPayload, SubmissionService
from knowledge_chakra.utils.dates import as_utc

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _quiz_questions():
    return [
        {
            "id": "q1",
            "text": "2 + 2?",
            "type": "single_choice",
            "points": 5,
            "options": [
                {"id": "a", "text": "4", "is_correct": True},
                {"id": "b", "text": "5", "is_correct": False},
            ],
        },
        {
            "id": "q2",
            "text": "Primes?",
            "type": "multiple_choice",
            "points": 5,
            "options": [
                {"id": "a", "text": "2", "is_correct": True},
                {"id": "b", "text": "3", "is_correct": True},
                {"id": "c", "text": "4", "is_correct": False},
            ],
        },
    ]


@pytest.fixture
def course(session, teacher):
    course = Course(title="Algebra", description="Intro", instructor_id=teacher.id, published=True)
    session.add(course)
    session.commit()
    return course


def _assessment(session, course, teacher, kind=AssessmentType.QUIZ, published=True, due_date=None):
    assessment = Assessment(
        title="Week 1",
        course_id=course.id,
        type=kind,
        questions_json=_quiz_questions() if kind == AssessmentType.QUIZ else [],
        due_date=due_date,
        passing_score=60,
        total_points=10,
        submission_type=(
            SubmissionType.AUTOGRADED if kind == AssessmentType.QUIZ else SubmissionType.TEXT
        ),
        published=published,
        created_by=teacher.id,
    )
    session.add(assessment)
    session.commit()
    return assessment


def test_quiz_submission_is_auto_graded(session, teacher, student, course):
    quiz = _assessment(session, course, teacher)
    notifier = RecordingNotifier()
    service = SubmissionService(session, notifier)

    outcome = service.submit(
        quiz.id,
        student.id,
        SubmissionPayload(answers=[
            AnswerIn(question_id="q1", selected_options=["a"]),
            AnswerIn(question_id="q2", selected_options=["a"]),
        ]),
        now=NOW,
    )

    submission = outcome.submission
    assert outcome.created is True
    assert submission.status == SubmissionStatus.GRADED
    assert submission.score == 50
    assert submission.graded_by is None
    assert submission.graded_at is not None
    assert [a["is_correct"] for a in submission.answers_json] == [True, False]
    assert notifier.recipients() == [teacher.id]
    assert notifier.events[0].type == NotificationType.ASSESSMENT
    assert notifier.events[0].link == f"/teacher/assessments/{quiz.id}/submissions"


def test_client_supplied_correctness_is_ignored(session, teacher, student, course):
    quiz = _assessment(session, course, teacher)
    service = SubmissionService(session, RecordingNotifier())

    outcome = service.submit(
        quiz.id,
        student.id,
        SubmissionPayload(answers=[
            AnswerIn.model_validate(
                {"question_id": "q1", "selected_options": ["b"], "is_correct": True}
            ),
        ]),
        now=NOW,
    )

    assert outcome.submission.score == 0
    assert outcome.submission.answers_json[0]["is_correct"] is False


def test_assignment_after_due_date_is_late(session, teacher, student, course):
    assignment = _assessment(
        session, course, teacher, kind=AssessmentType.ASSIGNMENT,
        due_date=NOW - timedelta(days=1),
    )
    service = SubmissionService(session, RecordingNotifier())

    outcome = service.submit(
        assignment.id, student.id, SubmissionPayload(text_content="My essay"), now=NOW
    )

    assert outcome.submission.status == SubmissionStatus.LATE
    assert outcome.submission.score is None
    assert outcome.submission.text_content == "My essay"


def test_assignment_before_due_date_is_submitted(session, teacher, student, course):
    assignment = _assessment(
        session, course, teacher, kind=AssessmentType.ASSIGNMENT,
        due_date=NOW + timedelta(days=1),
    )
    service = SubmissionService(session, RecordingNotifier())

    outcome = service.submit(
        assignment.id, student.id, SubmissionPayload(link_url="https://example.com/x"), now=NOW
    )

    assert outcome.submission.status == SubmissionStatus.SUBMITTED
    assert outcome.submission.submitted_at is not None


def test_unpublished_assessment_rejects_submission(session, teacher, student, course):
    quiz = _assessment(session, course, teacher, published=False)
    service = SubmissionService(session, RecordingNotifier())

    with pytest.raises(InvalidStateError):
        service.submit(quiz.id, student.id, SubmissionPayload(), now=NOW)


def test_unknown_assessment_is_not_found(session, student):
    service = SubmissionService(session, RecordingNotifier())

    with pytest.raises(NotFoundError) as exc_info:
        service.submit(999, student.id, SubmissionPayload(), now=NOW)
    assert exc_info.value.code == "ASSESSMENT_NOT_FOUND"


def test_resubmission_updates_the_same_row(session, teacher, student, course):
    assignment = _assessment(session, course, teacher, kind=AssessmentType.ASSIGNMENT)
    notifier = RecordingNotifier()
    service = SubmissionService(session, notifier)

    first = service.submit(
        assignment.id, student.id,
        SubmissionPayload(text_content="Draft one", file_url="https://files/1"), now=NOW,
    )
    second = service.submit(
        assignment.id, student.id, SubmissionPayload(text_content="Draft two"), now=NOW,
    )

    assert second.created is False
    assert second.submission.id == first.submission.id
    assert second.submission.text_content == "Draft two"
    # Empty fields keep their stored values
    assert second.submission.file_url == "https://files/1"
    # Only the first submit notifies the instructor
    assert len(notifier.events) == 1


def test_resubmitted_quiz_is_regraded(session, teacher, student, course):
    quiz = _assessment(session, course, teacher)
    service = SubmissionService(session, RecordingNotifier())

    service.submit(
        quiz.id, student.id,
        SubmissionPayload(answers=[AnswerIn(question_id="q1", selected_options=["b"])]), now=NOW,
    )
    outcome = service.submit(
        quiz.id, student.id,
        SubmissionPayload(answers=[
            AnswerIn(question_id="q1", selected_options=["a"]),
            AnswerIn(question_id="q2", selected_options=["b", "a"]),
        ]),
        now=NOW,
    )

    assert outcome.submission.score == 100


def test_failing_notifier_does_not_fail_submit(session, teacher, student, course):
    quiz = _assessment(session, course, teacher)
    notifier = RecordingNotifier()
    notifier.fail = True
    service = SubmissionService(session, notifier)

    outcome = service.submit(quiz.id, student.id, SubmissionPayload(), now=NOW)

    assert outcome.notified is False
    assert outcome.submission.id is not None
    assert outcome.submission.status == SubmissionStatus.GRADED


def test_database_notifier_writes_notification_rows(session, teacher, student, course):
    quiz = _assessment(session, course, teacher)
    service = SubmissionService(session, DatabaseNotifier(session))

    service.submit(quiz.id, student.id, SubmissionPayload(), now=NOW)

    rows = session.query(Notification).filter(Notification.user_id == teacher.id).all()
    assert len(rows) == 1
    assert rows[0].title == "New Submission"
    assert rows[0].read is False


def test_manual_grade_overrides_auto_grade(session, teacher, student, course):
    quiz = _assessment(session, course, teacher)
    notifier = RecordingNotifier()
    service = SubmissionService(session, notifier)
    submitted = service.submit(quiz.id, student.id, SubmissionPayload(), now=NOW).submission

    graded = service.grade(submitted.id, teacher, GradeInput(score=88, feedback="Well done"), now=NOW)

    assert graded.score == 88
    assert graded.feedback == "Well done"
    assert graded.status == SubmissionStatus.GRADED
    assert graded.graded_by == teacher.id
    assert notifier.events[-1].recipient_id == student.id
    assert notifier.events[-1].type == NotificationType.GRADE


def test_grade_without_feedback_keeps_existing_feedback(session, teacher, student, course):
    assignment = _assessment(session, course, teacher, kind=AssessmentType.ASSIGNMENT)
    service = SubmissionService(session, RecordingNotifier())
    submitted = service.submit(
        assignment.id, student.id, SubmissionPayload(text_content="Essay"), now=NOW
    ).submission

    service.grade(submitted.id, teacher, GradeInput(score=70, feedback="Needs sources"))
    regraded = service.grade(submitted.id, teacher, GradeInput(score=75))

    assert regraded.score == 75
    assert regraded.feedback == "Needs sources"


def test_grade_requires_score(session, teacher, student, course):
    assignment = _assessment(session, course, teacher, kind=AssessmentType.ASSIGNMENT)
    service = SubmissionService(session, RecordingNotifier())
    submitted = service.submit(assignment.id, student.id, SubmissionPayload(), now=NOW).submission

    with pytest.raises(InvalidStateError):
        service.grade(submitted.id, teacher, GradeInput(score=None, feedback="x"))


def test_only_course_instructor_or_admin_may_grade(session, teacher, other_teacher, admin, student, course):
    assignment = _assessment(session, course, teacher, kind=AssessmentType.ASSIGNMENT)
    service = SubmissionService(session, RecordingNotifier())
    submitted = service.submit(assignment.id, student.id, SubmissionPayload(), now=NOW).submission

    with pytest.raises(ForbiddenError):
        service.grade(submitted.id, other_teacher, GradeInput(score=10))

    graded = service.grade(submitted.id, admin, GradeInput(score=90))
    assert graded.graded_by == admin.id


def test_grade_unknown_submission_is_not_found(session, teacher):
    service = SubmissionService(session, RecordingNotifier())

    with pytest.raises(NotFoundError):
        service.grade(404, teacher, GradeInput(score=10))


def test_list_submissions_filters_by_status(session, teacher, student, course):
    assignment = _assessment(session, course, teacher, kind=AssessmentType.ASSIGNMENT)
    other_student = make_user(session, "second@example.com", UserRole.STUDENT)
    service = SubmissionService(session, RecordingNotifier())
    first = service.submit(assignment.id, student.id, SubmissionPayload(), now=NOW).submission
    service.submit(
        assignment.id, other_student.id, SubmissionPayload(), now=NOW + timedelta(hours=1)
    )
    service.grade(first.id, teacher, GradeInput(score=60))

    everything = service.list_submissions(assignment.id, teacher)
    graded = service.list_submissions(assignment.id, teacher, status=SubmissionStatus.GRADED)

    assert [s.student_id for s in everything] == [other_student.id, student.id]
    assert [s.id for s in graded] == [first.id]


def test_list_submissions_forbidden_for_other_teacher(session, teacher, other_teacher, course):
    assignment = _assessment(session, course, teacher, kind=AssessmentType.ASSIGNMENT)
    service = SubmissionService(session, RecordingNotifier())

    with pytest.raises(ForbiddenError):
        service.list_submissions(assignment.id, other_teacher)


def test_get_submission_not_found_before_submitting(session, teacher, student, course):
    quiz = _assessment(session, course, teacher)
    service = SubmissionService(session, RecordingNotifier())

    with pytest.raises(NotFoundError):
        service.get_submission(quiz.id, student.id)


def test_late_quiz_is_still_auto_graded(session, teacher, student, course):
    quiz = _assessment(session, course, teacher, due_date=NOW - timedelta(days=1))
    service = SubmissionService(session, RecordingNotifier())

    outcome = service.submit(
        quiz.id,
        student.id,
        SubmissionPayload(answers=[
            AnswerIn(question_id="q1", selected_options=["a"]),
            AnswerIn(question_id="q2", selected_options=["a", "b"]),
        ]),
        now=NOW,
    )

    submission = outcome.submission
    assert submission.status == SubmissionStatus.GRADED
    assert submission.score == 100
    assert as_utc(submission.submitted_at) == NOW
    assert as_utc(submission.graded_at) == NOW


def test_quiz_resubmitted_without_answers_keeps_stored_answers(session, teacher, student, course):
    quiz = _assessment(session, course, teacher)
    service = SubmissionService(session, RecordingNotifier())
    first = service.submit(
        quiz.id,
        student.id,
        SubmissionPayload(answers=[
            AnswerIn(question_id="q1", selected_options=["a"]),
            AnswerIn(question_id="q2", selected_options=["c"]),
        ]),
        now=NOW,
    ).submission
    first_answers = [(a["question_id"], a["selected_options"]) for a in first.answers_json]

    later = NOW + timedelta(hours=2)
    second = service.submit(
        quiz.id, student.id, SubmissionPayload(text_content="Forgot to add a note"), now=later
    ).submission

    assert second.id == first.id
    assert [(a["question_id"], a["selected_options"]) for a in second.answers_json] == first_answers
    assert second.score == 50
    assert second.status == SubmissionStatus.GRADED
    assert as_utc(second.submitted_at) == later
