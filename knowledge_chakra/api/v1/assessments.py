"""Assessment API - authoring, submission and grading."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import AliasChoices, BaseModel, Field

from knowledge_chakra.api.v1.auth import get_current_user, require_staff
from knowledge_chakra.dependencies import get_assessment_service, get_submission_service
from knowledge_chakra.exceptions import NotFoundError
from knowledge_chakra.models import (
    Assessment,
    AssessmentType,
    Submission,
    SubmissionStatus,
    SubmissionType,
    User,
    UserRole,
)
from knowledge_chakra.schemas.assessments import (
    Answer,
    AnswerIn,
    Question,
    QuestionIn,
    load_questions,
)
from knowledge_chakra.services.assessments import AssessmentDraft, AssessmentService
from knowledge_chakra.services.permissions import is_owner_or_admin
from knowledge_chakra.services.submissions import (
    GradeInput,
    SubmissionPayload,
    SubmissionService,
)

router = APIRouter()


# === Schemas ===

class AssessmentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    course_id: int
    type: AssessmentType
    description: Optional[str] = None
    questions: List[QuestionIn] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    time_limit: Optional[int] = Field(default=None, ge=1)
    passing_score: Optional[int] = Field(default=None, ge=0, le=100)
    total_points: Optional[int] = Field(default=None, ge=0)
    submission_type: Optional[SubmissionType] = None
    published: bool = False


class AssessmentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    questions: Optional[List[QuestionIn]] = None
    due_date: Optional[datetime] = None
    time_limit: Optional[int] = Field(default=None, ge=1)
    passing_score: Optional[int] = Field(default=None, ge=0, le=100)
    total_points: Optional[int] = Field(default=None, ge=0)
    submission_type: Optional[SubmissionType] = None
    published: Optional[bool] = None


class AssessmentResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    course_id: int
    type: AssessmentType
    questions: List[Question]
    due_date: Optional[datetime]
    time_limit: Optional[int]
    passing_score: int
    total_points: int
    submission_type: SubmissionType
    published: bool
    published_at: Optional[datetime]
    created_by: int
    created_at: datetime
    updated_at: datetime


class SubmitRequest(BaseModel):
    answers: Optional[List[AnswerIn]] = None
    file_url: Optional[str] = None
    text_content: Optional[str] = None
    link_url: Optional[str] = None


class GradeRequest(BaseModel):
    # Optional so a missing score surfaces as INVALID_STATE rather than 422
    score: Optional[float] = None
    feedback: Optional[str] = None


class SubmissionResponse(BaseModel):
    id: int
    student_id: int
    assessment_id: int
    answers: List[Answer] = Field(validation_alias=AliasChoices("answers_json", "answers"))
    file_url: Optional[str]
    text_content: Optional[str]
    link_url: Optional[str]
    status: SubmissionStatus
    score: Optional[float]
    feedback: Optional[str]
    graded_by: Optional[int]
    submitted_at: Optional[datetime]
    graded_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# === Helpers ===

def _assessment_response(assessment: Assessment, user: User) -> AssessmentResponse:
    """Serialize; callers without authoring rights never see correct options."""

    questions = load_questions(assessment.questions_json)
    if not is_owner_or_admin(user, assessment.course.instructor_id):
        questions = [q.without_answers() for q in questions]
    return AssessmentResponse(
        id=assessment.id,
        title=assessment.title,
        description=assessment.description,
        course_id=assessment.course_id,
        type=assessment.type,
        questions=questions,
        due_date=assessment.due_date,
        time_limit=assessment.time_limit,
        passing_score=assessment.passing_score,
        total_points=assessment.total_points,
        submission_type=assessment.submission_type,
        published=assessment.published,
        published_at=assessment.published_at,
        created_by=assessment.created_by,
        created_at=assessment.created_at,
        updated_at=assessment.updated_at,
    )


def _submission_response(submission: Submission) -> SubmissionResponse:
    return SubmissionResponse.model_validate(submission, from_attributes=True)


# === Authoring ===

@router.post("/", response_model=AssessmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assessment(
    data: AssessmentCreate,
    service: AssessmentService = Depends(get_assessment_service),
    current_user: User = Depends(require_staff)
):
    """Create an assessment in a course the caller teaches."""
    draft = AssessmentDraft(**data.model_dump(exclude={"questions"}), questions=data.questions)
    assessment = service.create(draft, current_user)
    return _assessment_response(assessment, current_user)


@router.get("/courses/{course_id}", response_model=List[AssessmentResponse])
async def list_course_assessments(
    course_id: int,
    kind: Optional[AssessmentType] = Query(default=None, alias="type"),
    service: AssessmentService = Depends(get_assessment_service),
    current_user: User = Depends(get_current_user)
):
    """Assessments of a course ordered by due date. Students see published ones only."""
    assessments = service.list_for_course(
        course_id,
        published_only=current_user.role == UserRole.STUDENT,
        kind=kind,
    )
    return [_assessment_response(a, current_user) for a in assessments]


@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(
    assessment_id: int,
    service: AssessmentService = Depends(get_assessment_service),
    current_user: User = Depends(get_current_user)
):
    assessment = service.get(assessment_id)
    if current_user.role == UserRole.STUDENT and not assessment.published:
        raise NotFoundError("Assessment", assessment_id)
    return _assessment_response(assessment, current_user)


@router.put("/{assessment_id}", response_model=AssessmentResponse)
async def update_assessment(
    assessment_id: int,
    data: AssessmentUpdate,
    service: AssessmentService = Depends(get_assessment_service),
    current_user: User = Depends(require_staff)
):
    """Partial update (owner or admin)."""
    changes = data.model_dump(exclude_unset=True, exclude={"questions"})
    if "questions" in data.model_fields_set:
        changes["questions"] = data.questions
    assessment = service.update(assessment_id, changes, current_user)
    return _assessment_response(assessment, current_user)


@router.post("/{assessment_id}/publish", response_model=AssessmentResponse)
async def publish_assessment(
    assessment_id: int,
    service: AssessmentService = Depends(get_assessment_service),
    current_user: User = Depends(require_staff)
):
    assessment = service.publish(assessment_id, current_user)
    return _assessment_response(assessment, current_user)


@router.delete("/{assessment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assessment(
    assessment_id: int,
    service: AssessmentService = Depends(get_assessment_service),
    current_user: User = Depends(require_staff)
):
    """Delete an assessment and its submissions."""
    service.delete(assessment_id, current_user)


# === Submissions ===

@router.post("/{assessment_id}/submit", response_model=SubmissionResponse)
async def submit_assessment(
    assessment_id: int,
    data: SubmitRequest,
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(get_current_user)
):
    """Submit (or resubmit) the caller's answers. Quizzes are graded immediately."""
    outcome = service.submit(
        assessment_id,
        current_user.id,
        SubmissionPayload(
            answers=data.answers,
            file_url=data.file_url,
            text_content=data.text_content,
            link_url=data.link_url,
        ),
    )
    return _submission_response(outcome.submission)


@router.get("/{assessment_id}/submission", response_model=SubmissionResponse)
async def get_my_submission(
    assessment_id: int,
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(get_current_user)
):
    """The caller's own submission for an assessment."""
    return _submission_response(service.get_submission(assessment_id, current_user.id))


@router.get("/{assessment_id}/submissions", response_model=List[SubmissionResponse])
async def list_assessment_submissions(
    assessment_id: int,
    status_filter: Optional[SubmissionStatus] = Query(default=None, alias="status"),
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_staff)
):
    """All submissions of an assessment (course instructor or admin)."""
    submissions = service.list_submissions(assessment_id, current_user, status=status_filter)
    return [_submission_response(s) for s in submissions]


@router.put("/submissions/{submission_id}/grade", response_model=SubmissionResponse)
async def grade_submission(
    submission_id: int,
    data: GradeRequest,
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_staff)
):
    """Grade a submission manually, overriding any auto-graded score."""
    submission = service.grade(
        submission_id,
        current_user,
        GradeInput(score=data.score, feedback=data.feedback),
    )
    return _submission_response(submission)
