"""Assessment authoring and submission routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from coursework.auth import AuthContext, get_current_user, require_instructor, require_student
from coursework.core import di
from coursework.grading import assessment as assessment_service
from coursework.grading import submission as submission_service
from coursework.model import AssessmentID

from ..view.assessment import AssessmentCreateRequest, AssessmentResponse
from ..view.submission import SubmissionResponse, SubmitRequest

router = APIRouter(prefix="/api/assessments", tags=["assessments"])


@router.post("", operation_id="create_assessment", status_code=status.HTTP_201_CREATED)
@di.inject
def create_assessment(
    request: AssessmentCreateRequest,
    auth: AuthContext = Depends(require_instructor),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AssessmentResponse:
    """Create an assessment with its questions.

    Only the course's instructor (or an admin) can create assessments.
    """
    with session.begin():
        assessment = assessment_service.create(
            auth.user,
            course_id=request.course_id,
            title=request.title,
            kind=request.kind,
            total_points=request.total_points,
            passing_score=request.passing_score,
            questions=request.questions,
            description=request.description,
            time_limit=request.time_limit,
            attempts_allowed=request.attempts_allowed,
            due_date=request.due_date,
            late_penalty_percent_per_day=request.late_penalty_percent_per_day,
            allow_late_submission=request.allow_late_submission,
            allow_resubmission=request.allow_resubmission,
            attachments=request.attachments,
            session=session,
        )
    return AssessmentResponse.build(assessment, with_answers=True)


@router.get("/{assessment_id}", operation_id="get_assessment")
@di.inject
def get_assessment(
    assessment_id: AssessmentID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AssessmentResponse:
    """Get an assessment with its questions; answer keys are shown only to those who may grade it."""
    with session.begin():
        assessment = assessment_service.load(assessment_id, session=session)
        with_answers = assessment_service.can_grade(auth.user, assessment, session=session)
    return AssessmentResponse.build(assessment, with_answers=with_answers)


@router.post(
    "/{assessment_id}/submissions", operation_id="submit_assessment", status_code=status.HTTP_201_CREATED
)
@di.inject
def submit_assessment(
    assessment_id: AssessmentID,
    request: SubmitRequest,
    auth: AuthContext = Depends(require_student),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> SubmissionResponse:
    """Submit answers for scoring; counts against the assessment's attempt limit."""
    with session.begin():
        submission = submission_service.submit(
            auth.user, assessment_id, request.answers, request.time_spent, session=session
        )
    return SubmissionResponse.build(submission)
