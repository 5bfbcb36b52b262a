"""Submission detail, resubmission and single-submission grading routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from coursework.auth import AuthContext, get_current_user, require_instructor, require_student
from coursework.core import di
from coursework.grading import submission as submission_service
from coursework.grading import workflow
from coursework.model import SubmissionID
from coursework.storage import submission as submission_storage

from ..view.grading import GradeRequest, GradingHistoryEntryResponse, GradingHistoryResponse
from ..view.submission import SubmissionResponse, SubmitRequest
from .delivery import deliver_notifications

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


@router.get("/{submission_id}", operation_id="get_submission")
@di.inject
def get_submission(
    submission_id: SubmissionID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> SubmissionResponse:
    with session.begin():
        submission = submission_service.view(auth.user, submission_id, session=session)
    return SubmissionResponse.build(submission)


@router.post("/{submission_id}/resubmit", operation_id="resubmit_submission")
@di.inject
def resubmit_submission(
    submission_id: SubmissionID,
    request: SubmitRequest,
    auth: AuthContext = Depends(require_student),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> SubmissionResponse:
    """Resubmit a returned submission, when the assessment allows it."""
    with session.begin():
        submission = submission_service.resubmit(
            auth.user, submission_id, request.answers, request.time_spent, session=session
        )
    return SubmissionResponse.build(submission)


@router.post("/{submission_id}/grade", operation_id="grade_submission")
@di.inject
def grade_submission(
    submission_id: SubmissionID,
    request: GradeRequest,
    auth: AuthContext = Depends(require_instructor),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> SubmissionResponse:
    """Grade one submission, optionally overriding its automatic score."""
    with session.begin():
        workflow.grade(
            auth.user,
            submission_id,
            feedback=request.feedback,
            manual_score=request.manual_score,
            session=session,
        )
        submission = submission_storage.get(submission_id, with_answers=True, session=session)
        assert submission is not None
    deliver_notifications(session=session)
    return SubmissionResponse.build(submission)


@router.get("/{submission_id}/history", operation_id="get_grading_history")
@di.inject
def get_grading_history(
    submission_id: SubmissionID,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> GradingHistoryResponse:
    with session.begin():
        entries = workflow.history(auth.user, submission_id, session=session)
    return GradingHistoryResponse(
        entries=[
            GradingHistoryEntryResponse(
                history_id=e.history_id,
                submission_id=e.submission_id,
                graded_by=e.graded_by,
                previous_grade=e.previous_grade,
                new_grade=e.new_grade,
                previous_feedback=e.previous_feedback,
                new_feedback=e.new_feedback,
                reason=e.reason,
                graded_at=e.create_time,
            )
            for e in entries
        ]
    )
