"""Bulk grading and grading-sheet export routes."""

from __future__ import annotations

import typing as t

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from coursework.auth import AuthContext, require_instructor
from coursework.core import di
from coursework.grading import export, workflow
from coursework.model import AssessmentID, GradingSheet

from ..view.grading import BulkGradeRequest, BulkGradeResponse
from .delivery import deliver_notifications

router = APIRouter(prefix="/api/assessments", tags=["grading"])


@router.post("/{assessment_id}/bulk-grade", operation_id="bulk_grade")
@di.inject
def bulk_grade(
    assessment_id: AssessmentID,
    request: BulkGradeRequest,
    auth: AuthContext = Depends(require_instructor),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> BulkGradeResponse:
    """Grade several submissions at once; either every grade is recorded or none is."""
    with session.begin():
        outcome = workflow.bulk_grade(
            auth.user,
            assessment_id,
            request.grades,
            return_to_students=request.return_to_students,
            session=session,
        )
    deliver_notifications(session=session)
    return BulkGradeResponse(
        message=f"Successfully graded {outcome.stats.total_graded} submissions",
        results=outcome.results,
        stats=outcome.stats,
    )


@router.get(
    "/{assessment_id}/bulk-grade",
    operation_id="get_grading_sheet",
    response_model=GradingSheet,
    responses={200: {"content": {"text/csv": {}}}},
)
@di.inject
def get_grading_sheet(
    assessment_id: AssessmentID,
    format: t.Literal["json", "csv"] = Query("json"),
    auth: AuthContext = Depends(require_instructor),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> GradingSheet | Response:
    """The grading sheet for an assessment, as JSON or as a CSV attachment."""
    with session.begin():
        gs = export.sheet(auth.user, assessment_id, session=session)
    if format == "csv":
        return Response(
            content=export.to_csv(gs),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export.filename(gs)}"'},
        )
    return gs
