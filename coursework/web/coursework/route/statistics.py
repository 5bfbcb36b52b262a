from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from coursework.auth import AuthContext, require_instructor
from coursework.core import di
from coursework.grading import statistics
from coursework.model import AssessmentID, AssessmentStatistics, GradeStatistics, InstructorStatistics, UserID

router = APIRouter(prefix="/api", tags=["statistics"])


@router.get("/assessments/{assessment_id}/statistics", operation_id="get_assessment_statistics")
@di.inject
def get_assessment_statistics(
    assessment_id: AssessmentID,
    auth: AuthContext = Depends(require_instructor),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> AssessmentStatistics:
    with session.begin():
        return statistics.for_assessment(auth.user, assessment_id, session=session)


@router.get("/assessments/{assessment_id}/grade-statistics", operation_id="get_grade_statistics")
@di.inject
def get_grade_statistics(
    assessment_id: AssessmentID,
    auth: AuthContext = Depends(require_instructor),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> GradeStatistics:
    with session.begin():
        return statistics.grades_for_assessment(auth.user, assessment_id, session=session)


@router.get("/instructors/{instructor_id}/statistics", operation_id="get_instructor_statistics")
@di.inject
def get_instructor_statistics(
    instructor_id: UserID,
    auth: AuthContext = Depends(require_instructor),
    session: Session = Depends(di.Manage["storage.persistent.session"]),
) -> InstructorStatistics:
    with session.begin():
        return statistics.for_instructor(auth.user, instructor_id, session=session)
