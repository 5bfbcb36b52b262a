from __future__ import annotations

import datetime
import typing as t

import sqlalchemy as sqla

from coursework.core import di
from coursework.model import Assessment, AssessmentID, AssessmentKind, AssessmentWithQuestions, CourseID, UserID

from . import question as question_storage
from . import Session
from .table import assessments


@t.overload
def get(
    assessment_id: AssessmentID,
    *,
    with_questions: t.Literal[False] = ...,
    for_update: bool = ...,
    session: Session = ...,
) -> Assessment | None: ...


@t.overload
def get(
    assessment_id: AssessmentID,
    *,
    with_questions: t.Literal[True],
    for_update: bool = ...,
    session: Session = ...,
) -> AssessmentWithQuestions | None: ...


def get(
    assessment_id: AssessmentID,
    *,
    with_questions: bool = False,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> Assessment | AssessmentWithQuestions | None:
    """Get an assessment by ID.

    `for_update` takes a row lock (SELECT ... FOR UPDATE) that is held until the
    surrounding transaction ends; it serializes submissions against one assessment.
    """
    stmt = sqla.select(assessments.__table__).where(assessments.assessment_id == assessment_id)
    if for_update:
        stmt = stmt.with_for_update()
    row = session.execute(stmt).mappings().one_or_none()
    if row is None:
        return None

    if with_questions:
        questions = question_storage.find(assessment_id=assessment_id, session=session)
        return AssessmentWithQuestions(**row, questions=list(questions))
    return Assessment(**row)


def find(
    *,
    instructor_id: UserID | None = None,
    course_id: CourseID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[Assessment, ...]:
    stmt = sqla.select(assessments.__table__).order_by(assessments.create_time, assessments.title)
    if instructor_id is not None:
        stmt = stmt.where(assessments.instructor_id == instructor_id)
    if course_id is not None:
        stmt = stmt.where(assessments.course_id == course_id)
    rows = session.execute(stmt).mappings().all()
    return tuple(Assessment(**row) for row in rows)


def create(
    *,
    course_id: CourseID,
    instructor_id: UserID,
    title: str,
    kind: AssessmentKind,
    total_points: float,
    passing_score: float,
    description: str | None = None,
    time_limit: int | None = None,
    attempts_allowed: int | None = None,
    due_date: datetime.datetime | None = None,
    late_penalty_percent_per_day: float | None = None,
    allow_late_submission: bool = True,
    allow_resubmission: bool = False,
    attachments: t.Sequence[str] = (),
    session: Session = di.Provide["storage.persistent.session"],
) -> Assessment:
    """Create an assessment without questions; add them with question.create()."""
    assessment_id = AssessmentID()
    stmt = sqla.insert(assessments).values(
        assessment_id=assessment_id,
        course_id=course_id,
        instructor_id=instructor_id,
        title=title,
        kind=kind,
        total_points=total_points,
        passing_score=passing_score,
        description=description,
        time_limit=time_limit,
        attempts_allowed=attempts_allowed,
        due_date=due_date,
        late_penalty_percent_per_day=late_penalty_percent_per_day,
        allow_late_submission=allow_late_submission,
        allow_resubmission=allow_resubmission,
        attachments=list(attachments),
    )
    session.execute(stmt)
    session.flush()
    result = get(assessment_id, session=session)
    assert result is not None
    return result


def increment_graded_count(
    assessment_id: AssessmentID,
    by: int,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Atomically add `by` to the assessment's cumulative graded count."""
    if by <= 0:
        return
    stmt = (
        sqla
        .update(assessments)
        .where(assessments.assessment_id == assessment_id)
        .values(graded_count=assessments.graded_count + by)
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Assessment {assessment_id} not found")
    session.flush()
