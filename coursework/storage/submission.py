from __future__ import annotations

import datetime
import typing as t

import pydantic as p
import sqlalchemy as sqla

from coursework.core import di
from coursework.lib import NotSet
from coursework.model import Answer, AssessmentID, Response, Submission, SubmissionID, SubmissionStatus, \
    SubmissionWithAnswers, User, UserID

from . import Session
from .table import submission_answers, submissions, users

ResponseAdapter: p.TypeAdapter[Response] = p.TypeAdapter(Response)


@t.overload
def get(
    submission_id: SubmissionID,
    *,
    with_answers: t.Literal[False] = ...,
    for_update: bool = ...,
    session: Session = ...,
) -> Submission | None: ...


@t.overload
def get(
    submission_id: SubmissionID,
    *,
    with_answers: t.Literal[True],
    for_update: bool = ...,
    session: Session = ...,
) -> SubmissionWithAnswers | None: ...


def get(
    submission_id: SubmissionID,
    *,
    with_answers: bool = False,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> Submission | SubmissionWithAnswers | None:
    """Get a submission by ID.

    `for_update` locks the row until the surrounding transaction ends, so gradings and
    resubmissions of one submission happen one after the other.
    """
    stmt = sqla.select(submissions.__table__).where(submissions.submission_id == submission_id)
    if for_update:
        stmt = stmt.with_for_update()
    row = session.execute(stmt).mappings().one_or_none()
    if row is None:
        return None
    if with_answers:
        return SubmissionWithAnswers(**row, answers=list(find_answers(submission_id, session=session)))
    return Submission(**row)


def find(
    *,
    assessment_id: AssessmentID | None = None,
    student_id: UserID | None = None,
    submission_ids: t.Collection[SubmissionID] | None = None,
    statuses: t.Collection[SubmissionStatus] | None = None,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[Submission, ...]:
    """Find submissions matching criteria, oldest first.

    `for_update` locks every matched row, as in `get`.
    """
    stmt = sqla.select(submissions.__table__).order_by(submissions.submitted_at, submissions.attempt_number)
    if assessment_id is not None:
        stmt = stmt.where(submissions.assessment_id == assessment_id)
    if student_id is not None:
        stmt = stmt.where(submissions.student_id == student_id)
    if submission_ids is not None:
        stmt = stmt.where(submissions.submission_id.in_(submission_ids))
    if statuses is not None:
        stmt = stmt.where(submissions.status.in_(statuses))
    if for_update:
        stmt = stmt.with_for_update()
    rows = session.execute(stmt).mappings().all()
    return tuple(Submission(**row) for row in rows)


def find_with_students(
    *,
    assessment_id: AssessmentID,
    statuses: t.Collection[SubmissionStatus] | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[tuple[Submission, User], ...]:
    """Submissions for an assessment paired with their students, ordered by student name."""
    s, u = submissions.__table__, users.__table__
    stmt = (
        sqla
        .select(s, *(c.label(f"student_{c.name}") for c in u.columns))
        .join(u, s.c.student_id == u.c.user_id)
        .where(s.c.assessment_id == assessment_id)
        .order_by(u.c.name, s.c.submitted_at)
    )
    if statuses is not None:
        stmt = stmt.where(s.c.status.in_(statuses))

    results: list[tuple[Submission, User]] = []
    for row in session.execute(stmt).mappings().all():
        student = {c.name: row[f"student_{c.name}"] for c in u.columns}
        results.append((Submission(**{c.name: row[c.name] for c in s.columns}), User(**student)))
    return tuple(results)


def count(
    *,
    assessment_id: AssessmentID,
    student_id: UserID,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    stmt = (
        sqla
        .select(sqla.func.count())
        .select_from(submissions)
        .where(submissions.assessment_id == assessment_id, submissions.student_id == student_id)
    )
    return session.execute(stmt).scalar_one()


def create(
    *,
    assessment_id: AssessmentID,
    student_id: UserID,
    attempt_number: int,
    score: float,
    percentage: float,
    passed: bool,
    submitted_at: datetime.datetime,
    answers: t.Sequence[Answer],
    time_spent: int | None = None,
    is_late: bool = False,
    days_late: int = 0,
    session: Session = di.Provide["storage.persistent.session"],
) -> SubmissionWithAnswers:
    """Insert a submission and its answers.

    Raises:
        sqlalchemy.exc.IntegrityError: If the (assessment, student, attempt_number) triple already exists
    """
    submission_id = SubmissionID()
    stmt = sqla.insert(submissions).values(
        submission_id=submission_id,
        assessment_id=assessment_id,
        student_id=student_id,
        attempt_number=attempt_number,
        score=score,
        percentage=percentage,
        passed=passed,
        submitted_at=submitted_at,
        time_spent=time_spent,
        status=SubmissionStatus.Submitted,
        is_late=is_late,
        days_late=days_late,
    )
    session.execute(stmt)
    _insert_answers(submission_id, answers, session=session)
    session.flush()

    result = get(submission_id, with_answers=True, session=session)
    assert result is not None
    return result


def update(
    submission_id: SubmissionID,
    *,
    status: SubmissionStatus | NotSet = NotSet(),
    score: float | NotSet = NotSet(),
    percentage: float | NotSet = NotSet(),
    passed: bool | NotSet = NotSet(),
    time_spent: int | None | NotSet = NotSet(),
    submitted_at: datetime.datetime | NotSet = NotSet(),
    grade: float | None | NotSet = NotSet(),
    feedback: str | None | NotSet = NotSet(),
    graded_by: UserID | None | NotSet = NotSet(),
    graded_at: datetime.datetime | None | NotSet = NotSet(),
    is_late: bool | NotSet = NotSet(),
    days_late: int | NotSet = NotSet(),
    original_score: float | None | NotSet = NotSet(),
    final_score: float | None | NotSet = NotSet(),
    resubmission_count: int | NotSet = NotSet(),
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Update a submission.

    Uses NotSet sentinel for parameters where None may be a valid value.
    Call get() after if you need the updated entity.

    Raises:
        KeyError: If submission_id does not correspond to a submission
    """
    candidates: dict[str, t.Any] = {
        "status": status,
        "score": score,
        "percentage": percentage,
        "passed": passed,
        "time_spent": time_spent,
        "submitted_at": submitted_at,
        "grade": grade,
        "feedback": feedback,
        "graded_by": graded_by,
        "graded_at": graded_at,
        "is_late": is_late,
        "days_late": days_late,
        "original_score": original_score,
        "final_score": final_score,
        "resubmission_count": resubmission_count,
    }
    values = {k: v for k, v in candidates.items() if not isinstance(v, NotSet)}
    if not values:
        # no-op update to verify submission exists
        values = {"submission_id": submission_id}

    stmt = sqla.update(submissions).where(submissions.submission_id == submission_id).values(**values)
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Submission {submission_id} not found")
    session.flush()


def find_answers(
    submission_id: SubmissionID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[Answer, ...]:
    stmt = sqla.select(submission_answers.__table__).where(submission_answers.submission_id == submission_id)
    rows = session.execute(stmt).mappings().all()
    return tuple(
        Answer(
            question_id=row["question_id"],
            response=row["response"],
            time_spent=row["time_spent"],
            awarded_points=row["awarded_points"],
        )
        for row in rows
    )


def replace_answers(
    submission_id: SubmissionID,
    answers: t.Sequence[Answer],
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    session.execute(sqla.delete(submission_answers).where(submission_answers.submission_id == submission_id))
    _insert_answers(submission_id, answers, session=session)
    session.flush()


def _insert_answers(submission_id: SubmissionID, answers: t.Sequence[Answer], *, session: Session) -> None:
    if not answers:
        return
    session.execute(
        sqla.insert(submission_answers),
        [
            {
                "submission_id": submission_id,
                "question_id": answer.question_id,
                "response": ResponseAdapter.dump_python(answer.response, mode="json"),
                "time_spent": answer.time_spent,
                "awarded_points": answer.awarded_points,
            }
            for answer in answers
        ],
    )
