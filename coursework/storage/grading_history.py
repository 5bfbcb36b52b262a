from __future__ import annotations

import datetime

import sqlalchemy as sqla

from coursework.core import di
from coursework.model import GradingHistoryEntry, GradingHistoryID, SubmissionID, UserID

from . import Session
from .table import grading_history


def get(
    history_id: GradingHistoryID, session: Session = di.Provide["storage.persistent.session"]
) -> GradingHistoryEntry | None:
    stmt = sqla.select(grading_history.__table__).where(grading_history.history_id == history_id)
    row = session.execute(stmt).mappings().one_or_none()
    return GradingHistoryEntry(**row) if row else None


def find(
    *,
    submission_id: SubmissionID | None = None,
    graded_by: UserID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradingHistoryEntry, ...]:
    """Grading history, oldest entry first."""
    stmt = sqla.select(grading_history.__table__).order_by(grading_history.create_time, grading_history.history_id)
    if submission_id is not None:
        stmt = stmt.where(grading_history.submission_id == submission_id)
    if graded_by is not None:
        stmt = stmt.where(grading_history.graded_by == graded_by)
    rows = session.execute(stmt).mappings().all()
    return tuple(GradingHistoryEntry(**row) for row in rows)


def create(
    *,
    submission_id: SubmissionID,
    graded_by: UserID,
    previous_grade: float | None,
    new_grade: float | None,
    previous_feedback: str | None = None,
    new_feedback: str | None = None,
    reason: str | None = None,
    create_time: datetime.datetime | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingHistoryEntry:
    entry = grading_history(
        history_id=GradingHistoryID(),
        submission_id=submission_id,
        graded_by=graded_by,
        previous_grade=previous_grade,
        new_grade=new_grade,
        previous_feedback=previous_feedback,
        new_feedback=new_feedback,
        reason=reason,
        create_time=create_time,  # type: ignore[arg-type]
    )
    session.add(entry)
    session.flush()
    return get(entry.history_id, session=session)  # type: ignore
