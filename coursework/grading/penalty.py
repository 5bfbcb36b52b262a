from __future__ import annotations

import datetime
import math
import typing as t

from coursework.model import Assessment, Submission


class LatePenalty(t.NamedTuple):
    original_score: float
    final_score: float
    # fraction deducted, 0.0 when no penalty applies
    fraction: float

    @property
    def applied(self) -> bool:
        return self.fraction > 0


def days_late(submitted_at: datetime.datetime, due_date: datetime.datetime | None) -> int:
    """Whole days past the due date, any part of a day counting as one."""
    if due_date is None or submitted_at <= due_date:
        return 0
    return math.ceil((submitted_at - due_date) / datetime.timedelta(days=1))


def apply(grade: float, assessment: Assessment, submission: Submission) -> LatePenalty:
    """Deduct the assessment's per-day late penalty from an instructor's grade.

    The penalty is always computed from the grade as entered, so grading the same submission
    again never compounds it. The result is never negative.
    """
    pct = assessment.late_penalty_percent_per_day
    if not submission.is_late or not pct or submission.days_late <= 0:
        return LatePenalty(original_score=grade, final_score=grade, fraction=0.0)

    fraction = pct / 100 * submission.days_late
    final = max(0.0, grade - grade * fraction)
    return LatePenalty(original_score=grade, final_score=final, fraction=fraction)
