from __future__ import annotations

import datetime
import enum
import typing as t

import annotated_types as ant

from .base import BaseModel, WithTimestamps
from .id import AssessmentID, SubmissionID, UserID
from .question import Answer


class SubmissionStatus(enum.Enum):
    Submitted = "submitted"
    Graded = "graded"
    Returned = "returned"
    Resubmitted = "resubmitted"

    def can_become(self, target: SubmissionStatus, *, allow_resubmission: bool = False) -> bool:
        if target is SubmissionStatus.Resubmitted and not allow_resubmission:
            return False
        return target in Transitions[self]


# grading may be repeated; resubmission re-enters from a returned submission only
Transitions: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.Submitted: frozenset({SubmissionStatus.Graded, SubmissionStatus.Returned}),
    SubmissionStatus.Graded: frozenset({SubmissionStatus.Graded, SubmissionStatus.Returned}),
    SubmissionStatus.Returned: frozenset({
        SubmissionStatus.Graded,
        SubmissionStatus.Returned,
        SubmissionStatus.Resubmitted,
    }),
    SubmissionStatus.Resubmitted: frozenset({SubmissionStatus.Graded, SubmissionStatus.Returned}),
}

# statuses an instructor still has to look at
PendingStatuses = frozenset({SubmissionStatus.Submitted, SubmissionStatus.Resubmitted})


class Submission(WithTimestamps):
    submission_id: SubmissionID
    assessment_id: AssessmentID
    student_id: UserID
    attempt_number: t.Annotated[int, ant.Gt(0)]

    score: float
    percentage: float
    passed: bool
    time_spent: int | None = None
    submitted_at: datetime.datetime
    status: SubmissionStatus = SubmissionStatus.Submitted

    grade: float | None = None
    feedback: str | None = None
    graded_by: UserID | None = None
    graded_at: datetime.datetime | None = None

    is_late: bool = False
    days_late: int = 0
    original_score: float | None = None
    final_score: float | None = None
    resubmission_count: int = 0

    @property
    def effective_score(self) -> float:
        """The instructor's final score once graded, the automatic score until then."""
        return self.final_score if self.final_score is not None else self.score


class SubmissionWithAnswers(Submission):
    answers: list[Answer] = []


class SubmittedAnswer(BaseModel):
    """An answer as the student sends it, before it is read against its question."""

    question_id: str
    answer: t.Any = None
    time_spent: t.Annotated[int, ant.Ge(0)] | None = None
