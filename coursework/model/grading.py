import datetime
import typing as t

import annotated_types as ant

from .base import BaseModel, WithCtime
from .id import AssessmentID, GradingHistoryID, QuestionID, SubmissionID, UserID
from .submission import SubmissionStatus


class ScoreResult(BaseModel):
    total: float
    by_question: dict[QuestionID, float]


class GradingHistoryEntry(WithCtime):
    history_id: GradingHistoryID
    submission_id: SubmissionID
    graded_by: UserID

    previous_grade: float | None = None
    new_grade: float | None = None
    previous_feedback: str | None = None
    new_feedback: str | None = None
    reason: str | None = None


class BulkGradeEntry(BaseModel):
    submission_id: SubmissionID
    grade: t.Annotated[float, ant.Ge(0)]
    feedback: str | None = None


class BulkGradeEntryResult(BaseModel):
    submission_id: SubmissionID
    student_name: str | None
    original_grade: float
    final_grade: float
    # fraction of the grade deducted, e.g. 0.2 for two days at 10%/day
    late_penalty_applied: float
    success: bool = True


class BulkGradeStats(BaseModel):
    total_graded: int
    newly_graded: int
    with_late_penalty: int


class BulkGradeOutcome(BaseModel):
    results: list[BulkGradeEntryResult]
    stats: BulkGradeStats


class GradingSheetAssessment(BaseModel):
    assessment_id: AssessmentID
    title: str
    total_points: float
    late_penalty_percent_per_day: float | None = None


class GradingSheetStudent(BaseModel):
    user_id: UserID
    name: str
    email: str


class GradingSheetRow(BaseModel):
    submission_id: SubmissionID
    student: GradingSheetStudent
    current_grade: float | None
    feedback: str | None
    status: SubmissionStatus
    submitted_at: datetime.datetime
    is_late: bool
    days_late: int
    max_points: float


class GradingSheetStats(BaseModel):
    total: int
    graded: int
    pending: int
    late: int


class GradingSheet(BaseModel):
    """Everything an instructor needs to grade an assessment offline."""

    assessment: GradingSheetAssessment
    submissions: list[GradingSheetRow]
    stats: GradingSheetStats
