"""View models for submitting and reviewing submissions."""

from __future__ import annotations

import datetime
import typing as t

import annotated_types as ant
import pydantic as p

from coursework.model import Answer, AssessmentID, SubmissionID, SubmissionStatus, SubmissionWithAnswers, \
    SubmittedAnswer, UserID


class SubmitRequest(p.BaseModel):
    answers: list[SubmittedAnswer]
    # minutes
    time_spent: t.Annotated[int, ant.Ge(0)] | None = None


class SubmissionResponse(p.BaseModel):
    submission_id: SubmissionID
    assessment_id: AssessmentID
    student_id: UserID
    attempt_number: int
    score: float
    percentage: float
    passed: bool
    time_spent: int | None
    submitted_at: datetime.datetime
    status: SubmissionStatus
    grade: float | None
    feedback: str | None
    graded_by: UserID | None
    graded_at: datetime.datetime | None
    is_late: bool
    days_late: int
    original_score: float | None
    final_score: float | None
    resubmission_count: int
    answers: list[Answer]

    @classmethod
    def build(cls, submission: SubmissionWithAnswers) -> SubmissionResponse:
        return cls.model_validate(submission, from_attributes=True)
