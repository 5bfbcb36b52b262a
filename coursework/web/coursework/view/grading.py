"""View models for instructor grading."""

from __future__ import annotations

import datetime
import typing as t

import annotated_types as ant
import pydantic as p

from coursework.model import BulkGradeEntry, BulkGradeEntryResult, BulkGradeStats, GradingHistoryID, SubmissionID, \
    UserID


class GradeRequest(p.BaseModel):
    feedback: str | None = None
    manual_score: t.Annotated[float, ant.Ge(0)] | None = None


class BulkGradeRequest(p.BaseModel):
    grades: t.Annotated[list[BulkGradeEntry], ant.MinLen(1)]
    return_to_students: bool = False


class BulkGradeResponse(p.BaseModel):
    message: str
    results: list[BulkGradeEntryResult]
    stats: BulkGradeStats


class GradingHistoryEntryResponse(p.BaseModel):
    history_id: GradingHistoryID
    submission_id: SubmissionID
    graded_by: UserID
    previous_grade: float | None
    new_grade: float | None
    previous_feedback: str | None
    new_feedback: str | None
    reason: str | None
    graded_at: datetime.datetime


class GradingHistoryResponse(p.BaseModel):
    entries: list[GradingHistoryEntryResponse]
