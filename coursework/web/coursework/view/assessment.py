"""View models for assessment authoring."""

from __future__ import annotations

import datetime

import pydantic as p

from coursework.model import AnswerKey, AssessmentID, AssessmentKind, AssessmentWithQuestions, CourseID, \
    QuestionDraft, QuestionID, QuestionKind, UserID


class AssessmentCreateRequest(p.BaseModel):
    course_id: CourseID
    title: str
    kind: AssessmentKind
    total_points: float
    passing_score: float
    description: str | None = None
    time_limit: int | None = None
    attempts_allowed: int | None = None
    due_date: datetime.datetime | None = None
    late_penalty_percent_per_day: float | None = None
    allow_late_submission: bool = True
    allow_resubmission: bool = False
    attachments: list[str] = []
    questions: list[QuestionDraft] = []

    @p.field_validator("due_date")
    @classmethod
    def require_timezone(cls, v: datetime.datetime | None) -> datetime.datetime | None:
        if v is not None and v.tzinfo is None:
            raise ValueError("due_date must include a timezone offset")
        return v


class QuestionResponse(p.BaseModel):
    question_id: QuestionID
    text: str
    kind: QuestionKind
    points: float
    position: int
    options: list[str]
    # withheld from students
    answer_key: AnswerKey | None = None
    explanation: str | None = None


class AssessmentResponse(p.BaseModel):
    assessment_id: AssessmentID
    course_id: CourseID
    instructor_id: UserID
    title: str
    description: str | None
    kind: AssessmentKind
    total_points: float
    passing_score: float
    time_limit: int | None
    attempts_allowed: int | None
    due_date: datetime.datetime | None
    late_penalty_percent_per_day: float | None
    allow_late_submission: bool
    allow_resubmission: bool
    attachments: list[str]
    graded_count: int
    questions: list[QuestionResponse]
    create_time: datetime.datetime

    @classmethod
    def build(cls, assessment: AssessmentWithQuestions, *, with_answers: bool) -> AssessmentResponse:
        return cls(
            assessment_id=assessment.assessment_id,
            course_id=assessment.course_id,
            instructor_id=assessment.instructor_id,
            title=assessment.title,
            description=assessment.description,
            kind=assessment.kind,
            total_points=assessment.total_points,
            passing_score=assessment.passing_score,
            time_limit=assessment.time_limit,
            attempts_allowed=assessment.attempts_allowed,
            due_date=assessment.due_date,
            late_penalty_percent_per_day=assessment.late_penalty_percent_per_day,
            allow_late_submission=assessment.allow_late_submission,
            allow_resubmission=assessment.allow_resubmission,
            attachments=assessment.attachments,
            graded_count=assessment.graded_count,
            questions=[
                QuestionResponse(
                    question_id=q.question_id,
                    text=q.text,
                    kind=q.kind,
                    points=q.points,
                    position=q.position,
                    options=q.options,
                    answer_key=q.answer_key if with_answers else None,
                    explanation=q.explanation if with_answers else None,
                )
                for q in assessment.questions
            ],
            create_time=assessment.create_time,
        )
