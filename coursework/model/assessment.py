import datetime
import enum
import typing as t

import annotated_types as ant

from .base import WithTimestamps
from .id import AssessmentID, CourseID, UserID
from .question import Question


class AssessmentKind(enum.Enum):
    Quiz = "quiz"
    Exam = "exam"
    Assignment = "assignment"
    Practice = "practice"


class Assessment(WithTimestamps):
    assessment_id: AssessmentID
    course_id: CourseID
    instructor_id: UserID
    title: str
    kind: AssessmentKind
    total_points: t.Annotated[float, ant.Ge(0)]
    passing_score: t.Annotated[float, ant.Ge(0), ant.Le(100)]

    description: str | None = None
    time_limit: t.Annotated[int, ant.Gt(0)] | None = None
    attempts_allowed: t.Annotated[int, ant.Gt(0)] | None = None
    due_date: datetime.datetime | None = None
    late_penalty_percent_per_day: t.Annotated[float, ant.Ge(0)] | None = None
    allow_late_submission: bool = True
    allow_resubmission: bool = False
    attachments: list[str] = []
    graded_count: int = 0


class AssessmentWithQuestions(Assessment):
    questions: list[Question] = []
